# =============================================================================
# core/errors.py  —  Exception hierarchy for the Dataverse adapter
# =============================================================================
#
# Every failure the adapter can produce is one of these.  Library exceptions
# (azure-identity, httpx) are translated at the point where they happen and
# chained with ``raise ... from`` so the original traceback survives.
#
#   DataverseError
#     ├── DataverseAuthenticationError   token acquisition failed
#     ├── DataverseTransportError        network unreachable / connection lost
#     ├── DataverseRequestError          non-2xx status from the Web API
#     ├── MissingRecordIdError           create returned no identifier
#     └── ConfigurationError             required environment values missing
#
# The tool layer (tools/handlers.py) turns any of these into an
# "Error: <message>" text response.  Nothing in core/ catches them.
# =============================================================================

from typing import Optional


class DataverseError(Exception):
    """Base class for every error raised by this package."""


class DataverseAuthenticationError(DataverseError):
    """A bearer token could not be obtained for the Dataverse scope."""


class DataverseTransportError(DataverseError):
    """The HTTP request never produced a response."""


class DataverseRequestError(DataverseError):
    """The Web API answered with a non-2xx status.

    ``status_code`` and ``message`` are passed through from the response
    without interpretation.
    """

    def __init__(self, status_code: int, message: str, method: Optional[str] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.method = method
        self.url = url
        super().__init__(f"Request failed with status code {status_code}: {message}")


class MissingRecordIdError(DataverseError):
    """A create call succeeded but neither header nor body carried an id."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Created record in '{table}' but the response carried no "
            f"'odata-entityid' header and no '{table}id' field"
        )


class ConfigurationError(DataverseError):
    """One or more required settings are missing from the environment."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")
