# =============================================================================
# core/dataverse.py  —  Dataverse Web API adapter
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns six logical operations (create, update, delete, query, list
#   tables, get table schema) into single authenticated REST calls against
#   the Dataverse Web API, and reshapes the responses into something a tool
#   can hand straight to an agent.
#
# AUTHENTICATION:
#   Every request passes through an httpx "request" event hook that asks
#   the credential for a token scoped to <base_url>/.default and sets the
#   Authorization header.  The adapter never stores the token; the
#   credential (azure-identity's ClientSecretCredential by default) does its
#   own caching and refresh.  If the credential fails, the hook raises and
#   httpx never opens a connection to Dataverse.
#
# RESPONSE SHAPING:
#   - create: the new row's GUID comes from the odata-entityid header
#     (".../accounts(<guid>)"), falling back to the <table>id body field.
#   - query: the "value" array is returned untouched.
#   - metadata: DisplayName / Description are localized label objects; we
#     dig out UserLocalizedLabel.Label and return None when any level of
#     that path is missing.
#
# WHAT THIS MODULE DOES NOT DO:
#   No retries, no paging past the first page, no caching, no validation of
#   record contents.  Dataverse is the authority on all of that.
# =============================================================================

import logging
from typing import Any, Optional, Protocol, Sequence

import httpx
from azure.core.exceptions import AzureError
from azure.identity.aio import ClientSecretCredential

from core.config import Settings
from core.errors import (
    DataverseAuthenticationError,
    DataverseRequestError,
    DataverseTransportError,
    MissingRecordIdError,
)
from core.models import (
    AttributeDescriptor,
    CreatedRecord,
    EndpointConfig,
    Record,
    TableDescriptor,
)

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
}

_TABLE_SELECT = "LogicalName,DisplayName,Description"
_ATTRIBUTE_SELECT = "LogicalName,DisplayName,AttributeType,IsValidForCreate,IsValidForUpdate"


class TokenCredential(Protocol):
    """Anything that can hand out bearer tokens asynchronously.

    azure.identity.aio credentials satisfy this; tests pass a fake.
    """

    async def get_token(self, *scopes: str, **kwargs: Any) -> Any:
        ...


class DataverseClient:
    """Async adapter for one Dataverse environment.

    Usage::

        async with DataverseClient(url, tenant_id, client_id, secret) as client:
            created = await client.create_record("accounts", {"name": "Acme"})

    Args:
        base_url: Environment URL, e.g. ``https://contoso.crm.dynamics.com``.
        tenant_id, client_id, client_secret: App registration used for the
            client-credentials flow.
        credential: Token provider to use instead of building a
            ``ClientSecretCredential``.  The caller keeps ownership of it.
        transport: httpx transport override (tests use ``httpx.MockTransport``).
        timeout: httpx timeout.  ``None`` means no deadline; callers that
            need one should impose it around the awaited call.
    """

    def __init__(
        self,
        base_url: str,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        *,
        credential: Optional[TokenCredential] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.config = EndpointConfig(
            base_url=base_url,
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
        )

        self._owns_credential = credential is None
        if credential is None:
            credential = ClientSecretCredential(tenant_id, client_id, client_secret)
        self._credential = credential

        self._http = httpx.AsyncClient(
            base_url=self.config.resource_url,
            headers=_DEFAULT_HEADERS,
            event_hooks={"request": [self._authorize]},
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "DataverseClient":
        endpoint = settings.endpoint()
        return cls(
            endpoint.base_url,
            endpoint.tenant_id,
            endpoint.client_id,
            endpoint.client_secret,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def __aenter__(self) -> "DataverseClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client, and the credential if we created it."""
        await self._http.aclose()
        if self._owns_credential:
            await self._credential.close()

    # -------------------------------------------------------------------------
    # Request pipeline
    # -------------------------------------------------------------------------
    async def _authorize(self, request: httpx.Request) -> None:
        """httpx request hook: attach a fresh bearer token."""
        try:
            token = await self._credential.get_token(self.config.scope)
        except AzureError as exc:
            raise DataverseAuthenticationError(
                f"Could not acquire token for {self.config.scope}: {exc}"
            ) from exc
        request.headers["Authorization"] = f"Bearer {token.token}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        body: Optional[Record] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        logger.debug("Dataverse %s %s params=%s", method, path, params)
        try:
            response = await self._http.request(
                method, path, params=params, json=body, headers=headers
            )
        except httpx.TransportError as exc:
            raise DataverseTransportError(
                f"{method} {path} failed: {str(exc) or type(exc).__name__}"
            ) from exc

        if not response.is_success:
            raise DataverseRequestError(
                response.status_code,
                _error_message(response),
                method=method,
                url=str(response.request.url),
            )
        return response

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------
    async def create_record(self, table: str, data: Record) -> CreatedRecord:
        """POST a new row and return its id."""
        response = await self._request(
            "POST",
            f"/{table}",
            body=data,
            headers={"Prefer": "return=representation"},
        )

        record_id = _entity_id_from_header(response.headers.get("odata-entityid"))
        if not record_id:
            record_id = _json_body(response).get(f"{table}id")
        if not record_id:
            raise MissingRecordIdError(table)
        return CreatedRecord(id=str(record_id))

    async def update_record(self, table: str, id: str, data: Record) -> None:
        await self._request("PATCH", f"/{table}({id})", body=data)

    async def delete_record(self, table: str, id: str) -> None:
        await self._request("DELETE", f"/{table}({id})")

    async def query_records(
        self,
        table: str,
        select: Optional[Sequence[str]] = None,
        filter: Optional[str] = None,
        top: Optional[int] = None,
    ) -> list[Record]:
        """GET one page of rows.

        Each OData option is only sent when it carries a value: an empty
        ``select``, an empty ``filter`` and a ``top`` of 0 are all dropped.
        """
        params: dict[str, Any] = {}
        if select:
            params["$select"] = ",".join(select)
        if filter:
            params["$filter"] = filter
        if top:
            params["$top"] = top

        response = await self._request("GET", f"/{table}", params=params)
        return _json_body(response).get("value", [])

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------
    async def list_tables(self) -> list[TableDescriptor]:
        response = await self._request(
            "GET", "/EntityDefinitions", params={"$select": _TABLE_SELECT}
        )
        return [
            TableDescriptor(
                logical_name=entry.get("LogicalName"),
                display_name=_localized_label(entry, "DisplayName"),
                description=_localized_label(entry, "Description"),
            )
            for entry in _json_body(response).get("value", [])
        ]

    async def get_table_schema(self, table: str) -> list[AttributeDescriptor]:
        """List a table's columns.

        ``table`` goes into the path between single quotes as-is; a name
        containing a quote will produce a malformed URL.
        """
        response = await self._request(
            "GET",
            f"/EntityDefinitions(LogicalName='{table}')/Attributes",
            params={"$select": _ATTRIBUTE_SELECT},
        )
        return [
            AttributeDescriptor(
                logical_name=entry.get("LogicalName"),
                display_name=_localized_label(entry, "DisplayName"),
                attribute_type=entry.get("AttributeType"),
                can_create=entry.get("IsValidForCreate"),
                can_update=entry.get("IsValidForUpdate"),
            )
            for entry in _json_body(response).get("value", [])
        ]


# =============================================================================
# Response helpers
# =============================================================================
def _entity_id_from_header(header: Optional[str]) -> Optional[str]:
    """Pull the GUID out of ``https://org/api/data/v9.2/accounts(<guid>)``."""
    if not header:
        return None
    _, paren, rest = header.partition("(")
    if not paren:
        return None
    return rest.split(")", 1)[0] or None


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; 204s and empty bodies become ``{}``."""
    if not response.content:
        return {}
    data = response.json()
    return data if isinstance(data, dict) else {}


def _localized_label(entry: Record, field: str) -> Optional[str]:
    """``entry[field].UserLocalizedLabel.Label``, or None if any hop is missing."""
    label = entry.get(field)
    if not isinstance(label, dict):
        return None
    localized = label.get("UserLocalizedLabel")
    if not isinstance(localized, dict):
        return None
    return localized.get("Label")


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from an error response.

    Dataverse errors look like ``{"error": {"code": "...", "message": "..."}}``.
    Anything else falls back to the raw body text, passed through whole,
    then to the reason phrase.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if isinstance(message, dict):  # OData v2 style {"lang": .., "value": ..}
            message = message.get("value")
        if message:
            return str(message)

    if response.text.strip():
        return response.text
    return response.reason_phrase or "Unknown error"
