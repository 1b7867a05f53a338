# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the adapter)
# =============================================================================
#
# These dataclasses define the shape of what goes in and out of the
# Dataverse adapter.  They carry no behavior beyond a couple of derived
# URLs.  The metadata descriptors know their own wire shape (to_dict(),
# camelCase keys); CreatedRecord goes out through dataclasses.asdict().
#
# RECORDS ARE NOT MODELLED:
#   A Dataverse record is whatever set of columns the caller sends or the
#   service returns.  We keep it as a plain dict (the ``Record`` alias) and
#   never look inside it, except for the ``<table>id`` fallback on create.
# =============================================================================

from dataclasses import dataclass
from typing import Any, Optional

# Field logical name -> value (str, number, bool, None or nested mapping).
Record = dict[str, Any]

API_PATH = "/api/data/v9.2"


# -----------------------------------------------------------------------------
# EndpointConfig — where to talk to and who to authenticate as
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class EndpointConfig:
    """Connection settings for one Dataverse environment.

    ``base_url`` is normalized on construction (a trailing slash is
    dropped) so the derived URLs never contain ``//``.
    """

    base_url: str                      # "https://contoso.crm.dynamics.com"
    tenant_id: str                     # Entra ID tenant (directory) id
    client_id: str                     # App registration (service principal)
    client_secret: str

    def __post_init__(self):
        # frozen=True blocks normal assignment
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def resource_url(self) -> str:
        """Root of the Web API, e.g. ``https://org.crm.dynamics.com/api/data/v9.2``."""
        return f"{self.base_url}{API_PATH}"

    @property
    def scope(self) -> str:
        """Token audience for the client-credentials flow."""
        return f"{self.base_url}/.default"

    def __repr__(self) -> str:
        return (
            f"EndpointConfig(base_url={self.base_url!r}, tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r}, client_secret='***')"
        )


# -----------------------------------------------------------------------------
# CreatedRecord — result of create_record
# -----------------------------------------------------------------------------
@dataclass
class CreatedRecord:
    """Identifier of a freshly created row."""

    id: str


# -----------------------------------------------------------------------------
# TableDescriptor — one entry from /EntityDefinitions
# -----------------------------------------------------------------------------
@dataclass
class TableDescriptor:
    """A table as listed by the metadata endpoint."""

    logical_name: Optional[str]
    display_name: Optional[str] = None     # None when no localized label exists
    description: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape handed to the agent."""
        return {
            "logicalName": self.logical_name,
            "displayName": self.display_name,
            "description": self.description,
        }


# -----------------------------------------------------------------------------
# AttributeDescriptor — one column of a table's schema
# -----------------------------------------------------------------------------
@dataclass
class AttributeDescriptor:
    """A column as described by ``EntityDefinitions(...)/Attributes``."""

    logical_name: Optional[str]
    display_name: Optional[str] = None
    attribute_type: Optional[str] = None   # "String", "Lookup", "Picklist", ...
    can_create: Optional[bool] = None      # IsValidForCreate
    can_update: Optional[bool] = None      # IsValidForUpdate

    def to_dict(self) -> dict[str, Any]:
        return {
            "logicalName": self.logical_name,
            "displayName": self.display_name,
            "type": self.attribute_type,
            "canCreate": self.can_create,
            "canUpdate": self.can_update,
        }
