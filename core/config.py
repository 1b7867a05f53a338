# =============================================================================
# core/config.py  —  Environment configuration
# =============================================================================
#
# The server needs four values to reach a Dataverse environment:
#
#   DATAVERSE_URL   https://<org>.crm.dynamics.com
#   TENANT_ID       Entra ID tenant the app registration lives in
#   CLIENT_ID       app registration (application) id
#   CLIENT_SECRET   client secret for that app registration
#
# Optional:
#   LOG_LEVEL       logging level name for the server (default: INFO)
#
# main.py calls load_dotenv() first, so any of these can also come from a
# .env file next to the project.  This module only reads os.environ; it
# never loads files itself.
# =============================================================================

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigurationError
from core.models import EndpointConfig

REQUIRED_VARIABLES = ("DATAVERSE_URL", "TENANT_ID", "CLIENT_ID", "CLIENT_SECRET")


@dataclass(frozen=True)
class Settings:
    """Everything read from the environment at startup."""

    dataverse_url: str
    tenant_id: str
    client_id: str
    client_secret: str
    log_level: str = "INFO"

    def endpoint(self) -> EndpointConfig:
        return EndpointConfig(
            base_url=self.dataverse_url,
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment.

    Args:
        environ: Mapping to read from.  Defaults to ``os.environ``.

    Raises:
        ConfigurationError: naming every required variable that is unset
            or empty, so the operator can fix them all in one go.
    """
    env = os.environ if environ is None else environ

    values = {name: env.get(name, "").strip() for name in REQUIRED_VARIABLES}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(missing)

    return Settings(
        dataverse_url=values["DATAVERSE_URL"],
        tenant_id=values["TENANT_ID"],
        client_id=values["CLIENT_ID"],
        client_secret=values["CLIENT_SECRET"],
        log_level=env.get("LOG_LEVEL", "INFO").upper() or "INFO",
    )
