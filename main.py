# =============================================================================
# main.py  —  Entry Point for the Dataverse MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py
#
# WHAT HAPPENS:
#   1. Loads a .env file, if present, into the environment
#   2. Checks the four required settings (DATAVERSE_URL, TENANT_ID,
#      CLIENT_ID, CLIENT_SECRET) and exits if any is missing
#   3. Configures logging on stderr
#   4. Starts the FastMCP server on the stdio transport
#
# An MCP client (a desktop assistant, an ADK agent, the MCP inspector...)
# starts this process and talks to it over stdin/stdout.
# =============================================================================

import sys

from dotenv import load_dotenv

# Must run before anything reads os.environ
load_dotenv()

from core.config import load_settings
from core.errors import ConfigurationError
from tools.mcp_server import configure_logging, mcp


def main() -> None:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        sys.exit(f"dataverse-mcp: {exc}")

    configure_logging(settings.log_level)
    mcp.run()


if __name__ == "__main__":
    main()
