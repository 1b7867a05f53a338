# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Declares the six Dataverse tools an agent can call.  Each tool is a thin
#   wrapper: it logs the call, hands the arguments to tools/handlers.py, and
#   returns the text result (or raises ToolError with the error text).
#
# HOW IT WORKS (the flow):
#   1. The agent lists tools and sees the names, docstrings and typed
#      parameters below (FastMCP builds the JSON schemas from signatures)
#   2. It calls a tool by name, e.g. "query_records"
#   3. FastMCP routes the call to the decorated function below
#   4. handlers.call_tool() runs the adapter and formats the result
#   5. The agent receives JSON text, a confirmation, or an isError result
#
# TOOL NAMING CONVENTIONS:
#   - list_* / get_* / query_*  → read-only, safe to retry
#   - create_* / update_*       → writes
#   - delete_*                  → destructive
#
# CLIENT LIFECYCLE:
#   The DataverseClient is built in the server lifespan from environment
#   settings and closed when the server shuts down, so the HTTP connection
#   pool and the azure credential are released cleanly.
#
# RUNNING THIS SERVER:
#   python main.py   (or the "dataverse-mcp" console script)
# =============================================================================

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import NotFoundError, ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext

from core.config import load_settings
from core.dataverse import DataverseClient
from tools.handlers import call_tool

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because the MCP server talks to the agent over
# STDOUT.  Anything we printed there would corrupt the JSON-RPC stream.
#
# ANSI colors make tool calls easy to pick out in a terminal:
#   CYAN for requests, YELLOW for status, GREEN for responses.
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"

# Responses can be whole pages of records; keep the log line readable
_MAX_LOGGED_RESPONSE = 500


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: str) -> str:
    """Log the tool response in GREEN (truncated), then return it."""
    shown = " ".join(result.split())
    if len(shown) > _MAX_LOGGED_RESPONSE:
        shown = shown[:_MAX_LOGGED_RESPONSE] + "…"
    logging.info(f"{_GREEN}  ← {tool_name} response: {shown}{_RESET}")
    return result


# =============================================================================
# Server instance and client lifespan
# =============================================================================
_client: Optional[DataverseClient] = None


@asynccontextmanager
async def dataverse_lifespan(server: FastMCP) -> AsyncIterator[None]:
    global _client
    settings = load_settings()
    async with DataverseClient.from_settings(settings) as client:
        _client = client
        _log_status(f"Connected to {client.config.resource_url}")
        try:
            yield
        finally:
            _client = None


class UnknownToolMiddleware(Middleware):
    """Report unregistered tool names as "Error: Unknown tool: <name>".

    FastMCP rejects them before any tool body runs, with its own wording;
    this keeps them in the same "Error: <message>" shape as every other
    failed call.
    """

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except NotFoundError as exc:
            name = context.message.name
            _log_status(f"Unknown tool: {name}")
            raise ToolError(f"Error: Unknown tool: {name}") from exc


mcp = FastMCP("mcp-dataverse-server", lifespan=dataverse_lifespan)
mcp.add_middleware(UnknownToolMiddleware())


async def _invoke(tool_name: str, **arguments: Any) -> str:
    """Shared body of every tool: log, dispatch, raise on error."""
    _log_request(tool_name, **arguments)
    if _client is None:
        raise ToolError("Error: Dataverse client is not configured")

    response = await call_tool(_client, tool_name, arguments)
    if response.is_error:
        _log_status(response.first_text)
        raise ToolError(response.first_text)
    return _log_response(tool_name, response.first_text)


# =============================================================================
# Record tools
# =============================================================================
@mcp.tool()
async def create_record(table: str, data: dict[str, Any]) -> str:
    """Create a new record in a Dataverse table.

    Args:
        table: Table logical name (entity set name, e.g., 'accounts').
        data: Record data as key-value pairs of column logical names to values.

    Returns:
        JSON object {"id": "<guid>"} with the new record's id.
    """
    return await _invoke("create_record", table=table, data=data)


@mcp.tool()
async def update_record(table: str, id: str, data: dict[str, Any]) -> str:
    """Update an existing record in a Dataverse table.

    Only the columns present in `data` are changed.

    Args:
        table: Table logical name.
        id: Record GUID.
        data: Fields to update.
    """
    return await _invoke("update_record", table=table, id=id, data=data)


@mcp.tool()
async def delete_record(table: str, id: str) -> str:
    """Delete a record from a Dataverse table.  This cannot be undone.

    Args:
        table: Table logical name.
        id: Record GUID.
    """
    return await _invoke("delete_record", table=table, id=id)


@mcp.tool()
async def query_records(
    table: str,
    select: Optional[list[str]] = None,
    filter: Optional[str] = None,
    top: Optional[int] = None,
) -> str:
    """Query records from a Dataverse table with optional filters.

    Returns a single page of results as a JSON array.

    Args:
        table: Table logical name.
        select: Columns to retrieve.  All columns when omitted.
        filter: OData filter expression, e.g. "statecode eq 0".
        top: Max records to return.
    """
    return await _invoke("query_records", table=table, select=select, filter=filter, top=top)


# =============================================================================
# Metadata tools
# =============================================================================
@mcp.tool()
async def list_tables() -> str:
    """List all available Dataverse tables.

    Returns:
        JSON array of {logicalName, displayName, description}.  Labels are
        null when the table has no localized label.
    """
    return await _invoke("list_tables")


@mcp.tool()
async def get_table_schema(table: str) -> str:
    """Get schema information for a specific table.

    Call this before create_record or update_record to learn which columns
    exist and which of them accept writes.

    Args:
        table: Table logical name (singular, e.g., 'account').

    Returns:
        JSON array of {logicalName, displayName, type, canCreate, canUpdate}.
    """
    return await _invoke("get_table_schema", table=table)
