# =============================================================================
# tools/handlers.py  —  Tool dispatch and the error boundary
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Maps each tool name to a small async handler that pulls arguments out of
#   the loosely-typed argument dict, calls the Dataverse adapter, and turns
#   the result into text.  call_tool() is the single entry point.
#
# THE BOUNDARY CONTRACT:
#   call_tool() never raises.  Whatever goes wrong (unknown tool, missing
#   argument, token failure, 403 from Dataverse) comes back as
#
#       ToolResponse(content=[{"type": "text", "text": "Error: <message>"}],
#                    is_error=True)
#
#   and the MCP layer reports it to the agent as a tool error rather than a
#   protocol fault.
#
# OUTPUT FORMAT:
#   Results that carry data are JSON (indent=2) so the agent can read them
#   directly.  update/delete have nothing to return and answer with a short
#   confirmation sentence.
# =============================================================================

import json
import logging
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Awaitable, Callable, Optional

from core.dataverse import DataverseClient

logger = logging.getLogger(__name__)


class ToolArgumentError(ValueError):
    """The caller left out a required argument or sent the wrong type."""


@dataclass
class ToolResponse:
    """What goes back over the tool-invocation transport."""

    content: list[dict[str, str]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResponse":
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)

    @property
    def first_text(self) -> str:
        return self.content[0]["text"] if self.content else ""


# =============================================================================
# Argument helpers
# =============================================================================
def _required(arguments: dict[str, Any], name: str, kind: type) -> Any:
    if name not in arguments or arguments[name] is None:
        raise ToolArgumentError(f"Missing required argument: {name}")
    value = arguments[name]
    if not isinstance(value, kind):
        raise ToolArgumentError(f"Argument '{name}' must be of type {kind.__name__}")
    return value


def _optional(arguments: dict[str, Any], name: str, kind: Any) -> Any:
    value = arguments.get(name)
    if value is not None and not isinstance(value, kind):
        raise ToolArgumentError(f"Argument '{name}' has the wrong type")
    return value


def _plain(item: Any) -> Any:
    if hasattr(item, "to_dict"):
        return item.to_dict()
    if is_dataclass(item):
        return asdict(item)
    return item


def _optional_count(arguments: dict[str, Any], name: str) -> Optional[int]:
    """Whole-number argument; JSON numbers like 5.0 are accepted, 5.5 is not."""
    value = arguments.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolArgumentError(f"Argument '{name}' must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ToolArgumentError(f"Argument '{name}' must be an integer, got {value}")
        value = int(value)
    return value


def _to_json(result: Any) -> str:
    if isinstance(result, list):
        result = [_plain(item) for item in result]
    else:
        result = _plain(result)
    return json.dumps(result, indent=2, default=str)


# =============================================================================
# Handlers — one per tool
# =============================================================================
async def _create_record(client: DataverseClient, arguments: dict[str, Any]) -> str:
    created = await client.create_record(
        _required(arguments, "table", str),
        _required(arguments, "data", dict),
    )
    return _to_json(created)


async def _update_record(client: DataverseClient, arguments: dict[str, Any]) -> str:
    await client.update_record(
        _required(arguments, "table", str),
        _required(arguments, "id", str),
        _required(arguments, "data", dict),
    )
    return "Record updated successfully"


async def _delete_record(client: DataverseClient, arguments: dict[str, Any]) -> str:
    await client.delete_record(
        _required(arguments, "table", str),
        _required(arguments, "id", str),
    )
    return "Record deleted successfully"


async def _query_records(client: DataverseClient, arguments: dict[str, Any]) -> str:
    top = _optional_count(arguments, "top")
    records = await client.query_records(
        _required(arguments, "table", str),
        select=_optional(arguments, "select", list),
        filter=_optional(arguments, "filter", str),
        top=top,
    )
    return _to_json(records)


async def _list_tables(client: DataverseClient, arguments: dict[str, Any]) -> str:
    return _to_json(await client.list_tables())


async def _get_table_schema(client: DataverseClient, arguments: dict[str, Any]) -> str:
    return _to_json(await client.get_table_schema(_required(arguments, "table", str)))


ToolHandler = Callable[[DataverseClient, dict[str, Any]], Awaitable[str]]

TOOL_HANDLERS: dict[str, ToolHandler] = {
    "create_record": _create_record,
    "update_record": _update_record,
    "delete_record": _delete_record,
    "query_records": _query_records,
    "list_tables": _list_tables,
    "get_table_schema": _get_table_schema,
}


async def call_tool(
    client: DataverseClient,
    name: str,
    arguments: Optional[dict[str, Any]] = None,
) -> ToolResponse:
    """Run one tool invocation and report the outcome as text.

    Args:
        client: The adapter to run against.
        name: Tool name as the agent sent it.
        arguments: Tool arguments; ``None`` is treated as ``{}``.

    Returns:
        A ToolResponse.  ``is_error`` is True for every failure, with the
        text ``"Error: <message>"``.
    """
    try:
        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            raise ToolArgumentError(f"Unknown tool: {name}")
        text = await handler(client, arguments or {})
    except Exception as exc:
        logger.warning("Tool %s failed: %s", name, exc)
        return ToolResponse.text(f"Error: {exc}", is_error=True)
    return ToolResponse.text(text)
