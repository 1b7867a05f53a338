from __future__ import annotations

import json

import httpx
import pytest

from core.errors import DataverseRequestError
from tests.conftest import FakeAdapter
from tools.handlers import TOOL_HANDLERS, ToolResponse, call_tool


def test_all_six_tools_are_registered():
    assert set(TOOL_HANDLERS) == {
        "create_record",
        "update_record",
        "delete_record",
        "query_records",
        "list_tables",
        "get_table_schema",
    }


@pytest.mark.asyncio
async def test_create_record_returns_id_as_json():
    adapter = FakeAdapter()

    response = await call_tool(adapter, "create_record", {"table": "accounts", "data": {"name": "Acme"}})

    assert response.is_error is False
    assert json.loads(response.first_text) == {"id": "11111111-2222-3333-4444-555555555555"}
    assert adapter.calls == [("create_record", "accounts", {"name": "Acme"})]


@pytest.mark.asyncio
async def test_update_record_returns_confirmation():
    adapter = FakeAdapter()

    response = await call_tool(
        adapter, "update_record", {"table": "accounts", "id": "abc-123", "data": {"name": "X"}}
    )

    assert response == ToolResponse(
        content=[{"type": "text", "text": "Record updated successfully"}], is_error=False
    )
    assert adapter.calls == [("update_record", "accounts", "abc-123", {"name": "X"})]


@pytest.mark.asyncio
async def test_delete_record_returns_confirmation():
    response = await call_tool(FakeAdapter(), "delete_record", {"table": "accounts", "id": "abc-123"})

    assert response.first_text == "Record deleted successfully"
    assert not response.is_error


@pytest.mark.asyncio
async def test_query_records_passes_options_and_serializes_rows():
    adapter = FakeAdapter()

    response = await call_tool(
        adapter,
        "query_records",
        {"table": "contacts", "select": ["fullname"], "filter": "statecode eq 0", "top": 5.0},
    )

    assert json.loads(response.first_text) == [{"fullname": "Ada Lovelace", "contactid": "c-1"}]
    assert adapter.calls == [("query_records", "contacts", ["fullname"], "statecode eq 0", 5)]


@pytest.mark.asyncio
async def test_query_records_optional_arguments_default_to_none():
    adapter = FakeAdapter()

    await call_tool(adapter, "query_records", {"table": "contacts"})

    assert adapter.calls == [("query_records", "contacts", None, None, None)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "top, message",
    [
        (5.5, "Error: Argument 'top' must be an integer, got 5.5"),
        (True, "Error: Argument 'top' must be an integer"),
        ("10", "Error: Argument 'top' must be an integer"),
    ],
)
async def test_query_records_rejects_non_integer_top(top, message):
    adapter = FakeAdapter()

    response = await call_tool(adapter, "query_records", {"table": "contacts", "top": top})

    assert response.is_error is True
    assert response.first_text == message
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_metadata_tools_serialize_absent_labels_as_null():
    tables = await call_tool(FakeAdapter(), "list_tables", None)
    schema = await call_tool(FakeAdapter(), "get_table_schema", {"table": "account"})

    assert json.loads(tables.first_text) == [
        {"logicalName": "account", "displayName": "Account", "description": None}
    ]
    assert json.loads(schema.first_text) == [
        {
            "logicalName": "name",
            "displayName": None,
            "type": "String",
            "canCreate": True,
            "canUpdate": True,
        }
    ]


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_as_error():
    response = await call_tool(FakeAdapter(), "drop_table", {"table": "accounts"})

    assert response.is_error is True
    assert response.first_text == "Error: Unknown tool: drop_table"


@pytest.mark.asyncio
async def test_missing_required_argument_is_reported_as_error():
    adapter = FakeAdapter()

    response = await call_tool(adapter, "update_record", {"table": "accounts", "data": {}})

    assert response.is_error is True
    assert response.first_text == "Error: Missing required argument: id"
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_wrongly_typed_argument_is_reported_as_error():
    response = await call_tool(FakeAdapter(), "create_record", {"table": "accounts", "data": "name=Acme"})

    assert response.is_error is True
    assert "'data' must be of type dict" in response.first_text


@pytest.mark.asyncio
async def test_remote_rejection_is_wrapped_not_raised():
    adapter = FakeAdapter(error=DataverseRequestError(403, "Principal user is missing prvDeleteAccount privilege"))

    response = await call_tool(adapter, "delete_record", {"table": "accounts", "id": "abc-123"})

    assert response.is_error is True
    assert response.content == [
        {
            "type": "text",
            "text": "Error: Request failed with status code 403: "
            "Principal user is missing prvDeleteAccount privilege",
        }
    ]


@pytest.mark.asyncio
async def test_delete_403_end_to_end(make_client):
    client, _ = make_client(
        lambda request: httpx.Response(403, json={"error": {"code": "0x80040220", "message": "Access denied"}})
    )

    response = await call_tool(client, "delete_record", {"table": "accounts", "id": "abc-123"})

    assert response.is_error is True
    assert response.first_text == "Error: Request failed with status code 403: Access denied"


@pytest.mark.asyncio
async def test_update_end_to_end_on_204(make_client):
    client, handler = make_client(lambda request: httpx.Response(204))

    response = await call_tool(
        client, "update_record", {"table": "accounts", "id": "abc-123", "data": {"name": "X"}}
    )

    assert response.is_error is False
    assert response.first_text == "Record updated successfully"
    assert handler.last.method == "PATCH"
    assert handler.last.url.path == "/api/data/v9.2/accounts(abc-123)"
