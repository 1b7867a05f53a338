from __future__ import annotations

import time
from typing import Callable

import httpx
import pytest
from azure.core.credentials import AccessToken

from core.dataverse import DataverseClient
from core.models import AttributeDescriptor, CreatedRecord, TableDescriptor

BASE_URL = "https://contoso.crm.dynamics.com"


class FakeCredential:
    """Stands in for ClientSecretCredential; records requested scopes."""

    def __init__(self, token: str = "test-token", error: Exception | None = None):
        self.token = token
        self.error = error
        self.scopes: list[tuple[str, ...]] = []

    async def get_token(self, *scopes, **kwargs):
        self.scopes.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + 3600)


class RecordingHandler:
    """httpx.MockTransport handler that keeps every request it sees."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def credential() -> FakeCredential:
    return FakeCredential()


@pytest.fixture
def make_client(credential):
    """Build a DataverseClient whose HTTP traffic goes to ``respond``."""

    def _make(respond, base_url: str = BASE_URL + "/", cred=None):
        handler = RecordingHandler(respond)
        client = DataverseClient(
            base_url,
            "tenant-id",
            "client-id",
            "client-secret",
            credential=cred or credential,
            transport=httpx.MockTransport(handler),
        )
        return client, handler

    return _make


class FakeAdapter:
    """Records calls instead of talking to Dataverse."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple] = []

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def create_record(self, table, data):
        self._record("create_record", table, data)
        return CreatedRecord(id="11111111-2222-3333-4444-555555555555")

    async def update_record(self, table, id, data):
        self._record("update_record", table, id, data)

    async def delete_record(self, table, id):
        self._record("delete_record", table, id)

    async def query_records(self, table, select=None, filter=None, top=None):
        self._record("query_records", table, select, filter, top)
        return [{"fullname": "Ada Lovelace", "contactid": "c-1"}]

    async def list_tables(self):
        self._record("list_tables")
        return [TableDescriptor("account", "Account", None)]

    async def get_table_schema(self, table):
        self._record("get_table_schema", table)
        return [AttributeDescriptor("name", None, "String", True, True)]
