from __future__ import annotations

import pytest

from core.config import Settings, load_settings
from core.errors import ConfigurationError
from core.models import EndpointConfig

FULL_ENV = {
    "DATAVERSE_URL": "https://contoso.crm.dynamics.com/",
    "TENANT_ID": "tenant",
    "CLIENT_ID": "client",
    "CLIENT_SECRET": "secret",
}


def test_load_settings_reads_all_values():
    settings = load_settings(FULL_ENV)

    assert settings == Settings(
        dataverse_url="https://contoso.crm.dynamics.com/",
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        log_level="INFO",
    )


def test_missing_and_blank_values_are_all_reported():
    env = dict(FULL_ENV, TENANT_ID="  ")
    del env["CLIENT_SECRET"]

    with pytest.raises(ConfigurationError) as info:
        load_settings(env)

    assert info.value.missing == ["TENANT_ID", "CLIENT_SECRET"]
    assert "TENANT_ID, CLIENT_SECRET" in str(info.value)


def test_log_level_is_optional_and_normalized():
    assert load_settings(dict(FULL_ENV, LOG_LEVEL="debug")).log_level == "DEBUG"


def test_reads_process_environment_by_default(monkeypatch):
    for name, value in FULL_ENV.items():
        monkeypatch.setenv(name, value)

    assert load_settings().client_id == "client"


def test_endpoint_derives_resource_url_and_scope():
    endpoint = load_settings(FULL_ENV).endpoint()

    assert endpoint.base_url == "https://contoso.crm.dynamics.com"
    assert endpoint.resource_url == "https://contoso.crm.dynamics.com/api/data/v9.2"
    assert endpoint.scope == "https://contoso.crm.dynamics.com/.default"


def test_endpoint_repr_hides_secret():
    endpoint = EndpointConfig("https://org.crm.dynamics.com", "t", "c", "s3cr3t")

    assert "s3cr3t" not in repr(endpoint)
