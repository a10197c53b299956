import os
from unittest.mock import MagicMock

import pytest

from sfgateway.client import SalesforceClient
from sfgateway.config import ServiceConfig
from sfgateway.session import Session

INSTANCE = "https://example.my.salesforce.com"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep developer credentials and .env files out of every test."""
    for var in list(os.environ):
        if var.startswith(("SALESFORCE_", "SF_")):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def make_response():
    """Factory for MagicMock HTTP responses, as returned by requests.Session.request."""

    def _make(status_code=200, json_data=None, text=""):
        r = MagicMock()
        r.status_code = status_code
        r.text = text
        if json_data is None:
            r.content = b""
            r.json.side_effect = ValueError("No JSON body")
        else:
            r.content = b"{}"
            r.json.return_value = json_data
        return r

    return _make


@pytest.fixture
def token_response(make_response):
    def _make(access_token="NEW_TOKEN", refresh_token=None, instance_url=INSTANCE):
        payload = {
            "access_token": access_token,
            "instance_url": instance_url,
            "id": "https://login.salesforce.com/id/00D/005",
            "token_type": "Bearer",
            "issued_at": "1700000000000",
            "signature": "sig",
        }
        if refresh_token:
            payload["refresh_token"] = refresh_token
        return make_response(200, payload)

    return _make


@pytest.fixture
def password_config():
    return ServiceConfig(
        client_id="id1",
        client_secret="sec1",
        username="u@x.com",
        password="p",
        security_token="tok",
    )


@pytest.fixture
def token_config():
    return ServiceConfig(
        client_id="id1",
        client_secret="sec1",
        access_token="PRESUPPLIED",
        instance_url=INSTANCE + "/",
    )


@pytest.fixture
def connected_client(token_config):
    """Return a client that already holds a session with a refresh token."""
    client = SalesforceClient(token_config)
    client.executor.session = Session(
        access_token="OLD_TOKEN", instance_url=INSTANCE, refresh_token="REFRESH"
    )
    return client
