import json

import pytest
from click.testing import CliRunner

from sfgateway.cli import cli
from sfgateway.exceptions import AuthError, RequestError
from sfgateway.session import Session

INSTANCE = "https://example.my.salesforce.com"


class DummyClient:
    """Offline stand-in for SalesforceClient as used by the CLI commands."""

    connect_error = None
    call_error = None
    last = None

    def __init__(self, config):
        self.config = config
        self.session = Session("TOKEN", INSTANCE, refresh_token="R")
        self.instance_url = INSTANCE
        self.api_version = config.api_version
        self.calls = []
        DummyClient.last = self

    def connect(self):
        if DummyClient.connect_error:
            raise DummyClient.connect_error
        return self.session

    def _record(self, *call):
        self.calls.append(call)
        if DummyClient.call_error:
            raise DummyClient.call_error

    def limits(self):
        return {"DailyApiRequests": {"Max": 15000, "Remaining": 14999}}

    def query(self, soql):
        self._record("query", soql)
        return {"totalSize": 2, "done": False, "records": [{"Id": "001"}]}

    def query_all(self, soql):
        self._record("query_all", soql)
        return {"totalSize": 2, "done": True, "records": [{"Id": "001"}, {"Id": "002"}]}

    def search(self, sosl):
        self._record("search", sosl)
        return [{"Id": "003"}]

    def describe_global(self):
        self._record("describe_global")
        return {
            "sobjects": [
                {"name": "Contact", "queryable": True},
                {"name": "AccountHistory", "queryable": False},
                {"name": "Account", "queryable": True},
            ]
        }

    def get_object_fields(self, name):
        self._record("get_object_fields", name)
        return [{"name": "Id", "type": "id"}, {"name": "Name", "type": "string"}]

    def get_record(self, name, record_id, fields=None):
        self._record("get_record", name, record_id, fields)
        return {"Id": record_id}

    def create_record(self, name, data):
        self._record("create_record", name, data)
        return {"id": "001NEW", "success": True, "errors": []}

    def update_record(self, name, record_id, data):
        self._record("update_record", name, record_id, data)
        return True

    def delete_record(self, name, record_id):
        self._record("delete_record", name, record_id)
        return True

    def tooling_execute(self, action, method, data):
        self._record("tooling_execute", action, method, data)
        return {"size": 0}

    def apex_execute(self, action, method, data):
        self._record("apex_execute", action, method, data)
        return None

    def restful(self, path, method, params, data):
        self._record("restful", path, method, params, data)
        return {"ok": True}


@pytest.fixture
def dummy_client(monkeypatch):
    DummyClient.connect_error = None
    DummyClient.call_error = None
    DummyClient.last = None
    monkeypatch.setattr("sfgateway.cli_support.SalesforceClient", DummyClient)
    return DummyClient


def run(*args, **kwargs):
    return CliRunner().invoke(cli, list(args), **kwargs)


def test_cli_help_shows_usage():
    result = run()
    assert result.exit_code == 0
    assert "Salesforce gateway CLI" in result.output
    assert "login" in result.output
    assert "query" in result.output


def test_cli_version_option():
    result = run("--version")
    assert result.exit_code == 0
    assert "sfgateway" in result.output.lower()


def test_login_success(dummy_client):
    result = run("login", "--show-limits")
    assert result.exit_code == 0
    assert "Connected to Salesforce." in result.output
    assert f"Instance URL: {INSTANCE}" in result.output
    assert "Refresh token: yes" in result.output
    assert "14999 remaining of 15000" in result.output
    assert "TOKEN" not in result.output


def test_login_sandbox_override(dummy_client):
    assert run("login", "--sandbox").exit_code == 0
    assert dummy_client.last.config.sandbox is True


def test_login_failure(dummy_client):
    dummy_client.connect_error = AuthError("Authentication failed (HTTP 400)")
    result = run("login")
    assert result.exit_code != 0
    assert "Login failed: Authentication failed (HTTP 400)" in result.output


def test_login_without_app_credentials_lists_missing_settings():
    # Real client: the empty environment fails before any network call.
    result = run("login")
    assert result.exit_code != 0
    assert "Missing Salesforce credentials: SALESFORCE_CLIENT_ID, SALESFORCE_CLIENT_SECRET" in (
        result.output
    )
    assert "sfgateway status" in result.output


def test_status_never_prints_secrets(monkeypatch):
    monkeypatch.setenv("SALESFORCE_CLIENT_ID", "id-value")
    monkeypatch.setenv("SALESFORCE_PASSWORD", "hunter2")
    monkeypatch.setenv("SALESFORCE_SANDBOX", "true")

    result = run("status")

    assert result.exit_code == 0
    assert "Client ID: set" in result.output
    assert "Client Secret: missing" in result.output
    assert "Sandbox: enabled" in result.output
    assert "https://test.salesforce.com" in result.output
    assert "hunter2" not in result.output
    assert "id-value" not in result.output


def test_query_drains_all_pages(dummy_client):
    result = run("query", "SELECT Id FROM Account")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [r["Id"] for r in data["records"]] == ["001", "002"]
    assert dummy_client.last.calls == [("query_all", "SELECT Id FROM Account")]


def test_query_single_page(dummy_client):
    result = run("query", "--single-page", "SELECT Id FROM Account")
    assert result.exit_code == 0
    assert json.loads(result.output)["done"] is False


def test_query_pretty_print(dummy_client):
    result = run("query", "--pretty", "SELECT Id FROM Account")
    assert result.exit_code == 0
    assert "{\n  " in result.output


def test_query_error(dummy_client):
    dummy_client.call_error = RequestError("Salesforce API Error: MALFORMED_QUERY", status=400)
    result = run("query", "SELEC Id")
    assert result.exit_code == 1
    assert "MALFORMED_QUERY" in result.output


def test_search(dummy_client):
    result = run("search", "FIND {Acme}")
    assert result.exit_code == 0
    assert json.loads(result.output) == [{"Id": "003"}]


def test_objects_lists_queryable_by_default(dummy_client):
    result = run("objects")
    assert result.output.split() == ["Account", "Contact"]
    result = run("objects", "--all")
    assert result.output.split() == ["Account", "AccountHistory", "Contact"]


def test_fields_names_only(dummy_client):
    result = run("fields", "Account", "--names-only")
    assert result.exit_code == 0
    assert result.output.split() == ["Id", "Name"]


def test_get_with_fields(dummy_client):
    result = run("get", "Account", "001A", "--field", "Id", "--field", "Name")
    assert result.exit_code == 0
    assert dummy_client.last.calls == [("get_record", "Account", "001A", ["Id", "Name"])]


def test_create_update_delete(dummy_client):
    result = run("create", "Account", '{"Name": "Acme"}')
    assert result.exit_code == 0
    assert json.loads(result.output)["id"] == "001NEW"

    result = run("update", "Account", "001A", '{"Name": "New"}')
    assert result.exit_code == 0
    assert "Updated Account 001A" in result.output

    result = run("delete", "Account", "001A", "--yes")
    assert result.exit_code == 0
    assert "Deleted Account 001A" in result.output


def test_delete_can_be_declined(dummy_client):
    result = run("delete", "Account", "001A", input="n\n")
    assert result.exit_code != 0
    assert dummy_client.last is None


def test_create_rejects_non_object_json(dummy_client):
    result = run("create", "Account", "[1, 2]")
    assert result.exit_code == 2
    assert "JSON object" in result.output


def test_rest_routes_by_api(dummy_client):
    assert run("rest", "limits", "--params", '{"a": "1"}').exit_code == 0
    assert dummy_client.last.calls == [("restful", "limits", "GET", {"a": "1"}, None)]

    assert run("rest", "sobjects", "--api", "tooling").exit_code == 0
    assert dummy_client.last.calls == [("tooling_execute", "sobjects", "GET", None)]

    result = run("rest", "Orders", "--api", "apexrest", "-X", "POST", "--data", '{"id": 1}')
    assert result.exit_code == 0
    assert dummy_client.last.calls == [("apex_execute", "Orders", "POST", {"id": 1})]


def test_rest_rejects_invalid_json(dummy_client):
    result = run("rest", "limits", "--data", "{not json")
    assert result.exit_code == 2
    assert "not valid JSON" in result.output


def test_tools_lists_declarations():
    result = run("tools")
    assert result.exit_code == 0
    assert "run_soql_query: Executes a SOQL query" in result.output


class FakeDispatcher:
    initialized = False
    reply = "SOQL Query Results (JSON):\n{}"
    received = None

    def initialize(self):
        FakeDispatcher.initialized = True
        return True

    def call(self, name, args):
        FakeDispatcher.received = (name, args)
        return FakeDispatcher.reply


@pytest.fixture
def fake_dispatcher(monkeypatch):
    FakeDispatcher.initialized = False
    FakeDispatcher.reply = "SOQL Query Results (JSON):\n{}"
    FakeDispatcher.received = None
    monkeypatch.setattr("sfgateway.command_tools.ToolDispatcher", FakeDispatcher)
    return FakeDispatcher


def test_call_invokes_tool(fake_dispatcher):
    result = run("call", "run_soql_query", '{"query": "SELECT Id FROM Account"}')
    assert result.exit_code == 0
    assert fake_dispatcher.initialized
    assert fake_dispatcher.received == ("run_soql_query", {"query": "SELECT Id FROM Account"})


def test_call_authenticate_password_skips_startup_connect(fake_dispatcher):
    fake_dispatcher.reply = "✅ Password authentication successful!"
    result = run("call", "authenticate_password", '{"username": "u", "password": "p"}')
    assert result.exit_code == 0
    assert not fake_dispatcher.initialized


def test_call_error_exits_nonzero(fake_dispatcher):
    fake_dispatcher.reply = "❌ Error: Not authenticated."
    result = run("call", "run_soql_query", '{"query": "x"}')
    assert result.exit_code == 1
    assert "Not authenticated" in result.output
