"""Tool declarations and dispatch for agent callers.

The dispatcher is transport-agnostic: a protocol server (or the ``call``
CLI command) hands it a tool name plus a JSON-style argument mapping and
gets text back. Client failures are reported in that text instead of being
raised, so one bad call never takes down the caller's loop.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from .client import SalesforceClient
from .config import ServiceConfig
from .exceptions import AuthError, SalesforceError

_logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "POST", "PATCH", "DELETE"]


class ToolArgumentError(SalesforceError):
    """A tool was called without one of its required arguments."""


def _schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_STR = {"type": "string"}
_DATA = {
    "type": "object",
    "description": "Field values / request body",
    "additionalProperties": True,
}
_METHOD = {"type": "string", "enum": HTTP_METHODS, "description": "HTTP method (default: GET)"}

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "authenticate_password",
        "description": "Authenticate using username/password with the OAuth password flow",
        "inputSchema": _schema(
            {
                "username": {**_STR, "description": "Salesforce username"},
                "password": {**_STR, "description": "Salesforce password"},
                "security_token": {**_STR, "description": "Security token (if required)"},
                "sandbox": {"type": "boolean", "description": "Use a sandbox org (default: false)"},
            },
            ["username", "password"],
        ),
    },
    {
        "name": "run_soql_query",
        "description": "Executes a SOQL query against Salesforce (all pages)",
        "inputSchema": _schema({"query": {**_STR, "description": "The SOQL query"}}, ["query"]),
    },
    {
        "name": "run_sosl_search",
        "description": "Executes a SOSL search against Salesforce",
        "inputSchema": _schema(
            {"search": {**_STR, "description": 'e.g. "FIND {John Smith} IN ALL FIELDS"'}},
            ["search"],
        ),
    },
    {
        "name": "get_object_fields",
        "description": "Retrieves field metadata for a Salesforce object",
        "inputSchema": _schema({"object_name": _STR}, ["object_name"]),
    },
    {
        "name": "get_record",
        "description": "Retrieves a specific record by ID",
        "inputSchema": _schema(
            {"object_name": _STR, "record_id": _STR}, ["object_name", "record_id"]
        ),
    },
    {
        "name": "create_record",
        "description": "Creates a new record",
        "inputSchema": _schema({"object_name": _STR, "data": _DATA}, ["object_name", "data"]),
    },
    {
        "name": "update_record",
        "description": "Updates an existing record",
        "inputSchema": _schema(
            {"object_name": _STR, "record_id": _STR, "data": _DATA},
            ["object_name", "record_id", "data"],
        ),
    },
    {
        "name": "delete_record",
        "description": "Deletes a record",
        "inputSchema": _schema(
            {"object_name": _STR, "record_id": _STR}, ["object_name", "record_id"]
        ),
    },
    {
        "name": "tooling_execute",
        "description": "Executes a Tooling API request",
        "inputSchema": _schema(
            {
                "action": {**_STR, "description": "Path under /tooling"},
                "method": _METHOD,
                "data": _DATA,
            },
            ["action"],
        ),
    },
    {
        "name": "apex_execute",
        "description": "Executes an Apex REST request",
        "inputSchema": _schema(
            {
                "action": {**_STR, "description": "Path under /services/apexrest"},
                "method": _METHOD,
                "data": _DATA,
            },
            ["action"],
        ),
    },
    {
        "name": "restful",
        "description": "Makes a direct REST API call to Salesforce",
        "inputSchema": _schema(
            {
                "path": {**_STR, "description": "Path under /services/data/{version}"},
                "method": _METHOD,
                "params": {"type": "object", "additionalProperties": True},
                "data": _DATA,
            },
            ["path"],
        ),
    },
]

_REQUIRED = {t["name"]: t["inputSchema"]["required"] for t in TOOL_DEFINITIONS}


def _json_block(title: str, value: Any) -> str:
    # Plain-text replies from Apex REST / Tooling endpoints are shown verbatim.
    if isinstance(value, str):
        return f"{title} (text):\n{value}"
    return f"{title} (JSON):\n{json.dumps(value, indent=2, default=str)}"


class ToolDispatcher:
    """Route tool calls to a :class:`SalesforceClient` and format the results."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        client_factory: Callable[..., SalesforceClient] = SalesforceClient,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ServiceConfig.from_env()
        self.client_factory = client_factory
        self.log = logger or _logger
        # One metadata cache for the process, surviving re-authentication.
        self.field_cache: Dict[str, List[Dict[str, Any]]] = {}
        self.client = self._new_client(self.config)
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], str]] = {
            "authenticate_password": self._authenticate_password,
            "run_soql_query": self._run_soql_query,
            "run_sosl_search": self._run_sosl_search,
            "get_object_fields": self._get_object_fields,
            "get_record": self._get_record,
            "create_record": self._create_record,
            "update_record": self._update_record,
            "delete_record": self._delete_record,
            "tooling_execute": self._tooling_execute,
            "apex_execute": self._apex_execute,
            "restful": self._restful,
        }

    def list_tools(self) -> List[Dict[str, Any]]:
        return TOOL_DEFINITIONS

    def initialize(self) -> bool:
        """Try to connect with the startup configuration; never raises."""
        try:
            self.client.connect()
        except SalesforceError as e:
            self.log.warning(
                "Salesforce connection not established (%s). "
                "Use the authenticate_password tool to connect.",
                e,
            )
            return False
        self.log.info("Salesforce connection established on startup")
        return True

    def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> str:
        args = dict(arguments or {})
        handler = self._handlers.get(name)
        try:
            if handler is None:
                raise ToolArgumentError(f"Unknown tool: {name}")
            missing = [k for k in _REQUIRED[name] if args.get(k) in (None, "")]
            if missing:
                raise ToolArgumentError(f"{name} requires: {', '.join(missing)}")
            method = args.get("method")
            if method and str(method).upper() not in HTTP_METHODS:
                raise ToolArgumentError(f"Unsupported method {method!r}; use one of {HTTP_METHODS}")
            if name != "authenticate_password":
                self._ensure_authenticated()
            return handler(args)
        except SalesforceError as e:
            self.log.info("Tool %s failed: %s", name, e)
            return f"❌ Error: {e}"

    # --------------------------- Internal helpers --------------------

    def _new_client(self, config: ServiceConfig) -> SalesforceClient:
        return self.client_factory(config, logger=self.log, field_cache=self.field_cache)

    def _ensure_authenticated(self) -> None:
        if not self.client.is_authenticated():
            raise AuthError(
                "Not authenticated. Please authenticate first using the "
                "authenticate_password tool."
            )

    # --------------------------- Handlers ------------------------------

    def _authenticate_password(self, args: Mapping[str, Any]) -> str:
        config = replace(
            self.config,
            username=args["username"],
            password=args["password"],
            security_token=args.get("security_token") or "",
            sandbox=bool(args.get("sandbox", False)),
        )
        client = self._new_client(config)
        client.connect()
        self.client = client
        return (
            "✅ Password authentication successful!\n"
            f"Connected to: {client.instance_url}\n"
            "You can now use other Salesforce tools."
        )

    def _run_soql_query(self, args: Mapping[str, Any]) -> str:
        return _json_block("SOQL Query Results", self.client.query_all(args["query"]))

    def _run_sosl_search(self, args: Mapping[str, Any]) -> str:
        return _json_block("SOSL Search Results", self.client.search(args["search"]))

    def _get_object_fields(self, args: Mapping[str, Any]) -> str:
        name = args["object_name"]
        return _json_block(f"{name} Metadata", self.client.get_object_fields(name))

    def _get_record(self, args: Mapping[str, Any]) -> str:
        name = args["object_name"]
        return _json_block(f"{name} Record", self.client.get_record(name, args["record_id"]))

    def _create_record(self, args: Mapping[str, Any]) -> str:
        name = args["object_name"]
        result = self.client.create_record(name, args["data"])
        return _json_block(f"Create {name} Record Result", result)

    def _update_record(self, args: Mapping[str, Any]) -> str:
        name = args["object_name"]
        ok = self.client.update_record(name, args["record_id"], args["data"])
        return f"Update {name} Record Result: {'Success' if ok else 'Failed'}"

    def _delete_record(self, args: Mapping[str, Any]) -> str:
        name = args["object_name"]
        ok = self.client.delete_record(name, args["record_id"])
        return f"Delete {name} Record Result: {'Success' if ok else 'Failed'}"

    def _tooling_execute(self, args: Mapping[str, Any]) -> str:
        result = self.client.tooling_execute(
            args["action"], args.get("method") or "GET", args.get("data")
        )
        return _json_block("Tooling Execute Result", result)

    def _apex_execute(self, args: Mapping[str, Any]) -> str:
        result = self.client.apex_execute(
            args["action"], args.get("method") or "GET", args.get("data")
        )
        return _json_block("Apex Execute Result", result)

    def _restful(self, args: Mapping[str, Any]) -> str:
        result = self.client.restful(
            args["path"], args.get("method") or "GET", args.get("params"), args.get("data")
        )
        return _json_block("RESTful API Call Result", result)
