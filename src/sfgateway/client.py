from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import requests

from .auth import CredentialExchanger
from .config import ACCEPTED_CREDENTIALS, ServiceConfig
from .exceptions import (
    AuthError,
    ConfigurationError,
    NetworkError,
    RequestError,
    SalesforceError,
)
from .executor import RequestExecutor
from .session import Session

_logger = logging.getLogger(__name__)

# Field attributes kept from /sobjects/{name}/describe, in output order.
FIELD_ATTRIBUTES = ("label", "name", "updateable", "type", "length", "picklistValues")

# nextRecordsUrl is instance-relative ("/services/data/v58.0/query/01g...");
# the executor wants it relative to the data API base.
_DATA_PREFIX = re.compile(r"^/?services/data/v[\d.]+")


def _strategies_hint() -> str:
    return " Set one of: " + "; ".join(
        f"{i}. {combo}" for i, combo in enumerate(ACCEPTED_CREDENTIALS, start=1)
    )


class ConnectionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    TOKEN_PROVIDED = "token_provided"
    CREDENTIALS_PROVIDED = "credentials_provided"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class SalesforceClient:
    """Salesforce REST client: session establishment, queries, metadata, CRUD."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        http: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        field_cache: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ) -> None:
        self.config = config or ServiceConfig.from_env()
        self.log = logger or _logger
        self.http = http or requests.Session()
        self.exchanger = CredentialExchanger(self.config, http=self.http, logger=self.log)
        self.executor = RequestExecutor(
            self.config, self.exchanger, http=self.http, logger=self.log
        )
        self.state = ConnectionState.UNAUTHENTICATED
        # Shared between clients when the caller passes one in (see tools.py).
        self._field_cache = field_cache if field_cache is not None else {}

    # --------------------------- Session state -------------------------

    @property
    def session(self) -> Session:
        return self.executor.session

    @property
    def instance_url(self) -> Optional[str]:
        return self.session.instance_url

    @property
    def api_version(self) -> str:
        return self.config.api_version

    def is_authenticated(self) -> bool:
        return self.session.is_valid()

    def connect(self) -> Session:
        """Establish a session, trying each credential strategy in order.

        1. pre-supplied access token + instance URL, checked with a probe call;
        2. username/password exchange.

        An unexpected error during either strategy gets one recovery attempt
        through the refresh token, if a prior session left one behind.
        """
        self.config.require_app_credentials()
        previous = self.session
        exchange_error: Optional[SalesforceError] = None
        token_tried = False

        try:
            session = None
            if self.config.has_token:
                token_tried = True
                session = self._try_access_token(previous)
            if session is None and self.config.has_password_credentials:
                try:
                    session = self._try_password_grant()
                except (AuthError, NetworkError) as e:
                    exchange_error = e
        except ConfigurationError:
            raise
        except Exception as e:
            return self._recover(previous, e)

        if session is not None:
            return self._authenticated(session)

        self._failed()
        if exchange_error is not None:
            raise AuthError(
                f"Username/password authentication failed: {exchange_error}." + _strategies_hint(),
                status=getattr(exchange_error, "status", None),
            ) from exchange_error
        if token_tried:
            raise AuthError(
                "Access token is invalid or expired and no username/password "
                "credentials are configured." + _strategies_hint()
            )
        raise ConfigurationError(
            list(ACCEPTED_CREDENTIALS),
            "No valid authentication method found." + _strategies_hint(),
        )

    def disconnect(self) -> None:
        """Forget the current session (token, instance URL and refresh token)."""
        self.session.clear()
        self.state = ConnectionState.UNAUTHENTICATED

    # --------------------------- Queries -------------------------------

    def query(self, soql: str) -> Dict[str, Any]:
        """Run a SOQL query and return the first page only."""
        return self._get_json("query", params={"q": soql})

    def query_all(self, soql: str) -> Dict[str, Any]:
        """Run a SOQL query and drain every page, preserving record order."""
        records: List[Dict[str, Any]] = []
        total = 0
        for page in self._iter_pages(soql):
            records.extend(page.get("records") or [])
            total = page.get("totalSize", len(records))
        return {"totalSize": total, "done": True, "records": records}

    def iter_query(self, soql: str) -> Iterator[Dict[str, Any]]:
        """Yield records across pages via nextRecordsUrl."""
        for page in self._iter_pages(soql):
            yield from page.get("records") or []

    def search(self, sosl: str) -> List[Dict[str, Any]]:
        """Run a SOSL search; no matches gives an empty list."""
        res = self._get_json("search", params={"q": sosl})
        if isinstance(res, list):
            return res
        return (res or {}).get("searchRecords") or []

    # --------------------------- Metadata ------------------------------

    def describe_global(self) -> Dict[str, Any]:
        """Return /sobjects (global describe)."""
        return self._get_json("sobjects")

    def describe_object(self, name: str) -> Dict[str, Any]:
        """Return /sobjects/{name}/describe."""
        return self._get_json(f"sobjects/{name}/describe")

    def get_object_fields(self, object_name: str) -> List[Dict[str, Any]]:
        """Field summaries for ``object_name``, cached for the client's lifetime.

        The cache is never refreshed implicitly; use :meth:`clear_field_cache`
        after a schema change.
        """
        cached = self._field_cache.get(object_name)
        if cached is not None:
            self.log.debug("Field cache hit for %s", object_name)
            return cached

        describe = self.describe_object(object_name)
        fields = [
            {attr: field.get(attr) for attr in FIELD_ATTRIBUTES}
            for field in describe.get("fields", [])
        ]
        self._field_cache[object_name] = fields
        return fields

    def clear_field_cache(self, object_name: Optional[str] = None) -> None:
        if object_name is None:
            self._field_cache.clear()
        else:
            self._field_cache.pop(object_name, None)

    def limits(self) -> Dict[str, Any]:
        """Return API usage limits."""
        return self._get_json("limits")

    # --------------------------- Records -------------------------------

    def get_record(
        self, object_name: str, record_id: str, fields: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        params = {"fields": ",".join(fields)} if fields else None
        return self._get_json(f"sobjects/{object_name}/{record_id}", params=params)

    def create_record(self, object_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record; returns the service's ``{id, success, errors}`` result."""
        r = self.executor.execute("POST", f"sobjects/{object_name}", body=data)
        return _decode(r)

    def update_record(self, object_name: str, record_id: str, data: Dict[str, Any]) -> bool:
        self.executor.execute("PATCH", f"sobjects/{object_name}/{record_id}", body=data)
        return True

    def delete_record(self, object_name: str, record_id: str) -> bool:
        self.executor.execute("DELETE", f"sobjects/{object_name}/{record_id}")
        return True

    # --------------------------- Pass-throughs -------------------------

    def tooling_execute(self, action: str, method: str = "GET", data: Optional[Any] = None) -> Any:
        """Call the Tooling API at /services/data/{version}/tooling/{action}."""
        r = self.executor.execute(method, action, body=data, api="tooling")
        return _decode(r, allow_text=True)

    def apex_execute(self, action: str, method: str = "GET", data: Optional[Any] = None) -> Any:
        """Call a custom Apex REST endpoint at /services/apexrest/{action}."""
        r = self.executor.execute(method, action, body=data, api="apexrest")
        return _decode(r, allow_text=True)

    def restful(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
    ) -> Any:
        """Direct call against the data API, relative to /services/data/{version}."""
        r = self.executor.execute(method, path, body=data, params=params)
        return _decode(r, allow_text=True)

    # --------------------------- Internal helpers --------------------

    def _get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        return _decode(self.executor.execute("GET", path, params=params))

    def _iter_pages(self, soql: str) -> Iterator[Dict[str, Any]]:
        page = self.query(soql)
        yield page
        while not page.get("done", True):
            locator = page.get("nextRecordsUrl")
            if not locator:
                # Guard against a page that is neither done nor continued.
                self.log.warning("Query page has done=false but no nextRecordsUrl; stopping")
                return
            page = self._get_json(_DATA_PREFIX.sub("", locator))
            yield page

    def _try_access_token(self, previous: Session) -> Optional[Session]:
        self.state = ConnectionState.TOKEN_PROVIDED
        self.log.debug("Using access token from configuration")
        self.executor.session = Session(
            access_token=self.config.access_token,
            instance_url=self.config.instance_url,
            refresh_token=previous.refresh_token,
        )
        try:
            self.describe_global()
        except (AuthError, RequestError, NetworkError) as e:
            self.log.warning("Access token is invalid or expired: %s", e)
            self.executor.session = previous
            return None
        return self.executor.session

    def _try_password_grant(self) -> Session:
        self.state = ConnectionState.CREDENTIALS_PROVIDED
        self.log.debug("Using username/password authentication")
        cfg = self.config
        return self.exchanger.exchange_with_credentials(
            cfg.username or "",
            cfg.password or "",
            cfg.security_token or "",
            sandbox=cfg.sandbox,
        )

    def _recover(self, previous: Session, error: Exception) -> Session:
        self.log.error("Salesforce connection failed: %s", error)
        held = self.session if self.session.refresh_token else previous
        if held.refresh_token:
            self.log.info("Attempting to refresh access token")
            try:
                return self._authenticated(
                    self.exchanger.renew(held, sandbox=self.config.sandbox)
                )
            except (AuthError, NetworkError) as e:
                self.log.error("Token refresh failed: %s", e)
        self._failed()
        raise AuthError(f"Salesforce connection failed: {error}") from error

    def _authenticated(self, session: Session) -> Session:
        self.executor.session = session
        self.state = ConnectionState.AUTHENTICATED
        self.log.info(
            "Connected to Salesforce instance=%s api=%s",
            session.instance_url,
            self.config.api_version,
        )
        return session

    def _failed(self) -> None:
        self.executor.session = Session()
        self.state = ConnectionState.FAILED


def _decode(r: requests.Response, *, allow_text: bool = False) -> Any:
    """JSON body of ``r``, or None for empty (e.g. 204) responses.

    A body that is not JSON is returned as text when ``allow_text`` is set
    (custom Apex REST and Tooling endpoints may answer in plain text);
    otherwise it is a RequestError.
    """
    if r.status_code == 204 or not r.content:
        return None
    try:
        return r.json()
    except ValueError as e:
        if allow_text:
            return r.text
        raise RequestError(
            f"Salesforce API Error: expected a JSON body (HTTP {r.status_code})",
            status=r.status_code,
        ) from e
