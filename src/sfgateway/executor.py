from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .auth import CredentialExchanger
from .config import DEFAULT_TIMEOUT, ServiceConfig
from .exceptions import AuthError, NetworkError, RequestError
from .session import Session

_logger = logging.getLogger(__name__)

# Base paths under the instance URL, by API family.
API_BASES: Dict[str, str] = {
    "data": "/services/data/{version}",
    "tooling": "/services/data/{version}/tooling",
    "apexrest": "/services/apexrest",
}


def join_url(root: str, base: str, path: str = "") -> str:
    """Join instance URL, API base and relative path with single slashes."""
    url = f"{root.rstrip('/')}/{base.strip('/')}"
    path = path.lstrip("/")
    return f"{url}/{path}" if path else url


def _service_message(r: requests.Response) -> Optional[str]:
    """Pull ``message`` from ``{...}`` or ``[{...}, ...]`` error bodies."""
    try:
        body = r.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
    elif isinstance(body, list) and body and isinstance(body[0], dict):
        message = body[0].get("message")
    else:
        message = None
    return message if isinstance(message, str) and message else None


class RequestExecutor:
    """Issue authenticated calls and recover once from an expired session.

    Every call made on behalf of a client goes through :meth:`execute`; an
    HTTP 401 triggers a single renewal followed by a single retry of the
    same request.
    """

    def __init__(
        self,
        config: ServiceConfig,
        exchanger: CredentialExchanger,
        *,
        http: Optional[requests.Session] = None,
        session: Optional[Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.exchanger = exchanger
        self.http = http or exchanger.http
        self.session = session or Session()
        self.log = logger or _logger

    # --------------------------- Public methods -----------------------

    def url_for(self, path: str, api: str = "data") -> str:
        if not self.session.instance_url:
            raise AuthError("Not authenticated. Call connect() first.")
        try:
            base = API_BASES[api].format(version=self.config.api_version)
        except KeyError:
            raise ValueError(f"Unknown API base {api!r}; use one of {sorted(API_BASES)}") from None
        return join_url(self.session.instance_url, base, path)

    def execute(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        *,
        api: str = "data",
    ) -> requests.Response:
        """Send one authenticated request; ``path`` is relative to the API base."""
        if not self.session.is_valid():
            raise AuthError("Not authenticated. Call connect() first.")

        method = method.upper()
        r = self._send(method, path, body, params, api)
        if r.status_code == 401:
            self.log.info("HTTP 401 for %s %s; renewing session once", method, path)
            first_error = self._request_error(r)
            try:
                self.session = self.exchanger.renew(self.session, sandbox=self.config.sandbox)
            except (AuthError, NetworkError) as e:
                self.log.warning("Session renewal failed: %s", e)
                raise first_error from e
            r = self._send(method, path, body, params, api)

        if r.status_code >= 300:
            error = self._request_error(r)
            self.log.error("HTTP %s error for %s %s: %s", r.status_code, method, path, error)
            raise error
        return r

    # --------------------------- Internal helpers --------------------

    def _send(
        self,
        method: str,
        path: str,
        body: Optional[Any],
        params: Optional[Dict[str, Any]],
        api: str,
    ) -> requests.Response:
        url = self.url_for(path, api)
        headers = {"Authorization": f"Bearer {self.session.access_token}"}
        self.log.debug("%s %s", method, url)
        try:
            return self.http.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=self.config.timeout or DEFAULT_TIMEOUT,
            )
        except requests.RequestException as e:
            self.log.warning("Request error for %s %s: %s", method, url, e)
            raise NetworkError("Network error: Unable to reach Salesforce API") from e

    @staticmethod
    def _request_error(r: requests.Response) -> RequestError:
        message = _service_message(r) or f"HTTP {r.status_code}"
        return RequestError(f"Salesforce API Error: {message}", status=r.status_code)
