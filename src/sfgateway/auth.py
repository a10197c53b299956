"""OAuth token exchange against the Salesforce identity endpoint.

Two grants are supported:

* ``password`` (resource-owner flow): username plus password, with the
  user's security token appended to the password when one is supplied;
* ``refresh_token``: renews a session obtained earlier.

Both return a new :class:`~sfgateway.session.Session` and never modify the
session they were given.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .config import DEFAULT_TIMEOUT, ServiceConfig
from .exceptions import AuthError, TokenEndpointUnreachable
from .session import Session

_logger = logging.getLogger(__name__)

_BAD_REQUEST_HINTS = (
    "check username and password are correct",
    "verify the security token if one is required",
    "ensure the Connected App has the correct OAuth scopes",
    "for a sandbox org, make sure the sandbox flag is enabled",
)


class CredentialExchanger:
    """Trade long-lived credentials (or a refresh token) for a Session."""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        http: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.http = http or requests.Session()
        self.log = logger or _logger

    # --------------------------- Public methods -----------------------

    def exchange_with_credentials(
        self,
        username: str,
        password: str,
        security_token: Optional[str] = "",
        sandbox: bool = False,
    ) -> Session:
        """Run the password grant and return the resulting session.

        Every failure is an AuthError; an unreachable identity endpoint raises
        TokenEndpointUnreachable, which is also a NetworkError.
        """
        combined = f"{password}{security_token}" if security_token else password
        data = {
            "grant_type": "password",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "username": username,
            "password": combined,
        }
        self.log.debug("Authenticating %s with the password flow", username)
        payload = self._post_token(data, sandbox=sandbox, action="Authentication")

        session = Session.from_token_response(payload)
        self._check_session(session, "Authentication")
        self.log.info("Authenticated against instance %s", session.instance_url)
        return session

    def renew(self, session: Session, sandbox: bool = False) -> Session:
        """Run the refresh-token grant for ``session``.

        Fails fast, without any network call, when the session holds no
        refresh token. The refresh token is carried over unless the response
        issues a new one.
        """
        if not session.refresh_token:
            raise AuthError("Token refresh failed: no refresh token available")

        data = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": session.refresh_token,
        }
        self.log.debug("Refreshing access token")
        payload = self._post_token(data, sandbox=sandbox, action="Token refresh")

        renewed = Session.from_token_response(payload, refresh_token=session.refresh_token)
        self._check_session(renewed, "Token refresh")
        self.log.info("Access token refreshed for instance %s", renewed.instance_url)
        return renewed

    # --------------------------- Internal helpers --------------------

    def _post_token(self, data: Dict[str, Any], *, sandbox: bool, action: str) -> Dict[str, Any]:
        url = self.config.token_url(sandbox)
        try:
            r = self.http.request(
                "POST",
                url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.config.timeout or DEFAULT_TIMEOUT,
            )
        except requests.RequestException as e:
            self.log.warning("%s request to %s did not complete: %s", action, url, e)
            raise TokenEndpointUnreachable(
                f"{action} failed: unable to reach {url} - check your internet connection"
            ) from e

        if r.status_code >= 300:
            message = _describe_failure(action, r)
            self.log.error("%s", message)
            raise AuthError(message, status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise AuthError(f"{action} failed: response was not JSON", status=r.status_code) from e

    @staticmethod
    def _check_session(session: Session, action: str) -> None:
        if not session.is_valid():
            raise AuthError(f"{action} did not yield access_token and instance_url.")


def _describe_failure(action: str, r: requests.Response) -> str:
    """Diagnostic for a rejected token request, with hints for HTTP 400."""
    try:
        body = r.json()
    except ValueError:
        body = None

    detail = ""
    if isinstance(body, dict):
        error = body.get("error")
        description = body.get("error_description")
        detail = ": ".join(str(p) for p in (error, description) if p)
    if not detail:
        text = getattr(r, "text", "")
        detail = text.strip()[:200] if isinstance(text, str) else ""

    message = f"{action} failed (HTTP {r.status_code})"
    if detail:
        message += f": {detail}"
    if r.status_code == 400:
        message += ". Common fixes: " + "; ".join(_BAD_REQUEST_HINTS)
    return message
