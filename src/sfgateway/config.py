from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from .env_loader import load_env_files
from .exceptions import ConfigurationError

_logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------
LOGIN_URL = "https://login.salesforce.com"
SANDBOX_URL = "https://test.salesforce.com"
OAUTH_TOKEN_PATH = "/services/oauth2/token"
API_VERSION = "v58.0"
DEFAULT_TIMEOUT = 30.0

# The two credential combinations connect() accepts, in priority order.
ACCEPTED_CREDENTIALS = (
    "SALESFORCE_ACCESS_TOKEN + SALESFORCE_INSTANCE_URL",
    "SALESFORCE_USERNAME + SALESFORCE_PASSWORD + SALESFORCE_CLIENT_ID + SALESFORCE_CLIENT_SECRET",
)


def _env(*names: str) -> Optional[str]:
    """First non-empty value among the given environment variables."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "false").strip().lower() == "true"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %.1f", name, raw, default)
        return default


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ServiceConfig:
    """Static credentials and endpoint settings for one Salesforce org.

    Never mutated after construction: the live session obtained by
    ``connect()`` is held separately in a :class:`~sfgateway.session.Session`.
    """

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    # Resource-owner password flow
    username: Optional[str] = None
    password: Optional[str] = None
    security_token: Optional[str] = None

    # Optional: pre-provided token / instance URL
    access_token: Optional[str] = None
    instance_url: Optional[str] = None

    # Production (login.salesforce.com) vs sandbox (test.salesforce.com)
    sandbox: bool = False

    api_version: str = API_VERSION

    # Optional: override the identity base URL (e.g. a My Domain login URL)
    login_url: Optional[str] = None

    # Seconds passed to every HTTP call
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, *, load_dotenv: bool = True) -> ServiceConfig:
        """Load configuration from environment variables (and .env if present)."""
        if load_dotenv:
            load_env_files(quiet=True)
        return cls(
            client_id=_env("SALESFORCE_CLIENT_ID", "SF_CONSUMER_KEY"),
            client_secret=_env("SALESFORCE_CLIENT_SECRET", "SF_CONSUMER_SECRET"),
            username=_env("SALESFORCE_USERNAME", "SF_USERNAME"),
            password=_env("SALESFORCE_PASSWORD", "SF_PASSWORD"),
            security_token=_env("SALESFORCE_SECURITY_TOKEN", "SF_SECURITY_TOKEN"),
            access_token=_env("SALESFORCE_ACCESS_TOKEN"),
            instance_url=_env("SALESFORCE_INSTANCE_URL"),
            sandbox=_env_flag("SALESFORCE_SANDBOX"),
            api_version=_env("SALESFORCE_API_VERSION") or API_VERSION,
            login_url=_env("SALESFORCE_LOGIN_URL"),
            timeout=_env_float("SALESFORCE_TIMEOUT", DEFAULT_TIMEOUT),
        )

    # --------------------------- Derived values ------------------------

    @property
    def has_token(self) -> bool:
        return bool(self.access_token and self.instance_url)

    @property
    def has_password_credentials(self) -> bool:
        return bool(self.username and self.password and self.client_id and self.client_secret)

    def base_url(self, sandbox: Optional[bool] = None) -> str:
        """Identity base URL for the selected environment."""
        if self.login_url:
            return self.login_url.rstrip("/")
        use_sandbox = self.sandbox if sandbox is None else sandbox
        return SANDBOX_URL if use_sandbox else LOGIN_URL

    def token_url(self, sandbox: Optional[bool] = None) -> str:
        return f"{self.base_url(sandbox)}{OAUTH_TOKEN_PATH}"

    # --------------------------- Validation ----------------------------

    def require_app_credentials(self) -> None:
        """Raise ConfigurationError unless client id and secret are set."""
        missing = [
            k
            for k, v in {
                "SALESFORCE_CLIENT_ID": self.client_id,
                "SALESFORCE_CLIENT_SECRET": self.client_secret,
            }.items()
            if not v
        ]
        if missing:
            raise ConfigurationError(missing)

    def validate(self) -> ServiceConfig:
        """Check the credential invariants and return self for chaining."""
        self.require_app_credentials()
        if not self.has_token and not (self.username and self.password):
            raise ConfigurationError(
                list(ACCEPTED_CREDENTIALS),
                "Either (SALESFORCE_ACCESS_TOKEN + SALESFORCE_INSTANCE_URL) or "
                "(SALESFORCE_USERNAME + SALESFORCE_PASSWORD) must be provided",
            )
        return self

    def status_lines(self) -> List[str]:
        """Human-readable set/missing report; never includes secret values."""

        def mark(value: object) -> str:
            return "set" if value else "missing"

        return [
            f"Client ID: {mark(self.client_id)}",
            f"Client Secret: {mark(self.client_secret)}",
            f"Username: {mark(self.username)}",
            f"Password: {mark(self.password)}",
            f"Security Token: {mark(self.security_token)}",
            f"Access Token: {mark(self.access_token)}",
            f"Instance URL: {mark(self.instance_url)}",
            f"Sandbox: {'enabled' if self.sandbox else 'disabled'}",
            f"Login URL: {self.base_url()}",
            f"API Version: {self.api_version}",
        ]
