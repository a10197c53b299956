from __future__ import annotations

from typing import Iterable, Optional


class SalesforceError(RuntimeError):
    """Base class for every failure raised by sfgateway."""


class ConfigurationError(SalesforceError):
    """Raised when required credential settings are not present.

    Always raised before any network activity and never retried.
    """

    def __init__(self, missing: Iterable[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message or "Missing required configuration: " + ", ".join(self.missing))


class AuthError(SalesforceError):
    """Identity endpoint rejection, missing refresh token, or not authenticated."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RequestError(SalesforceError):
    """Non-2xx response from the data endpoint."""

    def __init__(self, message: str, status: int):
        self.status = status
        super().__init__(message)


class NetworkError(SalesforceError):
    """The request never reached the server (DNS, connect, timeout)."""


class TokenEndpointUnreachable(NetworkError, AuthError):
    """The identity endpoint could not be reached during an exchange or renewal.

    Caught by handlers of either parent: it is a transport failure and also
    a failed credential exchange.
    """
