from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sfgateway")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

# Keep library modules quiet unless the app configures logging:
logging.getLogger(__name__).addHandler(logging.NullHandler())

from .client import ConnectionState, SalesforceClient  # noqa: E402
from .config import ServiceConfig  # noqa: E402
from .exceptions import (  # noqa: E402
    AuthError,
    ConfigurationError,
    NetworkError,
    RequestError,
    SalesforceError,
    TokenEndpointUnreachable,
)
from .session import Session  # noqa: E402

__all__ = [
    "AuthError",
    "ConfigurationError",
    "ConnectionState",
    "NetworkError",
    "RequestError",
    "SalesforceClient",
    "SalesforceError",
    "ServiceConfig",
    "Session",
    "TokenEndpointUnreachable",
    "__version__",
]
