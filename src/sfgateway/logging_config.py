from __future__ import annotations

import logging
import re
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

# Loggers that echo connection details at DEBUG level.
_NOISY_LOGGERS = ("urllib3.connection", "urllib3.connectionpool")


class RedactingFilter(logging.Filter):
    """Mask bearer tokens and OAuth form secrets that reach a log message."""

    _SECRET = re.compile(
        r"(Bearer\s+|\b(?:access_token|refresh_token|client_secret|password)=)[^\s&\"',]+"
    )

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self._SECRET.sub(r"\1***", message)
        if masked != message:
            record.msg, record.args = masked, None
        return True


def configure_logging(level: Optional[int]) -> None:
    """Configure root logging on stderr; safe to call multiple times.

    stdout is reserved for command output, so diagnostics never mix with
    the JSON printed by the CLI. Every root handler gets a
    :class:`RedactingFilter`.
    """
    lvl = level if level is not None else logging.WARNING
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=_DEFAULT_FMT, datefmt=_DEFAULT_DATEFMT)

    for handler in root.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())

    for name in _NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        if noisy.level == logging.NOTSET or noisy.level < logging.WARNING:
            noisy.setLevel(logging.WARNING)
