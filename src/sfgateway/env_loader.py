"""Read Salesforce settings from a local ``.env`` file.

``ServiceConfig.from_env`` and the CLI call :func:`load_env_files` before
reading the ``SALESFORCE_*`` variables (and their ``SF_*`` fallbacks), so
Connected App credentials can live in a project file instead of the shell
profile.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from dotenv import dotenv_values, load_dotenv

_logger = logging.getLogger(__name__)

_SETTING_PREFIXES = ("SALESFORCE_", "SF_")


def load_env_files(
    candidates: Optional[Iterable[Path]] = None,
    *,
    quiet: bool = False,
) -> Optional[Path]:
    """Load the first existing ``.env`` / ``.dotenv`` file and return its path.

    Defaults to the current working directory. Variables already set in the
    process win over the file. Only setting names are logged, never values.
    """
    if candidates is None:
        cwd = Path.cwd()
        candidates = (cwd / ".env", cwd / ".dotenv")

    path = next((p for p in candidates if p.exists()), None)
    if path is None:
        if not quiet:
            _logger.debug("No .env/.dotenv file found in %s", Path.cwd())
        return None

    load_dotenv(path)
    if not quiet:
        names = sorted(k for k in dotenv_values(path) if k.startswith(_SETTING_PREFIXES))
        _logger.debug("Loaded %s from %s", ", ".join(names) or "no Salesforce settings", path)
    return path
