"""Entry point for ``python -m sfgateway`` and the ``sfgateway`` script."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from .cli import cli


def _configure_stdio() -> None:
    # Login and tool output carry ✅/❌; keep consoles that cannot encode them working.
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8", errors="backslashreplace")
        except (AttributeError, ValueError):
            pass


def main(argv: Optional[Sequence[str]] = None) -> None:
    _configure_stdio()
    cli.main(args=list(argv) if argv is not None else None, prog_name="sfgateway")


if __name__ == "__main__":
    main()
