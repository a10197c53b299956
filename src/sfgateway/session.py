from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Session:
    """Live bearer credential for one org.

    Produced by an exchange, replaced wholesale by a renewal, and emptied
    only by :meth:`clear`. Tokens are kept out of ``repr`` so sessions can be
    logged safely.
    """

    access_token: Optional[str] = field(default=None, repr=False)
    instance_url: Optional[str] = None
    refresh_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.instance_url:
            self.instance_url = self.instance_url.rstrip("/")

    @classmethod
    def from_token_response(cls, payload: dict, refresh_token: Optional[str] = None) -> Session:
        """Build a session from an ``/services/oauth2/token`` response body.

        ``refresh_token`` is the fallback used when the response carries none.
        """
        return cls(
            access_token=payload.get("access_token"),
            instance_url=payload.get("instance_url"),
            refresh_token=payload.get("refresh_token") or refresh_token,
        )

    def is_valid(self) -> bool:
        """True iff token and instance URL are both present (no network check)."""
        return bool(self.access_token and self.instance_url)

    def clear(self) -> None:
        self.access_token = None
        self.instance_url = None
        self.refresh_token = None
