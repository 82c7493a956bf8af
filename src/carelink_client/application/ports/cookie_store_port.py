from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class StoredCookie:
    name: str
    value: str
    expires_at: datetime | None = None


class CookieStorePort(Protocol):
    """Cookies of the one backend origin. Other origins are never visible here."""

    def has(self, name: str) -> bool: ...
    def get(self, name: str) -> StoredCookie | None: ...
    def clear_all(self) -> None:
        """Empty the store before returning."""
        ...
