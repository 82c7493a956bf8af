from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_MAX_RETRY_DURATION = 512
DEFAULT_MAX_ATTEMPTS = 3


# =========================
# Value Objects
# =========================
class Region(str, Enum):
    """Login protocol family, fixed for the process lifetime."""

    DIRECT = "direct"
    SSO = "sso"

    @classmethod
    def from_server_flag(cls, flag: str | None) -> "Region":
        return cls.SSO if (flag or "").strip().upper() == "EU" else cls.DIRECT


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Token:
    """Bearer token read from the SSO cookie pair."""

    value: str
    expires_at: datetime | None

    @property
    def is_present(self) -> bool:
        # an expiry-less token is treated as absent, never as non-expiring
        return bool(self.value) and self.expires_at is not None


class AuthState(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    VALID_SESSION = "VALID_SESSION"
    EXPIRING_SOON = "EXPIRING_SOON"
    INVALIDATED = "INVALIDATED"


# =========================
# Retry configuration
# =========================
@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and deterministic backoff for the fetch loop.

    The wait before retry ``k`` (1-based) is ``base_seconds * 2**(k-1)``, clamped so the
    sum of all waits never exceeds ``max_retry_duration``. Waits grow until that budget
    is spent; after that every further wait is 0.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_retry_duration: float = DEFAULT_MAX_RETRY_DURATION
    base_seconds: float = 2.0

    def __post_init__(self) -> None:
        assert self.max_attempts >= 1, "max_attempts must be >= 1"
        assert self.max_retry_duration >= 0, "max_retry_duration must be >= 0"

    def _raw(self, attempt: int) -> float:
        return self.base_seconds * (2 ** (attempt - 1))

    def backoff(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("attempt index starts at 1")
        spent = 0.0
        for k in range(1, attempt):
            spent += min(self._raw(k), max(0.0, self.max_retry_duration - spent))
        return min(self._raw(attempt), max(0.0, self.max_retry_duration - spent))
