from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from carelink_client.domain.model import Region


class Clock(Protocol):
    def now(self) -> datetime: ...


class CredentialNegotiatorPort(Protocol):
    """Turns username/password into an authenticated session for one region."""

    region: Region

    async def negotiate(self) -> None:
        """Run the full login sequence. Raises InvalidCredentials on a detected rejection."""
        ...


class TokenRefresherPort(Protocol):
    async def refresh(self) -> None:
        """Extend the current bearer token.

        Raises AuthExpired / AuthRejected once header escalation is exhausted.
        """
        ...


class ConnectDataPort(Protocol):
    async def get_latest(self) -> Any:
        """GET the data endpoint and return its decoded payload."""
        ...
