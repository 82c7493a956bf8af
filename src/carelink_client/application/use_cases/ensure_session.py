from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from carelink_client.application.ports.auth_ports import Clock, CredentialNegotiatorPort, TokenRefresherPort
from carelink_client.application.ports.cookie_store_port import CookieStorePort
from carelink_client.domain.errors import AuthExpired, AuthRejected
from carelink_client.domain.model import AuthState, Region, Token
from carelink_client.logger import log

REFRESH_MARGIN = timedelta(minutes=10)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


@dataclass(frozen=True)
class EnsureSessionResult:
    state: AuthState  # state observed before acting
    action: str  # "NONE" | "NEGOTIATED" | "REFRESHED" | "RELOGIN"


class SessionManager:
    """Authentication state machine, evaluated at the start of every fetch cycle.

    Owns the cookie store for its client: nothing else writes to it except the
    requests issued by the negotiator/refresher it drives.
    """

    def __init__(
        self,
        store: CookieStorePort,
        negotiator: CredentialNegotiatorPort,
        *,
        session_cookie: str,
        token_reader: Callable[[], Token | None],
        refresher: TokenRefresherPort | None = None,
        clock: Clock | None = None,
        refresh_margin: timedelta = REFRESH_MARGIN,
    ) -> None:
        if negotiator.region is Region.SSO and refresher is None:
            raise ValueError("SSO sessions need a token refresher")
        self.store = store
        self.negotiator = negotiator
        self.refresher = refresher
        self.region = negotiator.region
        self.session_cookie = session_cookie
        self.token_reader = token_reader
        self.clock = clock or SystemClock()
        self.refresh_margin = refresh_margin
        self._invalidated = False
        self.last_state: AuthState = AuthState.UNAUTHENTICATED

    def _log(self, msg: str) -> None:
        log("SessionManager", msg)

    def evaluate(self) -> AuthState:
        if self._invalidated:
            return AuthState.INVALIDATED
        if self.region is Region.SSO:
            token = self.token_reader()
            if token is None or not token.is_present:
                return AuthState.UNAUTHENTICATED
            assert token.expires_at is not None
            if token.expires_at < self.clock.now() + self.refresh_margin:
                return AuthState.EXPIRING_SOON
            return AuthState.VALID_SESSION
        if self.store.has(self.session_cookie):
            return AuthState.VALID_SESSION
        return AuthState.UNAUTHENTICATED

    def invalidate(self) -> None:
        """Drop every cookie so the next cycle starts unauthenticated."""
        self.store.clear_all()
        self._invalidated = True
        self._log("Session invalidated, cookie store cleared")

    async def ensure(self, *, relogin: bool = False) -> EnsureSessionResult:
        state = self.evaluate()
        if state is AuthState.INVALIDATED:
            self.store.clear_all()
            self._invalidated = False
            observed = state
            state = self.evaluate()
        else:
            observed = state
        self.last_state = observed

        if relogin or state is AuthState.UNAUTHENTICATED:
            await self._negotiate()
            return EnsureSessionResult(observed, "RELOGIN" if relogin else "NEGOTIATED")

        if state is AuthState.EXPIRING_SOON:
            assert self.refresher is not None
            try:
                await self.refresher.refresh()
            except (AuthExpired, AuthRejected) as e:
                self._log(f"Got HTTP {e.status_code}, trying with a fresh login...")
                await self._negotiate()
                return EnsureSessionResult(observed, "RELOGIN")
            return EnsureSessionResult(observed, "REFRESHED")

        return EnsureSessionResult(observed, "NONE")

    async def _negotiate(self) -> None:
        await self.negotiator.negotiate()
        # Direct login has no failure signal of its own; a missing cookie shows up
        # as an unauthenticated state on the next cycle.
        if self.evaluate() is AuthState.UNAUTHENTICATED:
            self._log("Login sequence finished but no session credential was set")
