from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from carelink_client.application.ports.auth_ports import Clock
from carelink_client.application.ports.http_client_port import HttpClientPort
from carelink_client.application.use_cases.ensure_session import SessionManager
from carelink_client.application.use_cases.fetch_connect_data import FetchCallback, FetchOrchestrator
from carelink_client.config import settings
from carelink_client.domain.model import AuthState, Credentials, Region, RetryPolicy
from carelink_client.infrastructure.adapters.carelink.connect_data import ConnectDataSource
from carelink_client.infrastructure.adapters.carelink.direct_negotiator import DirectNegotiator
from carelink_client.infrastructure.adapters.carelink.endpoints import LOGIN_COOKIE, CareLinkEndpoints
from carelink_client.infrastructure.adapters.carelink.sso_negotiator import SsoNegotiator
from carelink_client.infrastructure.adapters.carelink.token_refresher import SsoTokenRefresher
from carelink_client.infrastructure.adapters.carelink.token_view import read_token
from carelink_client.infrastructure.adapters.http.httpx_client import HttpxClient
from carelink_client.infrastructure.adapters.session.origin_cookie_store import OriginCookieStore
from carelink_client.logger import set_verbose


class CareLinkClient:
    """One authenticated CareLink identity.

    Region defaults to the ``MMCONNECT_SERVER`` setting and cannot change afterwards.
    Calls to ``fetch``/``fetch_data`` are serialized on an internal lock.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        verbose: bool = False,
        max_retry_duration: float | None = None,
        region: Region | None = None,
        server: str | None = None,
        http: HttpClientPort | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not username or not password:
            raise ValueError("username and password are required")
        if verbose or settings.verbose:
            set_verbose()

        self.region = region or Region.from_server_flag(settings.mmconnect_server)
        self.endpoints = CareLinkEndpoints.for_region(self.region, server or settings.carelink_server or None)
        self.credentials = Credentials(username, password)
        self.http = http or HttpxClient(timeout=settings.http_timeout)
        self.store = OriginCookieStore(self.http.cookie_jar, self.endpoints.host)

        if self.region is Region.SSO:
            negotiator: SsoNegotiator | DirectNegotiator = SsoNegotiator(self.http, self.endpoints, self.credentials)
            refresher: SsoTokenRefresher | None = SsoTokenRefresher(self.http, self.endpoints, self.store)
        else:
            negotiator = DirectNegotiator(self.http, self.endpoints, self.credentials)
            refresher = None

        self.session = SessionManager(
            self.store,
            negotiator,
            session_cookie=LOGIN_COOKIE,
            token_reader=lambda: read_token(self.store),
            refresher=refresher,
            clock=clock,
        )
        policy = RetryPolicy(
            max_retry_duration=settings.max_retry_duration if max_retry_duration is None else max_retry_duration
        )
        self._orchestrator = FetchOrchestrator(
            self.session, ConnectDataSource(self.http, self.endpoints, self.store), policy, sleep=sleep
        )
        self._lock = asyncio.Lock()

    @property
    def auth_state(self) -> AuthState:
        return self.session.last_state

    async def fetch_data(self) -> Any:
        async with self._lock:
            return await self._orchestrator.fetch_data()

    async def fetch(self, callback: FetchCallback) -> None:
        async with self._lock:
            await self._orchestrator.fetch(callback)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "CareLinkClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
