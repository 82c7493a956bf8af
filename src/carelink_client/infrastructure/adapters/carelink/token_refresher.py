from __future__ import annotations

from carelink_client.application.ports.auth_ports import TokenRefresherPort
from carelink_client.application.ports.cookie_store_port import CookieStorePort
from carelink_client.application.ports.http_client_port import HttpClientPort
from carelink_client.domain.errors import AuthRejected
from carelink_client.infrastructure.adapters.carelink.endpoints import ALTERNATE_USER_AGENT, CareLinkEndpoints
from carelink_client.infrastructure.adapters.carelink.token_view import read_token
from carelink_client.logger import log

_ESCALATION_MESSAGES = (
    "Got HTTP 403, trying with alternative user agent",
    "Still got HTTP 403, trying with an empty cookie",
)


class SsoTokenRefresher(TokenRefresherPort):
    """POST /sso/reauth with the current bearer token.

    On 403 the request is retried with a desktop browser user agent, then additionally
    with an emptied Cookie header. A 401 at any step, or a 403 on the last variant,
    propagates so the caller can fall back to a full login. The refreshed token arrives
    as response cookies.
    """

    def __init__(self, http: HttpClientPort, endpoints: CareLinkEndpoints, store: CookieStorePort) -> None:
        self.http = http
        self.endpoints = endpoints
        self.store = store

    def _log(self, msg: str) -> None:
        log("SsoTokenRefresher", msg)

    def _header_variants(self) -> list[dict[str, str]]:
        token = read_token(self.store)
        bearer = {"Authorization": f"Bearer {token.value if token else ''}"}
        return [
            bearer,
            {**bearer, "User-Agent": ALTERNATE_USER_AGENT},
            {**bearer, "User-Agent": ALTERNATE_USER_AGENT, "Cookie": ""},
        ]

    async def refresh(self) -> None:
        variants = self._header_variants()
        for attempt, headers in enumerate(variants):
            try:
                await self.http.post(self.endpoints.sso_refresh_url, json={}, headers=headers)
                self._log("Token refreshed")
                return
            except AuthRejected:
                if attempt == len(variants) - 1:
                    raise
                self._log(_ESCALATION_MESSAGES[attempt])
