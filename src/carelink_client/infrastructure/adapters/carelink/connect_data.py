from __future__ import annotations

import time
from typing import Any

from carelink_client.application.ports.auth_ports import ConnectDataPort
from carelink_client.application.ports.cookie_store_port import CookieStorePort
from carelink_client.application.ports.http_client_port import HttpClientPort
from carelink_client.domain.errors import TransientNetwork
from carelink_client.domain.model import Region
from carelink_client.infrastructure.adapters.carelink.endpoints import CareLinkEndpoints
from carelink_client.infrastructure.adapters.carelink.token_view import read_token
from carelink_client.logger import log


class ConnectDataSource(ConnectDataPort):
    """Last-24-hours data request. Cookie-authenticated for Direct, bearer for SSO."""

    def __init__(self, http: HttpClientPort, endpoints: CareLinkEndpoints, store: CookieStorePort) -> None:
        self.http = http
        self.endpoints = endpoints
        self.store = store

    async def get_latest(self) -> Any:
        url = self.endpoints.data_url(int(time.time() * 1000))
        log("ConnectDataSource", f"GET {url}")
        headers: dict[str, str] = {}
        if self.endpoints.region is Region.SSO:
            token = read_token(self.store)
            headers["Authorization"] = f"Bearer {token.value if token else ''}"
        resp = await self.http.get(url, headers=headers)
        payload = resp.json()
        if payload is None:
            raise TransientNetwork(f"GET {url} returned an empty payload")
        return payload
