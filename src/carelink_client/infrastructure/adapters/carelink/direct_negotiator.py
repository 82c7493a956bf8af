from __future__ import annotations

from carelink_client.application.ports.auth_ports import CredentialNegotiatorPort
from carelink_client.application.ports.http_client_port import HttpClientPort
from carelink_client.domain.model import Credentials, Region
from carelink_client.infrastructure.adapters.carelink.endpoints import CareLinkEndpoints
from carelink_client.logger import log


class DirectNegotiator(CredentialNegotiatorPort):
    """Cookie login: j_security_check, then the landing page that sets the session cookie.

    Success is only observable as the session cookie being in the store afterwards;
    the response bodies carry no usable signal.
    """

    region = Region.DIRECT

    def __init__(self, http: HttpClientPort, endpoints: CareLinkEndpoints, credentials: Credentials) -> None:
        self.http = http
        self.endpoints = endpoints
        self.credentials = credentials

    def _log(self, msg: str) -> None:
        log("DirectNegotiator", msg)

    async def negotiate(self) -> None:
        self._log("Logging in to CareLink")
        await self.http.post(
            self.endpoints.security_check_url,
            data={
                "j_username": self.credentials.username,
                "j_password": self.credentials.password,
                "j_character_encoding": "UTF-8",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        resp = await self.http.get(self.endpoints.after_login_url)
        self._log(f"Landing page -> status={resp.status_code}")
