from __future__ import annotations

from urllib.parse import urljoin

from carelink_client.application.ports.auth_ports import CredentialNegotiatorPort
from carelink_client.application.ports.http_client_port import HttpClientPort, HttpResponse
from carelink_client.domain.errors import InvalidCredentials
from carelink_client.domain.model import Credentials, Region
from carelink_client.infrastructure.adapters.carelink import sso_pages
from carelink_client.infrastructure.adapters.carelink.endpoints import CareLinkEndpoints
from carelink_client.logger import log

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


class SsoNegotiator(CredentialNegotiatorPort):
    """
    Five-hop SSO login. Every redirect is followed by hand, in order:

    1. GET the SSO login entry
    2. GET its Location (the login page, carrying sessionID/sessionData in the query)
    3. POST credentials to that page's origin+path
    4. POST the consent form scraped from step 3's HTML
    5. GET step 4's Location, which sets the bearer token cookies
    """

    region = Region.SSO

    def __init__(self, http: HttpClientPort, endpoints: CareLinkEndpoints, credentials: Credentials) -> None:
        self.http = http
        self.endpoints = endpoints
        self.credentials = credentials

    def _log(self, msg: str) -> None:
        log("SsoNegotiator", msg)

    @staticmethod
    def _next_hop(resp: HttpResponse, step: str) -> str:
        if not resp.location:
            raise sso_pages.SsoPageError(f"SSO {step}: no Location header (status={resp.status_code})")
        return urljoin(resp.url, resp.location)

    async def negotiate(self) -> None:
        self._log("Logging in to CareLink")
        resp = await self.http.get(self.endpoints.sso_login_url)
        resp = await self.http.get(self._next_hop(resp, "login entry"))
        resp = await self._submit_credentials(self._next_hop(resp, "login redirect"))
        resp = await self._submit_consent(resp)
        await self.http.get(self._next_hop(resp, "consent"))
        self._log("SSO login sequence complete")

    async def _submit_credentials(self, login_page_url: str) -> HttpResponse:
        hop = sso_pages.login_hop_from_redirect(login_page_url)
        resp = await self.http.post(
            hop.url,
            data={
                "sessionID": hop.session_id,
                "sessionData": hop.session_data,
                "locale": "en",
                "action": "login",
                "username": self.credentials.username,
                "password": self.credentials.password,
                "actionButton": "Log in",
            },
            headers=FORM_HEADERS,
        )
        # a rejected login re-renders the login page instead of failing with a status
        if hop.path and hop.path in resp.text:
            raise InvalidCredentials("CareLink invalid username or password")
        self._log(f"Credentials accepted -> status={resp.status_code}")
        return resp

    async def _submit_consent(self, login_resp: HttpResponse) -> HttpResponse:
        consent = sso_pages.consent_hop_from_html(login_resp.text, login_resp.url)
        return await self.http.post(
            consent.action_url,
            data={
                "action": "consent",
                "sessionID": consent.session_id,
                "sessionData": consent.session_data,
                "response_type": "code",
                "response_mode": "query",
            },
            headers=FORM_HEADERS,
            allow_redirects=False,
        )
