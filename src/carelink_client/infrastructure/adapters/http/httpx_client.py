from __future__ import annotations
from http.cookiejar import CookieJar
from typing import Mapping, Any
import httpx
from carelink_client.application.ports.http_client_port import HttpClientPort, HttpResponse
from carelink_client.domain.errors import AuthExpired, AuthRejected, TransientNetwork
from carelink_client.logger import log

class HttpxClient(HttpClientPort):
    def __init__(self, timeout: float = 45.0, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """HTTP client adapter backed by a persistent httpx.AsyncClient.

        - Persists cookies across requests automatically (cookie jar)
        - Never follows redirects on its own; callers read the Location header
        - Treats 200-399 as success and maps every other outcome onto the error taxonomy

        Args:
            timeout (float, optional): Timeout for requests. Defaults to 45.0.
            transport (httpx.AsyncBaseTransport | None, optional): Custom transport, used by tests.
        """
        self._client = httpx.AsyncClient(timeout=timeout, headers={
            "Accept": "application/json, text/html, */*",
            "User-Agent": "carelink-client/0.1 httpx",
        }, follow_redirects=False, transport=transport)

    @property
    def cookie_jar(self) -> CookieJar:
        return self._client.cookies.jar

    async def get(self, url: str, *, headers: Mapping[str, str] | None = None, allow_redirects: bool = False) -> HttpResponse:
        """Gets the given URL.

        Args:
            url (str): URL to get.
            headers (Mapping[str, str] | None, optional): Headers to include. Defaults to None.
            allow_redirects (bool, optional): Whether to follow redirects. Defaults to False.

        Returns:
            HttpResponse: Response from the server.
        """
        return await self._send("GET", url, headers=headers, follow_redirects=allow_redirects)

    async def post(self, url: str, *, data: Mapping[str, Any] | None = None, json: Any | None = None, headers: Mapping[str, str] | None = None, allow_redirects: bool = False) -> HttpResponse:
        """Posts a form (``data``) or a JSON body (``json``) to the given URL.

        Args:
            url (str): URL to post to.
            data (Mapping[str, Any] | None, optional): Form fields. Defaults to None.
            json (Any | None, optional): JSON body. Defaults to None.
            headers (Mapping[str, str] | None, optional): Headers to include. Defaults to None.
            allow_redirects (bool, optional): Whether to follow redirects. Defaults to False.

        Returns:
            HttpResponse: Response from the server.
        """
        return await self._send("POST", url, data=data, json=json, headers=headers, follow_redirects=allow_redirects)

    async def _send(self, method: str, url: str, *, headers: Mapping[str, str] | None, follow_redirects: bool, data: Mapping[str, Any] | None = None, json: Any | None = None) -> HttpResponse:
        try:
            resp = await self._client.request(
                method,
                url,
                data=data,
                json=json,
                headers=dict(headers) if headers else None,
                follow_redirects=follow_redirects,
            )
        except httpx.HTTPError as e:
            raise TransientNetwork(f"{method} {url} failed: {e}") from e
        status = resp.status_code
        if status == 401:
            raise AuthExpired(f"{method} {url} -> 401", status_code=status)
        if status == 403:
            raise AuthRejected(f"{method} {url} -> 403", status_code=status)
        if not 200 <= status < 400:
            raise TransientNetwork(f"{method} {url} -> {status}", status_code=status)
        if "set-cookie" in resp.headers:
            log("HttpxClient", f"{method} {resp.url.host} set cookies: {list(resp.cookies.keys())}")
        return HttpResponse(status, resp.text, str(resp.url), resp.headers, raw=resp)

    async def aclose(self) -> None:
        await self._client.aclose()
