from __future__ import annotations

from collections.abc import Mapping
from http.cookiejar import CookieJar
from typing import Any, Protocol
import json


class HttpResponse:
    def __init__(
        self,
        status_code: int,
        text: str,
        url: str,
        headers: Mapping[str, str],
        *,
        raw: Any | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.url = url
        self.headers = {k.lower(): v for k, v in headers.items()}
        self._raw = raw

    @property
    def location(self) -> str | None:
        return self.headers.get("location")

    def json(self) -> Any:
        if self._raw is not None and hasattr(self._raw, "json"):
            return self._raw.json()
        return json.loads(self.text)


class HttpClientPort(Protocol):
    """Async HTTP transport. Redirects are never followed unless asked for.

    Statuses 200-399 come back as ``HttpResponse``; anything else raises one of
    ``AuthExpired`` / ``AuthRejected`` / ``TransientNetwork``.
    """

    @property
    def cookie_jar(self) -> CookieJar: ...

    async def get(
        self, url: str, *, headers: Mapping[str, str] | None = None, allow_redirects: bool = False
    ) -> HttpResponse: ...
    async def post(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | None = None,
        json: Any | None = None,
        headers: Mapping[str, str] | None = None,
        allow_redirects: bool = False,
    ) -> HttpResponse: ...
    async def aclose(self) -> None: ...
