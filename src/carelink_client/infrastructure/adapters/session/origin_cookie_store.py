from __future__ import annotations
from datetime import datetime, timezone
from http.cookiejar import Cookie, CookieJar
from carelink_client.application.ports.cookie_store_port import CookieStorePort, StoredCookie

class OriginCookieStore(CookieStorePort):
    """View over the transport's cookie jar restricted to a single host.

    Cookies picked up on redirect hops through other domains stay in the jar
    but are never returned from here.
    """

    def __init__(self, jar: CookieJar, host: str) -> None:
        self._jar = jar
        self.host = host.lower()

    def _cookies(self) -> list[Cookie]:
        return [c for c in self._jar if c.domain.lstrip(".").lower() == self.host]

    def has(self, name: str) -> bool:
        return any(c.name == name for c in self._cookies())

    def get(self, name: str) -> StoredCookie | None:
        for c in self._cookies():
            if c.name == name:
                expires = datetime.fromtimestamp(c.expires, timezone.utc) if c.expires else None
                return StoredCookie(c.name, c.value or "", expires)
        return None

    def clear_all(self) -> None:
        self._jar.clear()
