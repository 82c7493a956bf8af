from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import re
from urllib.parse import unquote

from carelink_client.application.ports.cookie_store_port import CookieStorePort
from carelink_client.domain.model import Token
from carelink_client.infrastructure.adapters.carelink.endpoints import TOKEN_COOKIE, TOKEN_EXPIRE_COOKIE

# "Fri Jun 04 2021 10:20:30 GMT+0000 (Coordinated Universal Time)"
_JS_DATE = re.compile(
    r"^\w{3} (\w{3}) (\d{1,2}) (\d{4}) (\d{2}:\d{2}:\d{2}) GMT([+-]\d{4})"
)


def parse_expiry(raw: str | None) -> datetime | None:
    """Parse the expiry cookie value. Returns None when it cannot be read."""
    if not raw:
        return None
    value = unquote(raw).strip().strip('"')
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        m = _JS_DATE.match(value)
        candidate = f"{m.group(2)} {m.group(1)} {m.group(3)} {m.group(4)} {m.group(5)}" if m else value
        try:
            parsed = parsedate_to_datetime(candidate)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def read_token(store: CookieStorePort) -> Token | None:
    """Token view over the SSO cookie pair, or None if neither cookie is set."""
    token_cookie = store.get(TOKEN_COOKIE)
    expire_cookie = store.get(TOKEN_EXPIRE_COOKIE)
    if token_cookie is None and expire_cookie is None:
        return None
    return Token(
        value=token_cookie.value if token_cookie else "",
        expires_at=parse_expiry(expire_cookie.value if expire_cookie else None),
    )
