from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urljoin, urlparse

from bs4 import BeautifulSoup  # type: ignore[import-untyped]

from carelink_client.domain.errors import TransientNetwork


class SsoPageError(TransientNetwork):
    """The SSO pages did not have the structure the login flow expects."""


@dataclass(frozen=True)
class LoginHop:
    """Where and with which session parameters to submit credentials."""

    url: str
    path: str
    session_id: str
    session_data: str


@dataclass(frozen=True)
class ConsentHop:
    action_url: str
    session_id: str
    session_data: str


def _first(params: dict[str, list[str]], name: str) -> str:
    values = params.get(name)
    return values[0] if values else ""


def login_hop_from_redirect(location: str) -> LoginHop:
    """Build the credential POST target from the login page redirect URL.

    The POST goes to origin+path with only ``locale`` and ``countrycode`` kept in the
    query; ``sessionID``/``sessionData`` travel in the form body instead.
    """
    uri = urlparse(location)
    if not uri.scheme or not uri.netloc:
        raise SsoPageError(f"SSO: login redirect is not an absolute URL: {location!r}")
    params = parse_qs(uri.query)
    query = urlencode({"locale": _first(params, "locale"), "countrycode": _first(params, "countrycode")})
    return LoginHop(
        url=f"{uri.scheme}://{uri.netloc}{uri.path}?{query}",
        path=uri.path,
        session_id=_first(params, "sessionID"),
        session_data=_first(params, "sessionData"),
    )


def consent_hop_from_html(html: str, base_url: str) -> ConsentHop:
    """Pick the consent form action and the refreshed session pair out of the page."""
    soup = BeautifulSoup(html, "html.parser")
    form = soup.find("form", attrs={"method": lambda m: m and m.upper() == "POST"}) or soup.find("form")
    if not form or not form.get("action"):
        raise SsoPageError("SSO: consent form not found in login response")

    hidden: dict[str, str] = {}
    for inp in form.find_all("input", {"type": "hidden", "name": True}):
        hidden.setdefault(inp["name"], inp.get("value", ""))
    if "sessionID" not in hidden or "sessionData" not in hidden:
        raise SsoPageError("SSO: sessionID/sessionData missing from consent form")

    return ConsentHop(
        action_url=urljoin(base_url, form["action"]),
        session_id=hidden["sessionID"],
        session_data=hidden["sessionData"],
    )
