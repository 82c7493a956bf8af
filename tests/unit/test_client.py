from __future__ import annotations
import asyncio
import httpx
import pytest
from carelink_client.client import CareLinkClient
from carelink_client.domain.errors import RetriesExhausted
from carelink_client.domain.model import AuthState, Region
from carelink_client.infrastructure.adapters.carelink.endpoints import LOGIN_COOKIE
from tests.unit._fakes_auth import FixedClock, RecordingSleep
from tests.unit._fakes_http import EU, US, Router, ok, redirect, sso_login_routes

EU_DATA = f"{EU}/patient/connect/data"
US_DATA = f"{US}/patient/connect/ConnectViewerServlet"


def _client(router, region, sleep=None):
    return CareLinkClient(
        "alice", "s3cret", region=region, http=router.client(), clock=FixedClock(), sleep=sleep or RecordingSleep()
    )


def _direct_login_routes(router):
    router.add("POST", f"{US}/patient/j_security_check", redirect(f"https://{US}/patient/main/login.do"))
    router.add("GET", f"{US}/patient/main/login.do", ok(f"{LOGIN_COOKIE}=sess; Path=/"))
    return router


@pytest.mark.asyncio
async def test_expired_token_refresh_401_relogs_once_then_fetches():
    router = sso_login_routes(Router(), token="fresh")
    router.add("POST", f"{EU}/patient/sso/reauth", httpx.Response(401))
    router.add("GET", EU_DATA, ok(json={"sgs": [120]}))
    client = _client(router, Region.SSO)
    cookies = httpx.Cookies(client.http.cookie_jar)
    cookies.set("auth_tmp_token", "old", domain=EU)
    cookies.set("c_token_valid_to", "2025-01-01T11:59:59Z", domain=EU)

    results = []
    await client.fetch(lambda err, data: results.append((err, data)))

    assert results == [(None, {"sgs": [120]})]
    assert client.auth_state is AuthState.EXPIRING_SOON
    assert len(router.calls("POST", f"{EU}/patient/sso/reauth")) == 1
    assert len(router.calls("GET", f"{EU}/patient/sso/login")) == 1
    assert router.calls("GET", EU_DATA)[0].headers["authorization"] == "Bearer fresh"


@pytest.mark.asyncio
async def test_direct_login_is_reused_on_next_cycle():
    router = _direct_login_routes(Router()).add("GET", US_DATA, ok(json={"lastSG": {"sg": 100}}))
    client = _client(router, Region.DIRECT)
    assert await client.fetch_data() == {"lastSG": {"sg": 100}}
    assert client.store.has(LOGIN_COOKIE)
    await client.fetch_data()
    assert len(router.calls("POST", f"{US}/patient/j_security_check")) == 1
    assert client.auth_state is AuthState.VALID_SESSION


@pytest.mark.asyncio
async def test_server_errors_on_every_attempt():
    sleep = RecordingSleep()
    router = _direct_login_routes(Router()).add("GET", US_DATA, httpx.Response(500))
    client = _client(router, Region.DIRECT, sleep=sleep)
    results = []
    await client.fetch(lambda err, data: results.append((err, data)))

    assert len(results) == 1
    err, data = results[0]
    assert data is None
    assert isinstance(err, RetriesExhausted)
    assert "failed to download" in str(err).lower()
    assert len(router.calls("GET", US_DATA)) == 3
    assert sum(sleep.waits) <= 512


@pytest.mark.asyncio
async def test_data_401_forces_fresh_login():
    router = _direct_login_routes(Router()).add("GET", US_DATA, httpx.Response(401), ok(json={"ok": 1}))
    client = _client(router, Region.DIRECT)
    assert await client.fetch_data() == {"ok": 1}
    assert len(router.calls("POST", f"{US}/patient/j_security_check")) == 2


@pytest.mark.asyncio
async def test_concurrent_fetches_are_serialized():
    router = _direct_login_routes(Router()).add("GET", US_DATA, ok(json={"ok": 1}))
    client = _client(router, Region.DIRECT)
    await asyncio.gather(client.fetch_data(), client.fetch_data(), client.fetch_data())
    assert len(router.calls("POST", f"{US}/patient/j_security_check")) == 1
    assert len(router.calls("GET", US_DATA)) == 3


def test_credentials_are_required():
    with pytest.raises(ValueError):
        CareLinkClient("", "pw", region=Region.DIRECT)


@pytest.mark.asyncio
async def test_context_manager_closes_transport():
    router = Router()
    async with _client(router, Region.SSO) as client:
        assert client.endpoints.host == EU
    assert client.http._client.is_closed
