from __future__ import annotations
import httpx
import pytest
from carelink_client.application.use_cases.ensure_session import SessionManager
from carelink_client.application.use_cases.fetch_connect_data import FetchOrchestrator
from carelink_client.domain.errors import AuthExpired, InvalidCredentials, RetriesExhausted, TransientNetwork
from carelink_client.domain.model import Region, RetryPolicy
from carelink_client.infrastructure.adapters.carelink.connect_data import ConnectDataSource
from carelink_client.infrastructure.adapters.carelink.endpoints import CareLinkEndpoints
from carelink_client.infrastructure.adapters.session.origin_cookie_store import OriginCookieStore
from tests.unit._fakes_auth import FakeDataSource, FakeNegotiator, FakeStore, FixedClock, RecordingSleep
from tests.unit._fakes_http import US, Router


class SnapshotNegotiator(FakeNegotiator):
    def __init__(self, store) -> None:
        super().__init__(store, Region.DIRECT)
        self.store_before: list[dict] = []
    async def negotiate(self):
        self.store_before.append(dict(self.store.cookies))
        await super().negotiate()


def _orchestrator(data, *, policy=None, negotiator=None, store=None):
    store = store or FakeStore()
    negotiator = negotiator or FakeNegotiator(store, Region.DIRECT)
    session = SessionManager(store, negotiator, session_cookie="session", token_reader=lambda: None, clock=FixedClock())
    sleep = RecordingSleep()
    return FetchOrchestrator(session, data, policy or RetryPolicy(), sleep=sleep), negotiator, sleep


class Calls:
    def __init__(self) -> None:
        self.calls = []
    def __call__(self, err, data):
        self.calls.append((err, data))


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [1, 2, 3])
async def test_success_on_attempt_k_calls_back_once(k):
    outcomes = [TransientNetwork("down", status_code=503)] * (k - 1) + [{"sgs": [1, 2]}]
    data = FakeDataSource(*outcomes)
    orch, _, sleep = _orchestrator(data)
    cb = Calls()
    await orch.fetch(cb)
    assert cb.calls == [(None, {"sgs": [1, 2]})]
    assert data.called == k
    assert len(sleep.waits) == k - 1


@pytest.mark.asyncio
async def test_all_attempts_failing_yields_single_terminal_error():
    data = FakeDataSource(TransientNetwork("GET -> 500", status_code=500))
    orch, negotiator, sleep = _orchestrator(data)
    cb = Calls()
    await orch.fetch(cb)
    assert len(cb.calls) == 1
    err, payload = cb.calls[0]
    assert payload is None
    assert isinstance(err, RetriesExhausted)
    assert "failed to download" in str(err).lower()
    assert isinstance(err.last_error, TransientNetwork)
    assert err.__cause__ is err.last_error
    assert data.called == 3
    # 500s do not invalidate the session
    assert negotiator.called == 1
    assert sleep.waits == [2.0, 4.0]


@pytest.mark.asyncio
async def test_unauthorized_clears_store_before_next_attempt():
    store = FakeStore()
    negotiator = SnapshotNegotiator(store)
    data = FakeDataSource(AuthExpired("401", status_code=401), "payload")
    orch, _, _ = _orchestrator(data, negotiator=negotiator, store=store)
    cb = Calls()
    await orch.fetch(cb)
    assert cb.calls == [(None, "payload")]
    assert negotiator.called == 2
    assert negotiator.store_before == [{}, {}]
    assert store.cleared >= 1


@pytest.mark.asyncio
async def test_unauthorized_on_final_attempt_is_surfaced():
    data = FakeDataSource(AuthExpired("401", status_code=401))
    orch, _, _ = _orchestrator(data)
    with pytest.raises(RetriesExhausted) as exc:
        await orch.fetch_data()
    assert isinstance(exc.value.last_error, AuthExpired)


@pytest.mark.asyncio
async def test_parse_errors_are_retried_and_wrapped():
    data = FakeDataSource(ValueError("Expecting value"))
    orch, _, _ = _orchestrator(data)
    with pytest.raises(RetriesExhausted):
        await orch.fetch_data()
    assert data.called == 3


@pytest.mark.asyncio
async def test_login_failure_is_an_attempt_failure_not_an_abort():
    store = FakeStore()
    negotiator = FakeNegotiator(store, Region.DIRECT, error=TransientNetwork("login page down"))
    data = FakeDataSource("payload")
    orch, _, _ = _orchestrator(data, negotiator=negotiator, store=store)
    with pytest.raises(RetriesExhausted):
        await orch.fetch_data()
    assert negotiator.called == 3
    assert data.called == 0


@pytest.mark.asyncio
async def test_invalid_credentials_are_not_retried():
    store = FakeStore()
    negotiator = FakeNegotiator(store, Region.DIRECT, error=InvalidCredentials("bad password"))
    orch, _, sleep = _orchestrator(FakeDataSource("payload"), negotiator=negotiator, store=store)
    cb = Calls()
    await orch.fetch(cb)
    assert len(cb.calls) == 1
    assert isinstance(cb.calls[0][0], InvalidCredentials)
    assert negotiator.called == 1
    assert sleep.waits == []


@pytest.mark.asyncio
async def test_cumulative_wait_respects_max_retry_duration():
    policy = RetryPolicy(max_attempts=6, max_retry_duration=10)
    data = FakeDataSource(TransientNetwork("down"))
    orch, _, sleep = _orchestrator(data, policy=policy)
    with pytest.raises(RetriesExhausted):
        await orch.fetch_data()
    assert len(sleep.waits) == 5
    assert sum(sleep.waits) <= 10


@pytest.mark.asyncio
async def test_async_callback_is_awaited():
    seen = []

    async def cb(err, data):
        seen.append((err, data))

    orch, _, _ = _orchestrator(FakeDataSource({"ok": True}))
    await orch.fetch(cb)
    assert seen == [(None, {"ok": True})]


@pytest.mark.asyncio
async def test_null_payload_is_never_reported_as_success():
    router = Router().add("GET", f"{US}/patient/connect/ConnectViewerServlet", httpx.Response(200, text="null"))
    store = FakeStore()
    session = SessionManager(store, FakeNegotiator(store, Region.DIRECT), session_cookie="session", token_reader=lambda: None, clock=FixedClock())
    http = router.client()
    data = ConnectDataSource(http, CareLinkEndpoints.for_region(Region.DIRECT), OriginCookieStore(http.cookie_jar, US))
    orch = FetchOrchestrator(session, data, sleep=RecordingSleep())
    cb = Calls()
    await orch.fetch(cb)
    assert len(cb.calls) == 1
    err, payload = cb.calls[0]
    assert payload is None
    assert isinstance(err, RetriesExhausted)
    assert isinstance(err.last_error, TransientNetwork)
    assert len(router.requests) == 3
