from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, retry_if_not_exception_type, stop_after_attempt

from carelink_client.application.ports.auth_ports import ConnectDataPort
from carelink_client.application.use_cases.ensure_session import SessionManager
from carelink_client.domain.errors import AuthExpired, CareLinkError, InvalidCredentials, RetriesExhausted
from carelink_client.domain.model import RetryPolicy
from carelink_client.logger import log

FetchCallback = Callable[[CareLinkError | None, Any], Awaitable[None] | None]


class FetchOrchestrator:
    """Authenticate-then-download inside a bounded retry loop.

    A 401 from the data endpoint wipes the session so the next attempt logs in from
    scratch. Rejected credentials are not retried.
    """

    def __init__(
        self,
        session: SessionManager,
        data: ConnectDataPort,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.session = session
        self.data = data
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def _log(self, msg: str) -> None:
        log("FetchOrchestrator", msg)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.policy.backoff(retry_state.attempt_number)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, AuthExpired):
            self.session.invalidate()
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        self._log(f"Attempt {retry_state.attempt_number} failed ({exc}), retrying in {wait}s")

    async def fetch_data(self) -> Any:
        """Return the payload, or raise InvalidCredentials / RetriesExhausted."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self._wait,
            retry=retry_if_not_exception_type(InvalidCredentials),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self.session.ensure()
                    return await self.data.get_latest()
        except InvalidCredentials:
            raise
        except Exception as e:
            raise RetriesExhausted(e) from e

    async def fetch(self, on_result: FetchCallback) -> None:
        """Call ``on_result(error, data)`` exactly once; one of the two is None."""
        try:
            data = await self.fetch_data()
        except CareLinkError as e:
            outcome = on_result(e, None)
        else:
            outcome = on_result(None, data)
        if inspect.isawaitable(outcome):
            await outcome
