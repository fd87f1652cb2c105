"""Bounded readiness polling for a freshly started lobby."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from breachrun.client.attempts import AttemptGuard
from breachrun.client.models import SessionId, SessionSnapshot
from breachrun.client.readiness import (
    DEFAULT_RETRY_CONFIG,
    CancellableDelay,
    RetryConfig,
    delay_for,
    is_ready,
    schedule,
)

logger = logging.getLogger(__name__)

DEFAULT_INIT_TIMEOUT = 15.0

READY = "ready"
ABANDONED = "abandoned"
TIMED_OUT = "timeout"
EXHAUSTED = "exhausted"

FetchSnapshot = Callable[[SessionId], Awaitable[Optional[SessionSnapshot]]]


@dataclass(frozen=True)
class PollOutcome:
    snapshot: SessionSnapshot | None
    reason: str
    fetches: int


class ReadinessPoller:
    """Fetch a lobby until it is ready, the attempt budget runs out or time is up.

    One poller serves every attempt of its orchestrator. Fetches of one
    attempt are strictly sequential; between fetches the loop sleeps on a
    ``CancellableDelay`` that ``cancel_pending`` can abort when a newer
    attempt starts. In-flight fetches are never interrupted: a superseded
    loop notices its stale token at the next check and returns ``abandoned``.
    """

    def __init__(
        self,
        guard: AttemptGuard,
        config: RetryConfig = DEFAULT_RETRY_CONFIG,
        overall_timeout: float = DEFAULT_INIT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        schedule_delay: Callable[[float], CancellableDelay] = schedule,
    ) -> None:
        self._guard = guard
        self.config = config
        self.overall_timeout = overall_timeout
        self._clock = clock
        self._schedule_delay = schedule_delay
        self._pending: CancellableDelay | None = None
        self._wakeup: asyncio.Future[None] | None = None

    def elapsed(self, start_time: float) -> float:
        return self._clock() - start_time

    def has_exceeded_timeout(self, start_time: float) -> bool:
        return self.elapsed(start_time) > self.overall_timeout

    def cancel_pending(self) -> None:
        """Abort the delay a polling loop is sleeping on, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._wakeup is not None and not self._wakeup.done():
            self._wakeup.set_result(None)
        self._wakeup = None

    async def poll_until_ready(
        self,
        session_id: SessionId,
        token: int,
        fetch_snapshot: FetchSnapshot,
        start_time: float,
    ) -> PollOutcome:
        max_attempts = self.config.max_attempts
        for attempt_index in range(max_attempts):
            if not self._guard.is_current(token):
                return PollOutcome(snapshot=None, reason=ABANDONED, fetches=attempt_index)
            if self.has_exceeded_timeout(start_time):
                logger.info("Lobby %s not ready after %.1fs", session_id, self.elapsed(start_time))
                return PollOutcome(snapshot=None, reason=TIMED_OUT, fetches=attempt_index)

            try:
                snapshot = await fetch_snapshot(session_id)
            except Exception as exc:
                logger.warning("Readiness fetch %d for lobby %s failed: %s", attempt_index + 1, session_id, exc)
                snapshot = None

            if is_ready(snapshot):
                return PollOutcome(snapshot=snapshot, reason=READY, fetches=attempt_index + 1)
            if attempt_index + 1 >= max_attempts:
                break
            if not self._guard.is_current(token):
                return PollOutcome(snapshot=None, reason=ABANDONED, fetches=attempt_index + 1)

            remaining = self.overall_timeout - self.elapsed(start_time)
            if remaining <= 0:
                logger.info("Lobby %s not ready after %.1fs", session_id, self.elapsed(start_time))
                return PollOutcome(snapshot=None, reason=TIMED_OUT, fetches=attempt_index + 1)
            await self._sleep(min(delay_for(attempt_index, self.config), remaining))

        logger.info("Lobby %s not ready after %d fetches", session_id, max_attempts)
        return PollOutcome(snapshot=None, reason=EXHAUSTED, fetches=max_attempts)

    async def _sleep(self, duration: float) -> None:
        delay = self._schedule_delay(duration)
        wakeup: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pending = delay
        self._wakeup = wakeup
        try:
            await asyncio.wait({delay.completion, wakeup}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not delay.completion.done():
                delay.cancel()
            if self._pending is delay:
                self._pending = None
            if self._wakeup is wakeup:
                self._wakeup = None
