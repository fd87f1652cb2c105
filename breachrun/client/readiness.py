"""Lobby readiness checks and the building blocks of bounded polling."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from breachrun.client.models import SessionSnapshot, parse_snapshot


def is_ready(snapshot: SessionSnapshot | dict[str, Any] | None) -> bool:
    """A lobby is ready once it is active and its challenge has been provisioned."""
    if not snapshot:
        return False
    if not isinstance(snapshot, SessionSnapshot):
        snapshot = parse_snapshot(snapshot)
        if snapshot is None:
            return False
    return snapshot.is_active and snapshot.current_challenge is not None


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int
    initial_delay: float
    max_delay: float
    multiplier: float


# 0.1, 0.2, 0.4, 0.8, then 1.0 s per wait: roughly six seconds over ten fetches.
DEFAULT_RETRY_CONFIG = RetryConfig(max_attempts=10, initial_delay=0.1, max_delay=1.0, multiplier=2.0)


def delay_for(attempt_index: int, config: RetryConfig = DEFAULT_RETRY_CONFIG) -> float:
    """Seconds to wait after the fetch numbered ``attempt_index`` (0-based)."""
    if attempt_index < 0:
        raise ValueError("attempt_index must be >= 0")
    delay = config.initial_delay * config.multiplier**attempt_index
    return min(delay, config.max_delay)


class CancellableDelay:
    """Timer whose completion never fires once ``cancel()`` has been called.

    Cancellation is cooperative: ``cancel()`` flips a flag and drops the timer
    handle, and the timer callback re-checks the flag before resolving. A
    cancelled delay neither resolves nor raises, so callers must race
    ``completion`` against their own stop signal.
    """

    def __init__(self, duration: float, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self.duration = max(0.0, duration)
        self.completion: asyncio.Future[None] = self._loop.create_future()
        self._cancelled = False
        self._handle = self._loop.call_later(self.duration, self._fire)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _fire(self) -> None:
        if self._cancelled or self.completion.done():
            return
        self.completion.set_result(None)

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()


def schedule(duration: float) -> CancellableDelay:
    return CancellableDelay(duration)
