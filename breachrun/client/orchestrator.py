"""Session initialization state machine for Solo Mode.

``SessionInitOrchestrator`` drives create -> start -> (poll) -> ready and is the
only writer of the initialization state. Each ``start``/``retry`` mints an
attempt token; every write made after a suspension point first checks that its
token is still current, so overlapping attempts never interleave their writes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from breachrun.client.actor import GameActor
from breachrun.client.attempts import AttemptGuard
from breachrun.client.errors import ClassifiedError, PollExhausted, ReadinessTimeout, classify
from breachrun.client.models import GameMode, SessionId, SessionSnapshot, TerminalOutput
from breachrun.client.poller import DEFAULT_INIT_TIMEOUT, EXHAUSTED, TIMED_OUT, ReadinessPoller
from breachrun.client.readiness import DEFAULT_RETRY_CONFIG, CancellableDelay, RetryConfig, is_ready, schedule

logger = logging.getLogger(__name__)

SOLVE_BASE_SCORE = 100
SOLVE_EFFICIENCY_BONUS = 50
SOLVE_COMMAND_PENALTY = 5


class InitPhase(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    STARTING = "starting"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


_PHASE_MESSAGES = {
    InitPhase.IDLE: "Waiting to start...",
    InitPhase.CREATING: "Creating game session...",
    InitPhase.STARTING: "Starting match...",
    InitPhase.LOADING: "Loading challenge...",
    InitPhase.READY: "Ready!",
    InitPhase.ERROR: "Initialization failed.",
}


def phase_message(phase: InitPhase) -> str:
    return _PHASE_MESSAGES[InitPhase(phase)]


def format_elapsed(seconds: float) -> str:
    whole = int(seconds)
    if whole < 1:
        return "less than 1 second"
    if whole == 1:
        return "1 second"
    return f"{whole} seconds"


@dataclass(frozen=True)
class SessionCounters:
    score: int = 0
    command_count: int = 0
    error_count: int = 0


@dataclass(frozen=True)
class InitState:
    phase: InitPhase = InitPhase.IDLE
    session_id: SessionId | None = None
    snapshot: SessionSnapshot | None = None
    error: ClassifiedError | None = None
    started_at: float | None = None
    counters: SessionCounters = field(default_factory=SessionCounters)

    @property
    def error_message(self) -> str:
        return self.error.message if self.error is not None else ""


Listener = Callable[[InitState], None]


class SessionInitOrchestrator:
    def __init__(
        self,
        actor: GameActor,
        mode: GameMode = GameMode.SOLO,
        config: RetryConfig = DEFAULT_RETRY_CONFIG,
        overall_timeout: float = DEFAULT_INIT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        schedule_delay: Callable[[float], CancellableDelay] = schedule,
    ) -> None:
        self._actor = actor
        self.mode = GameMode(mode)
        self._clock = clock
        self._guard = AttemptGuard()
        self._poller = ReadinessPoller(
            guard=self._guard,
            config=config,
            overall_timeout=overall_timeout,
            clock=clock,
            schedule_delay=schedule_delay,
        )
        self._state = InitState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def phase(self) -> InitPhase:
        return self._state.phase

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def elapsed(self) -> float:
        if self._state.started_at is None:
            return 0.0
        return self._clock() - self._state.started_at

    def _set(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        if "phase" in changes:
            logger.debug("Init attempt %d -> %s", self._guard.current, self._state.phase.value)
        for listener in list(self._listeners):
            listener(self._state)

    def _fail(self, token: int, error: object) -> InitState:
        if not self._guard.is_current(token):
            return self._state
        classified = classify(error)
        logger.warning("Solo initialization failed (%s): %s", classified.kind.value, error)
        self._set(phase=InitPhase.ERROR, error=classified)
        return self._state

    def _begin(self) -> int:
        token = self._guard.begin_attempt()
        self._poller.cancel_pending()
        return token

    def _clear(self) -> None:
        self._set(
            phase=InitPhase.IDLE,
            session_id=None,
            snapshot=None,
            error=None,
            started_at=None,
            counters=SessionCounters(),
        )

    def reset(self) -> None:
        """Invalidate any running attempt and return to ``idle`` with cleared counters."""
        self._begin()
        self._clear()

    async def start(self) -> InitState:
        """Run a fresh initialization attempt, superseding any attempt in flight."""
        token = self._begin()
        if self._state.phase is not InitPhase.IDLE:
            self._clear()
        return await self._run(token)

    async def retry(self) -> InitState:
        token = self._begin()
        self._clear()
        return await self._run(token)

    async def _run(self, token: int) -> InitState:
        started_at = self._clock()
        self._set(phase=InitPhase.CREATING, started_at=started_at)

        try:
            session_id = await self._actor.create_session(self.mode)
        except Exception as exc:
            return self._fail(token, exc)
        if not self._guard.is_current(token):
            return self._state
        self._set(phase=InitPhase.STARTING, session_id=session_id)

        try:
            snapshot = await self._actor.start_session(session_id)
        except Exception as exc:
            return self._fail(token, exc)
        if not self._guard.is_current(token):
            return self._state

        if is_ready(snapshot):
            self._set(phase=InitPhase.READY, snapshot=snapshot)
            return self._state

        self._set(phase=InitPhase.LOADING, snapshot=snapshot)
        outcome = await self._poller.poll_until_ready(
            session_id=session_id,
            token=token,
            fetch_snapshot=self._actor.get_session,
            start_time=started_at,
        )
        if not self._guard.is_current(token):
            return self._state
        if outcome.snapshot is not None:
            self._set(phase=InitPhase.READY, snapshot=outcome.snapshot)
            return self._state
        if outcome.reason == TIMED_OUT:
            return self._fail(token, ReadinessTimeout(f"Lobby {session_id} was not ready before the timeout"))
        if outcome.reason == EXHAUSTED:
            return self._fail(
                token, PollExhausted(f"Lobby {session_id} had no challenge after starting ({outcome.fetches} fetches)")
            )
        return self._state

    async def refresh(self) -> ClassifiedError | None:
        """Re-fetch the current lobby; returns the classified failure, if any."""
        session_id = self._state.session_id
        if session_id is None:
            return None
        token = self._guard.current
        try:
            snapshot = await self._actor.get_session(session_id)
        except Exception as exc:
            logger.warning("Refreshing lobby %s failed: %s", session_id, exc)
            return classify(exc)
        if self._guard.is_current(token) and snapshot is not None:
            self._set(snapshot=snapshot)
        return None

    async def submit_command(self, command: str) -> TerminalOutput:
        state = self._state
        if state.phase is not InitPhase.READY or state.session_id is None:
            return TerminalOutput(lines=("Lobby not initialized.",), solved=False)

        token = self._guard.current
        commands_before = state.counters.command_count
        self._set(counters=replace(state.counters, command_count=commands_before + 1))

        try:
            result = await self._actor.process_command(state.session_id, command)
        except Exception as exc:
            if self._guard.is_current(token):
                counters = self._state.counters
                self._set(counters=replace(counters, error_count=counters.error_count + 1))
            logger.warning("Command %r failed: %s", command, exc)
            return TerminalOutput(lines=(classify(exc).message,), solved=False)

        if result.solved and self._guard.is_current(token):
            bonus = max(0, SOLVE_EFFICIENCY_BONUS - commands_before * SOLVE_COMMAND_PENALTY)
            counters = self._state.counters
            self._set(counters=replace(counters, score=counters.score + SOLVE_BASE_SCORE + bonus))
        await self.refresh()
        return result
