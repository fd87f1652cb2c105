"""Auto-join coordination for multiplayer lobbies."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from breachrun.client.actor import GameActor
from breachrun.client.errors import AlreadyMember, classify_message
from breachrun.client.models import GameMode, SessionId, SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass
class JoinAttemptRecord:
    session_id: SessionId | None
    has_attempted: bool = False
    is_pending: bool = False
    last_error: str = ""
    in_flight: int = field(default=0, repr=False)


@dataclass(frozen=True)
class JoinStatus:
    needs_join: bool
    is_joining: bool
    has_attempted: bool
    join_error: str
    is_authenticated: bool
    can_process_commands: bool


class AutoJoinCoordinator:
    """Joins the caller to a multiplayer lobby at most once per visit.

    ``observe`` is called whenever a new snapshot of the visited lobby is
    available. The first time the caller is found missing from a cooperative or
    competitive lobby, one join call is launched; further observations while
    it is pending or after it has been attempted launch nothing. ``retry_join``
    is the explicit manual path and always calls the backend.
    """

    def __init__(self, actor: GameActor, principal: str | None = None) -> None:
        self._actor = actor
        self._principal = principal if principal is not None else actor.principal
        self._record = JoinAttemptRecord(session_id=None)
        self._snapshot: SessionSnapshot | None = None
        self._loading = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def principal(self) -> str | None:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return bool(self.principal)

    @property
    def record(self) -> JoinAttemptRecord:
        return self._record

    def _is_member(self) -> bool:
        return self._snapshot is not None and self._snapshot.has_member(self.principal)

    def _needs_join(self) -> bool:
        snapshot = self._snapshot
        if snapshot is None or self._loading:
            return False
        return snapshot.mode.is_multiplayer and self.is_authenticated and not self._is_member()

    @property
    def status(self) -> JoinStatus:
        snapshot = self._snapshot
        solo = snapshot is not None and snapshot.mode is GameMode.SOLO
        return JoinStatus(
            needs_join=self._needs_join(),
            is_joining=self._record.is_pending,
            has_attempted=self._record.has_attempted,
            join_error=self._record.last_error,
            is_authenticated=self.is_authenticated,
            can_process_commands=solo or self._is_member(),
        )

    def observe(
        self,
        session_id: SessionId | None,
        snapshot: SessionSnapshot | None,
        loading: bool = False,
    ) -> JoinStatus:
        if session_id != self._record.session_id:
            self._record = JoinAttemptRecord(session_id=session_id)
        self._snapshot = snapshot
        self._loading = loading

        record = self._record
        if (
            self._needs_join()
            and session_id is not None
            and not record.has_attempted
            and not record.is_pending
        ):
            self._launch(record, session_id)
        return self.status

    def _launch(self, record: JoinAttemptRecord, session_id: SessionId) -> None:
        # Resolve the loop before touching the record so a failure leaves it unattempted.
        loop = asyncio.get_running_loop()
        record.has_attempted = True
        record.last_error = ""
        self._mark_pending(record)
        task = loop.create_task(self._join(record, session_id, automatic=True))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _mark_pending(self, record: JoinAttemptRecord) -> None:
        record.in_flight += 1
        record.is_pending = True

    async def _join(self, record: JoinAttemptRecord, session_id: SessionId, automatic: bool) -> None:
        try:
            await self._actor.join_session(session_id)
        except AlreadyMember:
            logger.debug("Caller already in lobby %s", session_id)
        except Exception as exc:
            logger.warning("%s join of lobby %s failed: %s", "Auto" if automatic else "Manual", session_id, exc)
            if record is self._record:
                record.last_error = classify_message(exc)
        finally:
            record.in_flight -= 1
            record.is_pending = record.in_flight > 0

    async def retry_join(self) -> JoinStatus:
        record = self._record
        session_id = record.session_id
        if session_id is None:
            return self.status
        record.has_attempted = True
        record.last_error = ""
        self._mark_pending(record)
        await self._join(record, session_id, automatic=False)
        return self.status

    def clear_error(self) -> None:
        self._record.last_error = ""

    async def wait_pending(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def leave(self) -> str:
        """Leave the visited lobby and forget its record; returns an error message or ``""``."""
        session_id = self._record.session_id
        self._record = JoinAttemptRecord(session_id=None)
        self._snapshot = None
        if session_id is None:
            return ""
        try:
            await self._actor.leave_session(session_id)
        except Exception as exc:
            logger.warning("Leaving lobby %s failed: %s", session_id, exc)
            return classify_message(exc)
        return ""
