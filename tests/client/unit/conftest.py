from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from breachrun.client.models import GameMode, SessionSnapshot
from breachrun.client.readiness import CancellableDelay

CHALLENGE = {"id": 7, "name": "Open Port", "description": "Find the vulnerable service."}

_MISSING: Any = object()


def build_snapshot(
    session_id: int = 42,
    active: bool = True,
    challenge: Any = _MISSING,
    players: tuple[str, ...] = ("host-1",),
    host: str = "host-1",
    mode: GameMode = GameMode.SOLO,
) -> SessionSnapshot:
    return SessionSnapshot.model_validate(
        {
            "id": session_id,
            "isActive": active,
            "currentChallenge": [CHALLENGE] if challenge is _MISSING else challenge,
            "players": list(players),
            "host": host,
            "mode": mode.value,
        }
    )


class RecordingDelays:
    """Delay factory that records requested durations.

    With ``real=False`` every delay resolves on the next loop iteration.
    """

    def __init__(self, real: bool = False) -> None:
        self.real = real
        self.durations: list[float] = []
        self.delays: list[CancellableDelay] = []

    def __call__(self, duration: float) -> CancellableDelay:
        self.durations.append(duration)
        delay = CancellableDelay(duration if self.real else 0.0)
        self.delays.append(delay)
        return delay


@pytest.fixture
def snapshot_factory():
    return build_snapshot


@pytest.fixture
def recording_delays() -> RecordingDelays:
    return RecordingDelays()


@pytest.fixture
def real_delays() -> RecordingDelays:
    return RecordingDelays(real=True)


@pytest.fixture
def fake_actor() -> MagicMock:
    actor = MagicMock()
    actor.principal = "player-1"
    actor.create_session = AsyncMock(return_value=42)
    actor.start_session = AsyncMock(return_value=None)
    actor.get_session = AsyncMock(return_value=None)
    actor.join_session = AsyncMock(return_value=None)
    actor.leave_session = AsyncMock(return_value=None)
    actor.process_command = AsyncMock()
    return actor
