"""Attempt tokens that let superseded async chains abandon themselves."""

from __future__ import annotations


class AttemptGuard:
    """Monotonic attempt counter owned by a single orchestrator.

    A continuation captures the token returned by ``begin_attempt`` and checks
    ``is_current`` before every visible write; a mismatch means a newer
    attempt has started and the continuation must return without side effects.
    """

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def begin_attempt(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current
