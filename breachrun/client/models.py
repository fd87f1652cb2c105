"""Domain models for lobby snapshots and backend replies."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

SessionId = int


class GameMode(str, Enum):
    SOLO = "solo"
    COMPETITIVE = "competitive"
    COOPERATIVE = "cooperative"

    @property
    def is_multiplayer(self) -> bool:
        return self is not GameMode.SOLO


def unwrap_optional(value: Any) -> Any:
    """Return the payload of an optional value or ``None`` when absent.

    Backends encode optionals either as ``[]``/``[value]`` or as a tagged
    ``{"__kind__": "Some", "value": ...}`` object; plain values pass through.
    Empty and malformed encodings are reported as absent.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return value[0] if len(value) == 1 else None
    if isinstance(value, dict):
        if not value:
            return None
        kind = value.get("__kind__")
        if kind == "Some":
            return value.get("value")
        if kind is not None:
            return None
    return value


class Challenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str = ""


class SessionSnapshot(BaseModel):
    """Point-in-time view of a lobby as returned by the backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: SessionId
    is_active: bool = Field(alias="isActive")
    current_challenge: Optional[Challenge] = Field(default=None, alias="currentChallenge")
    players: tuple[str, ...] = ()
    host: str
    mode: GameMode

    @field_validator("current_challenge", mode="before")
    @classmethod
    def unwrap_challenge(cls, value: Any) -> Optional[Challenge]:
        payload = unwrap_optional(value)
        if payload is None:
            return None
        if isinstance(payload, Challenge):
            return payload
        try:
            return Challenge.model_validate(payload)
        except ValidationError:
            return None

    def has_member(self, principal: str | None) -> bool:
        if not principal:
            return False
        return principal in self.players


class TerminalOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...] = ()
    solved: bool = False
    context: Optional[str] = None

    @field_validator("context", mode="before")
    @classmethod
    def unwrap_context(cls, value: Any) -> Any:
        return unwrap_optional(value)


def parse_snapshot(payload: Any) -> SessionSnapshot | None:
    """Decode a lobby payload, treating absent or undecodable data as ``None``."""
    payload = unwrap_optional(payload)
    if payload is None:
        return None
    if isinstance(payload, SessionSnapshot):
        return payload
    try:
        return SessionSnapshot.model_validate(payload)
    except ValidationError:
        return None
