"""Failure taxonomy and the classifier that turns any failure into a user message.

Backend failures reach the client in several shapes: typed exceptions raised
by the actor, ``httpx`` transport exceptions, plain mappings carrying reject
fields and bare strings. ``classify`` folds all of them into one
``ClassifiedError`` so call sites never special-case a shape.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

import httpx

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    SERVER_UNAVAILABLE = "server_unavailable"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    ALREADY_ACTIVE = "already_active"
    TIMEOUT = "timeout"
    POLL_EXHAUSTED = "poll_exhausted"
    NETWORK = "network"
    UNKNOWN = "unknown"


FALLBACK_MESSAGE = "An unexpected error occurred. Please try again."

KIND_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.SERVER_UNAVAILABLE: (
        "The game server is currently offline or stopped. Please try again later, "
        "or contact the administrator to restart the server."
    ),
    ErrorKind.UNAUTHORIZED: (
        "Authorization failed. Please ensure you are logged in and have the required permissions."
    ),
    ErrorKind.NOT_FOUND: "Lobby could not be found. It may have been closed or deleted.",
    ErrorKind.ALREADY_ACTIVE: "This match is already in progress.",
    ErrorKind.TIMEOUT: (
        "The request timed out. The server may be slow or experiencing issues. Please try again."
    ),
    ErrorKind.POLL_EXHAUSTED: (
        "The game challenge did not load properly after starting the match. "
        "Please try again or contact support if the issue persists."
    ),
    ErrorKind.NETWORK: "Network error occurred. Please check your connection and try again.",
    ErrorKind.UNKNOWN: FALLBACK_MESSAGE,
}


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str


class BackendError(Exception):
    """Base class for failures reported by the game backend."""

    kind = ErrorKind.UNKNOWN


class ServerUnavailable(BackendError):
    kind = ErrorKind.SERVER_UNAVAILABLE


class Unauthorized(BackendError):
    kind = ErrorKind.UNAUTHORIZED


class NotFound(BackendError):
    kind = ErrorKind.NOT_FOUND


class AlreadyActive(BackendError):
    kind = ErrorKind.ALREADY_ACTIVE


class AlreadyMember(BackendError):
    """Raised by join calls for a caller already in the lobby; callers treat it as success."""


class ReadinessTimeout(BackendError):
    kind = ErrorKind.TIMEOUT


class PollExhausted(BackendError):
    kind = ErrorKind.POLL_EXHAUSTED


@dataclass(frozen=True)
class _Rule:
    matches: Callable[[str], bool]
    kind: ErrorKind
    message: str


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda text: all(needle in text for needle in needles)


def _contains_any(*needles: str) -> Callable[[str], bool]:
    return lambda text: any(needle in text for needle in needles)


def _server_stopped(text: str) -> bool:
    return (
        ("canister" in text and "stopped" in text)
        or ("server" in text and "is stopped" in text)
        or "ic0508" in text
        or "reject_code: 5" in text
        or "reject_code:5" in text
    )


# Ordered most specific first: the first matching rule wins.
_RULES: tuple[_Rule, ...] = (
    _Rule(_server_stopped, ErrorKind.SERVER_UNAVAILABLE, KIND_MESSAGES[ErrorKind.SERVER_UNAVAILABLE]),
    _Rule(_contains("only the host can start"), ErrorKind.UNAUTHORIZED, "Only the lobby host can start the match."),
    _Rule(
        _contains("unauthorized", "only users can"),
        ErrorKind.UNAUTHORIZED,
        "You must be logged in to perform this action.",
    ),
    _Rule(
        _contains("unauthorized", "not a member of this lobby"),
        ErrorKind.UNAUTHORIZED,
        "You are not a member of this lobby. Please join the lobby first.",
    ),
    _Rule(
        _contains("unauthorized", "only authenticated users"),
        ErrorKind.UNAUTHORIZED,
        "You must be logged in to interact with multiplayer lobbies.",
    ),
    _Rule(_contains("unauthorized"), ErrorKind.UNAUTHORIZED, KIND_MESSAGES[ErrorKind.UNAUTHORIZED]),
    _Rule(_contains("lobby not found"), ErrorKind.NOT_FOUND, KIND_MESSAGES[ErrorKind.NOT_FOUND]),
    _Rule(
        _contains("lobby with id", "not found"),
        ErrorKind.NOT_FOUND,
        "The lobby could not be found. It may have expired or been removed.",
    ),
    _Rule(_contains("match is already active"), ErrorKind.ALREADY_ACTIVE, KIND_MESSAGES[ErrorKind.ALREADY_ACTIVE]),
    _Rule(
        _contains("failed to load the challenge"),
        ErrorKind.POLL_EXHAUSTED,
        "Failed to initialize the game challenge. The server may be experiencing issues. Please try again.",
    ),
    _Rule(_contains("challenge after starting"), ErrorKind.POLL_EXHAUSTED, KIND_MESSAGES[ErrorKind.POLL_EXHAUSTED]),
    _Rule(
        _contains("actor not available"),
        ErrorKind.NETWORK,
        "Backend connection not ready. Please wait a moment and try again.",
    ),
    _Rule(_contains_any("timeout", "timed out"), ErrorKind.TIMEOUT, KIND_MESSAGES[ErrorKind.TIMEOUT]),
    _Rule(
        _contains_any("network", "failed to fetch", "connection refused", "connection reset"),
        ErrorKind.NETWORK,
        KIND_MESSAGES[ErrorKind.NETWORK],
    ),
    _Rule(
        _contains("command not found"),
        ErrorKind.UNKNOWN,
        'Unknown command. Type "help" to see available commands.',
    ),
)

_TRANSPORT_CODE = re.compile(r"\bic\d{4}\b|reject_code|error_code|\bhttp/\d", re.IGNORECASE)

_STATUS_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    408: ErrorKind.TIMEOUT,
    409: ErrorKind.ALREADY_ACTIVE,
    502: ErrorKind.SERVER_UNAVAILABLE,
    503: ErrorKind.SERVER_UNAVAILABLE,
    504: ErrorKind.SERVER_UNAVAILABLE,
}


def kind_for_status(status_code: int) -> ErrorKind:
    return _STATUS_KINDS.get(status_code, ErrorKind.UNKNOWN)


def _match_rules(text: str) -> ClassifiedError | None:
    lowered = text.lower()
    for rule in _RULES:
        if rule.matches(lowered):
            return ClassifiedError(kind=rule.kind, message=rule.message)
    return None


def _is_readable(text: str) -> bool:
    stripped = text.strip()
    if not stripped or not stripped.isprintable():
        return False
    if not any(char.isalpha() for char in stripped):
        return False
    return _TRANSPORT_CODE.search(stripped) is None


def _from_text(text: str | None) -> ClassifiedError:
    if not text:
        return ClassifiedError(kind=ErrorKind.UNKNOWN, message=FALLBACK_MESSAGE)
    matched = _match_rules(text)
    if matched is not None:
        return matched
    if _is_readable(text):
        return ClassifiedError(kind=ErrorKind.UNKNOWN, message=text.strip())
    return ClassifiedError(kind=ErrorKind.UNKNOWN, message=FALLBACK_MESSAGE)


def _for_kind(kind: ErrorKind) -> ClassifiedError:
    return ClassifiedError(kind=kind, message=KIND_MESSAGES[kind])


def _classify_typed(error: BackendError) -> ClassifiedError:
    text = str(error)
    if error.kind is ErrorKind.UNKNOWN:
        return _from_text(text)
    matched = _match_rules(text) if text else None
    if matched is not None and matched.kind is error.kind:
        return matched
    return _for_kind(error.kind)


def _is_stopped_code(payload: Mapping[str, Any]) -> bool:
    reject_code = payload.get("reject_code")
    return str(reject_code) == "5" or payload.get("error_code") == "IC0508"


def extract_message(payload: Mapping[str, Any]) -> str | None:
    """Pull the human-facing text out of a backend reject payload."""
    for key in ("reject_message", "error_message", "message", "detail"):
        value = payload.get(key)
        if value:
            return str(value)
    nested = payload.get("error")
    if isinstance(nested, Mapping):
        for key in ("message", "reject_message"):
            value = nested.get(key)
            if value:
                return str(value)
    result = payload.get("result")
    if isinstance(result, Mapping) and result.get("err"):
        return str(result["err"])
    return None


def _classify(raw: object) -> ClassifiedError:
    if isinstance(raw, BackendError):
        return _classify_typed(raw)
    if isinstance(raw, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return _for_kind(ErrorKind.TIMEOUT)
    if isinstance(raw, httpx.HTTPStatusError):
        kind = kind_for_status(raw.response.status_code)
        if kind is ErrorKind.UNKNOWN:
            return _for_kind(ErrorKind.SERVER_UNAVAILABLE if raw.response.status_code >= 500 else kind)
        return _for_kind(kind)
    if isinstance(raw, (httpx.TransportError, ConnectionError)):
        return _for_kind(ErrorKind.NETWORK)
    if isinstance(raw, BaseException):
        return _from_text(str(raw))
    if isinstance(raw, Mapping):
        if _is_stopped_code(raw):
            return _for_kind(ErrorKind.SERVER_UNAVAILABLE)
        return _from_text(extract_message(raw))
    if isinstance(raw, str):
        return _from_text(raw)
    return ClassifiedError(kind=ErrorKind.UNKNOWN, message=FALLBACK_MESSAGE)


def classify(raw: object) -> ClassifiedError:
    """Map any failure shape onto an ``ErrorKind`` and a user-facing message."""
    try:
        return _classify(raw)
    except Exception:
        logger.exception("Failed to classify error of type %s", type(raw).__name__)
        return ClassifiedError(kind=ErrorKind.UNKNOWN, message=FALLBACK_MESSAGE)


def classify_message(raw: object) -> str:
    return classify(raw).message
