"""Backend actor interface and its HTTP implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from breachrun.client.config import ClientSettings
from breachrun.client.errors import (
    AlreadyActive,
    AlreadyMember,
    BackendError,
    NotFound,
    ServerUnavailable,
    Unauthorized,
    extract_message,
)
from breachrun.client.models import GameMode, SessionId, SessionSnapshot, TerminalOutput, parse_snapshot

logger = logging.getLogger(__name__)


class GameActor(Protocol):
    principal: str | None

    async def create_session(self, mode: GameMode) -> SessionId:
        """Create a lobby in the given mode and return its id."""

    async def start_session(self, session_id: SessionId) -> SessionSnapshot | None:
        """Start the match and return the lobby as seen right after starting."""

    async def get_session(self, session_id: SessionId) -> SessionSnapshot | None:
        """Return the current lobby snapshot, or None when it does not exist."""

    async def join_session(self, session_id: SessionId) -> None:
        """Add the caller to the lobby's players."""

    async def leave_session(self, session_id: SessionId) -> None:
        """Remove the caller from the lobby's players."""

    async def process_command(self, session_id: SessionId, command: str) -> TerminalOutput:
        """Submit a terminal command against the lobby's current challenge."""


def _error_from_response(response: httpx.Response) -> BackendError:
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None

    message = ""
    reject_code = None
    if isinstance(payload, dict):
        detail = payload.get("detail")
        if isinstance(detail, dict):
            payload = detail
        message = extract_message(payload) or ""
        reject_code = payload.get("reject_code")
    if not message:
        message = response.reason_phrase or ""

    status = response.status_code
    if str(reject_code) == "5" or status in (502, 503, 504):
        return ServerUnavailable(message)
    if status in (401, 403):
        return Unauthorized(message)
    if status == 404:
        return NotFound(message)
    if status == 409:
        if "already a member" in message.lower():
            return AlreadyMember(message)
        return AlreadyActive(message)
    return BackendError(message)


class HttpGameActor:
    """``GameActor`` speaking JSON over HTTP to the game backend."""

    def __init__(
        self,
        base_url: str,
        identity: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        principal: str | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {identity}"} if identity else {}
        self.principal = principal if principal is not None else identity
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
        client.headers.update(headers)
        self._client = client

    async def __aenter__(self) -> "HttpGameActor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        response = await self._client.request(method, path, json=json)
        if response.is_error:
            error = _error_from_response(response)
            logger.warning("%s %s failed with %d: %s", method, path, response.status_code, error)
            raise error
        if not response.content:
            return None
        return response.json()

    async def health(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.TransportError:
            return False
        return response.status_code < 500

    async def create_session(self, mode: GameMode) -> SessionId:
        payload = await self._request("POST", "/api/lobbies", json={"mode": GameMode(mode).value})
        return int(payload["lobbyId"])

    async def start_session(self, session_id: SessionId) -> SessionSnapshot | None:
        payload = await self._request("POST", f"/api/lobbies/{session_id}/start")
        return parse_snapshot((payload or {}).get("lobby"))

    async def get_session(self, session_id: SessionId) -> SessionSnapshot | None:
        try:
            payload = await self._request("GET", f"/api/lobbies/{session_id}")
        except NotFound:
            return None
        return parse_snapshot((payload or {}).get("lobby"))

    async def join_session(self, session_id: SessionId) -> None:
        try:
            await self._request("POST", f"/api/lobbies/{session_id}/join")
        except AlreadyMember:
            logger.debug("Already a member of lobby %s", session_id)

    async def leave_session(self, session_id: SessionId) -> None:
        await self._request("POST", f"/api/lobbies/{session_id}/leave")

    async def process_command(self, session_id: SessionId, command: str) -> TerminalOutput:
        payload = await self._request("POST", f"/api/lobbies/{session_id}/commands", json={"command": command})
        return TerminalOutput.model_validate(payload or {})


def create_actor(settings: ClientSettings) -> HttpGameActor:
    return HttpGameActor(
        base_url=settings.server_url,
        identity=settings.identity,
        timeout=settings.request_timeout,
        principal=settings.principal,
    )
