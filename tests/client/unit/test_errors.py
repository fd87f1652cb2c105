import httpx
import pytest

from breachrun.client.errors import (
    FALLBACK_MESSAGE,
    KIND_MESSAGES,
    AlreadyActive,
    ErrorKind,
    NotFound,
    PollExhausted,
    ReadinessTimeout,
    Unauthorized,
    classify,
    classify_message,
    extract_message,
    kind_for_status,
)

STOPPED = KIND_MESSAGES[ErrorKind.SERVER_UNAVAILABLE]


def test_membership_message_wins_over_generic_authorization() -> None:
    result = classify(Exception("Unauthorized: Caller is not a member of this lobby"))

    assert result.kind is ErrorKind.UNAUTHORIZED
    assert result.message == "You are not a member of this lobby. Please join the lobby first."


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("Unauthorized: Only the host can start the match", "Only the lobby host can start the match."),
        ("Unauthorized: Only users can create lobbies", "You must be logged in to perform this action."),
        ("Unauthorized: Only authenticated users can join", "You must be logged in to interact with multiplayer lobbies."),
        ("Unauthorized", KIND_MESSAGES[ErrorKind.UNAUTHORIZED]),
    ],
)
def test_authorization_sub_cases(raw, message) -> None:
    assert classify(raw).message == message


@pytest.mark.parametrize(
    "raw",
    [
        Exception("Canister abc-123 is stopped"),
        "Canister abc has been stopped",
        "Server is stopped for maintenance",
        "IC0508: canister unavailable",
        {"reject_code": 5, "reject_message": "anything"},
        {"reject_code": "5"},
        {"error_code": "IC0508"},
        {"reject_message": "Canister xyz is stopped"},
    ],
)
def test_stopped_server_in_every_shape(raw) -> None:
    result = classify(raw)

    assert result.kind is ErrorKind.SERVER_UNAVAILABLE
    assert result.message == STOPPED


def test_lobby_and_match_rules() -> None:
    assert classify("Lobby not found").kind is ErrorKind.NOT_FOUND
    assert classify("Lobby with ID 9 not found").message == (
        "The lobby could not be found. It may have expired or been removed."
    )
    assert classify("Match is already active").kind is ErrorKind.ALREADY_ACTIVE


@pytest.mark.parametrize(
    ("payload", "kind"),
    [
        ({"error_message": "Lobby not found"}, ErrorKind.NOT_FOUND),
        ({"message": "Unauthorized"}, ErrorKind.UNAUTHORIZED),
        ({"error": {"message": "Match is already active"}}, ErrorKind.ALREADY_ACTIVE),
        ({"error": {"reject_message": "request timed out"}}, ErrorKind.TIMEOUT),
        ({"result": {"err": "Lobby not found"}}, ErrorKind.NOT_FOUND),
    ],
)
def test_reject_payload_fields(payload, kind) -> None:
    assert classify(payload).kind is kind


def test_typed_errors_keep_their_kind() -> None:
    assert classify(NotFound("")).message == KIND_MESSAGES[ErrorKind.NOT_FOUND]
    assert classify(AlreadyActive("conflict")).kind is ErrorKind.ALREADY_ACTIVE
    assert classify(ReadinessTimeout("lobby 3 not ready")).kind is ErrorKind.TIMEOUT
    assert classify(PollExhausted("no challenge")).message == KIND_MESSAGES[ErrorKind.POLL_EXHAUSTED]
    assert classify(Unauthorized("Unauthorized: Caller is not a member of this lobby")).message == (
        "You are not a member of this lobby. Please join the lobby first."
    )


def test_transport_exceptions() -> None:
    request = httpx.Request("GET", "http://game.local/api/lobbies/1")
    response = httpx.Response(503, request=request)

    assert classify(httpx.ConnectError("boom", request=request)).kind is ErrorKind.NETWORK
    assert classify(httpx.ReadTimeout("slow", request=request)).kind is ErrorKind.TIMEOUT
    assert classify(TimeoutError()).kind is ErrorKind.TIMEOUT
    assert classify(ConnectionResetError()).kind is ErrorKind.NETWORK
    status_error = httpx.HTTPStatusError("503", request=request, response=response)
    assert classify(status_error).kind is ErrorKind.SERVER_UNAVAILABLE


def test_readable_text_passes_through() -> None:
    result = classify("  Pick a shorter name.  ")

    assert result.kind is ErrorKind.UNKNOWN
    assert result.message == "Pick a shorter name."


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "reject_code: 4 destination invalid", "HTTP/1.1 500", 12345, None, object(), {"foo": "bar"}, "500"],
)
def test_unreadable_input_uses_fallback(raw) -> None:
    assert classify_message(raw) == FALLBACK_MESSAGE


def test_command_not_found() -> None:
    assert classify("Command not found: hack").message == 'Unknown command. Type "help" to see available commands.'


def test_status_codes_map_to_kinds() -> None:
    assert kind_for_status(401) is ErrorKind.UNAUTHORIZED
    assert kind_for_status(404) is ErrorKind.NOT_FOUND
    assert kind_for_status(409) is ErrorKind.ALREADY_ACTIVE
    assert kind_for_status(503) is ErrorKind.SERVER_UNAVAILABLE
    assert kind_for_status(418) is ErrorKind.UNKNOWN


def test_extract_message_prefers_reject_message() -> None:
    assert extract_message({"reject_message": "a", "message": "b"}) == "a"
    assert extract_message({"detail": "Lobby not found"}) == "Lobby not found"
    assert extract_message({"status": 500}) is None
