import pytest

from breachrun.client.models import GameMode, SessionSnapshot, TerminalOutput, parse_snapshot, unwrap_optional

CHALLENGE = {"id": 3, "name": "Decode", "description": "Decode the payload."}


@pytest.mark.parametrize(
    "encoded",
    [None, [], (), {}, {"__kind__": "None"}, [CHALLENGE, CHALLENGE], {"__kind__": "Other", "value": 1}],
)
def test_unwrap_optional_treats_absent_and_malformed_as_none(encoded) -> None:
    assert unwrap_optional(encoded) is None


@pytest.mark.parametrize(
    "encoded",
    [[CHALLENGE], {"__kind__": "Some", "value": CHALLENGE}, CHALLENGE],
)
def test_unwrap_optional_returns_present_payload(encoded) -> None:
    assert unwrap_optional(encoded) == CHALLENGE


def _lobby(**overrides):
    payload = {
        "id": "12",
        "isActive": True,
        "currentChallenge": [CHALLENGE],
        "players": ["host-1", "guest-2"],
        "host": "host-1",
        "mode": "cooperative",
    }
    payload.update(overrides)
    return payload


def test_snapshot_decodes_wire_names_and_string_ids() -> None:
    snapshot = SessionSnapshot.model_validate(_lobby())

    assert snapshot.id == 12
    assert snapshot.is_active is True
    assert snapshot.current_challenge is not None
    assert snapshot.current_challenge.name == "Decode"
    assert snapshot.mode is GameMode.COOPERATIVE
    assert snapshot.has_member("guest-2")
    assert not snapshot.has_member("stranger")
    assert not snapshot.has_member(None)


@pytest.mark.parametrize("challenge", [[], None, [{"name": "missing id"}], "garbage", [1, 2]])
def test_snapshot_treats_bad_challenge_as_absent(challenge) -> None:
    snapshot = SessionSnapshot.model_validate(_lobby(currentChallenge=challenge))

    assert snapshot.current_challenge is None


def test_parse_snapshot_returns_none_for_undecodable_payloads() -> None:
    assert parse_snapshot(None) is None
    assert parse_snapshot([]) is None
    assert parse_snapshot({"id": 1}) is None
    assert parse_snapshot([_lobby()]).id == 12


def test_game_mode_multiplayer_flag() -> None:
    assert not GameMode.SOLO.is_multiplayer
    assert GameMode.COMPETITIVE.is_multiplayer
    assert GameMode.COOPERATIVE.is_multiplayer


def test_terminal_output_unwraps_context() -> None:
    output = TerminalOutput.model_validate({"lines": ["Scanning..."], "solved": False, "context": ["port_8080_found"]})

    assert output.lines == ("Scanning...",)
    assert output.context == "port_8080_found"
