from breachrun.client.config import load_settings
from breachrun.client.readiness import DEFAULT_RETRY_CONFIG

_ENV_KEYS = (
    "BREACHRUN_SERVER_URL",
    "BREACHRUN_IDENTITY",
    "BREACHRUN_PRINCIPAL",
    "BREACHRUN_REQUEST_TIMEOUT",
    "BREACHRUN_INIT_TIMEOUT",
    "BREACHRUN_POLL_MAX_ATTEMPTS",
    "BREACHRUN_POLL_INITIAL_DELAY",
    "BREACHRUN_POLL_MAX_DELAY",
    "BREACHRUN_POLL_MULTIPLIER",
    "BREACHRUN_LOG_LEVEL",
)


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("BREACHRUN_SERVER_URL", "http://game.local:9000/")
    monkeypatch.setenv("BREACHRUN_IDENTITY", "token-1")
    monkeypatch.setenv("BREACHRUN_PRINCIPAL", "principal-1")
    monkeypatch.setenv("BREACHRUN_INIT_TIMEOUT", "30")
    monkeypatch.setenv("BREACHRUN_POLL_MAX_ATTEMPTS", "4")
    monkeypatch.setenv("BREACHRUN_POLL_INITIAL_DELAY", "0.5")
    monkeypatch.setenv("BREACHRUN_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.server_url == "http://game.local:9000"
    assert settings.identity == "token-1"
    assert settings.principal == "principal-1"
    assert settings.init_timeout == 30.0
    assert settings.log_level == "DEBUG"
    retry = settings.retry_config()
    assert retry.max_attempts == 4
    assert retry.initial_delay == 0.5


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    settings = load_settings()

    assert settings.server_url == "http://127.0.0.1:8000"
    assert settings.identity is None
    assert settings.principal is None
    assert settings.request_timeout == 10.0
    assert settings.init_timeout == 15.0
    assert settings.log_level == "WARNING"
    assert settings.retry_config() == DEFAULT_RETRY_CONFIG


def test_principal_defaults_to_identity(monkeypatch) -> None:
    monkeypatch.delenv("BREACHRUN_PRINCIPAL", raising=False)
    monkeypatch.setenv("BREACHRUN_IDENTITY", "token-2")

    settings = load_settings()

    assert settings.principal == "token-2"
