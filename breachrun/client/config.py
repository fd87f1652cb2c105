"""Configuration helpers for the client runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from breachrun.client.readiness import RetryConfig


@dataclass(frozen=True)
class ClientSettings:
    server_url: str
    identity: str | None
    principal: str | None
    request_timeout: float
    init_timeout: float
    poll_max_attempts: int
    poll_initial_delay: float
    poll_max_delay: float
    poll_multiplier: float
    log_level: str

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.poll_max_attempts,
            initial_delay=self.poll_initial_delay,
            max_delay=self.poll_max_delay,
            multiplier=self.poll_multiplier,
        )


def load_settings() -> ClientSettings:
    identity = os.getenv("BREACHRUN_IDENTITY") or None
    return ClientSettings(
        server_url=os.getenv("BREACHRUN_SERVER_URL", "http://127.0.0.1:8000").rstrip("/"),
        identity=identity,
        principal=os.getenv("BREACHRUN_PRINCIPAL") or identity,
        request_timeout=float(os.getenv("BREACHRUN_REQUEST_TIMEOUT", "10")),
        init_timeout=float(os.getenv("BREACHRUN_INIT_TIMEOUT", "15")),
        poll_max_attempts=int(os.getenv("BREACHRUN_POLL_MAX_ATTEMPTS", "10")),
        poll_initial_delay=float(os.getenv("BREACHRUN_POLL_INITIAL_DELAY", "0.1")),
        poll_max_delay=float(os.getenv("BREACHRUN_POLL_MAX_DELAY", "1.0")),
        poll_multiplier=float(os.getenv("BREACHRUN_POLL_MULTIPLIER", "2")),
        log_level=os.getenv("BREACHRUN_LOG_LEVEL", "WARNING").upper(),
    )
