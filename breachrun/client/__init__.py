"""Client package for breachrun lobby initialization."""

from .actor import GameActor, HttpGameActor, create_actor
from .autojoin import AutoJoinCoordinator, JoinStatus
from .config import ClientSettings, load_settings
from .errors import ClassifiedError, ErrorKind, classify, classify_message
from .models import GameMode, SessionSnapshot
from .orchestrator import InitPhase, InitState, SessionInitOrchestrator
from .readiness import DEFAULT_RETRY_CONFIG, RetryConfig, delay_for, is_ready

__all__ = [
    "AutoJoinCoordinator",
    "ClassifiedError",
    "classify",
    "classify_message",
    "ClientSettings",
    "create_actor",
    "DEFAULT_RETRY_CONFIG",
    "delay_for",
    "ErrorKind",
    "GameActor",
    "GameMode",
    "HttpGameActor",
    "InitPhase",
    "InitState",
    "is_ready",
    "JoinStatus",
    "load_settings",
    "RetryConfig",
    "SessionInitOrchestrator",
    "SessionSnapshot",
]
