"""pi_opensync - Sync pi agent sessions to an OpenSync dashboard.

Architecture:
- Host lifecycle events drive an EventOrchestrator (optionally through an EventPump)
- The orchestrator owns one SessionState and backfills it on resume/fork
- Pure transform functions turn state + content into wire payloads
- SyncClient ships payloads over HTTP and reports, never raises
"""

from .client import FailureKind, SyncClient, SyncResult
from .config import SyncConfig, load_config, normalize_convex_url, save_config
from .dispatch import EventPump
from .events import (
    HostContext,
    InputEvent,
    InputSource,
    ModelSelectEvent,
    SessionForkEvent,
    SessionShutdownEvent,
    SessionStartEvent,
    TurnEndEvent,
    parse_event,
)
from .history import JsonlSessionHistory, find_session_path
from .observability import configure as configure_observability
from .orchestrator import EventOrchestrator, OrchestratorState, create_orchestrator
from .state import ModelInfo, SessionState
from .transform import MessagePayload, SessionPayload, TransformOptions

__all__ = [
    # Orchestration
    "EventOrchestrator",
    "OrchestratorState",
    "create_orchestrator",
    "EventPump",
    # Events
    "HostContext",
    "InputEvent",
    "InputSource",
    "ModelSelectEvent",
    "SessionForkEvent",
    "SessionShutdownEvent",
    "SessionStartEvent",
    "TurnEndEvent",
    "parse_event",
    # State and payloads
    "ModelInfo",
    "SessionState",
    "SessionPayload",
    "MessagePayload",
    "TransformOptions",
    # Client
    "SyncClient",
    "SyncResult",
    "FailureKind",
    # Config
    "SyncConfig",
    "load_config",
    "normalize_convex_url",
    "save_config",
    # History
    "JsonlSessionHistory",
    "find_session_path",
    # Observability
    "configure_observability",
]
__version__ = "0.2.0"
