"""events.py — Lifecycle events from the pi host, and the context they carry.

pi delivers one event at a time to the extension. Each event comes with a
HostContext: a read-only view of the current session (id, working
directory, active model, message history) plus a way to notify the user.

parse_event() maps pi's event names and dict payloads onto these types, so
a host that speaks JSON (RPC mode, recorded transcripts) can drive the
orchestrator the same way the in-process extension API does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from .content import Message, ToolResult, parse_message
from .state import ModelInfo


class InputSource(Enum):
    """Where a user input came from."""

    INTERACTIVE = "interactive"  # Typed by a human
    RPC = "rpc"                  # Sent by a driving program on a human's behalf
    EXTENSION = "extension"      # Injected by an extension


@dataclass
class Event:
    """Base host event."""


@dataclass
class SessionStartEvent(Event):
    """A session started: new, or resumed with existing history."""


@dataclass
class SessionForkEvent(Event):
    """The user forked the conversation into a new session."""


@dataclass
class SessionShutdownEvent(Event):
    """The session is ending."""


@dataclass
class ModelSelectEvent(Event):
    model: ModelInfo = field(default_factory=lambda: ModelInfo(id="", provider=""))


@dataclass
class InputEvent(Event):
    text: str = ""
    source: InputSource = InputSource.INTERACTIVE


@dataclass
class TurnEndEvent(Event):
    """One assistant turn finished.

    tool_results holds the results of the turn's tool calls, in call order.
    """

    message: Message | None = None
    tool_results: list[ToolResult] = field(default_factory=list)


class HostContext(Protocol):
    """What the orchestrator needs from the host at event time."""

    session_id: str
    cwd: str
    model: ModelInfo | None
    session_name: str | None
    has_ui: bool

    def get_branch(self) -> Sequence[Message]:
        """Messages on the current branch, oldest first."""
        ...

    def notify(self, message: str, level: str = "info") -> None:
        ...


def parse_event(name: str, raw: dict | None = None) -> Event | None:
    """Parse a named pi event with its dict payload. None if not ours."""
    raw = raw or {}

    if name == "session_start":
        return SessionStartEvent()

    elif name == "session_fork":
        return SessionForkEvent()

    elif name == "session_shutdown":
        return SessionShutdownEvent()

    elif name == "model_select":
        model = raw.get("model") or {}
        return ModelSelectEvent(
            model=ModelInfo(id=model.get("id", ""), provider=model.get("provider", ""))
        )

    elif name == "input":
        try:
            source = InputSource(raw.get("source", "interactive"))
        except ValueError:
            source = InputSource.INTERACTIVE
        return InputEvent(
            text=raw.get("text") or "",
            source=source,
        )

    elif name == "turn_end":
        message = parse_message(raw.get("message") or {})
        results = [parse_message(r) for r in raw.get("toolResults") or []]
        return TurnEndEvent(
            message=message,
            tool_results=[r for r in results if isinstance(r, ToolResult)],
        )

    return None
