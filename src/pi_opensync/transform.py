"""transform.py — SessionState + message content → OpenSync wire payloads.

Pure functions. Nothing here touches the network or mutates state; the
orchestrator decides when to call them and the client ships the result.

The interesting part is build_parts(). The OpenSync dashboard renders
*either* a message's textContent *or* its parts array, never both. As soon
as a turn carries any structured content (tool calls, tool results,
thinking) the parts array wins and the plain text would vanish, so the
text is duplicated into the first part. Tool calls and their results are
interleaved (call, result, call, result) so the dashboard shows cause
before effect.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Sequence

from .content import (
    AssistantMessage,
    AssistantPart,
    TextPart,
    ThinkingPart,
    ToolCallPart,
    ToolResult,
    UserPart,
)
from .state import SessionState, now_ms

SOURCE = "pi"
UNTITLED = "Untitled"
FORK_PREFIX_LENGTH = 8


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset fields. The API treats a missing key as 'no data yet'."""
    return {key: value for key, value in data.items() if value is not None}


# -- Payloads -----------------------------------------------------------------


class PartType(str, Enum):
    TEXT = "text"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    THINKING = "thinking"


@dataclass(frozen=True)
class MessagePart:
    """One structured fragment of a message.

    content is a string for text, thinking and tool-result parts, and
    {"toolName": ..., "args": ...} for tool-call parts.
    """

    type: PartType
    content: Any

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "content": self.content}


@dataclass(frozen=True)
class SessionPayload:
    external_id: str
    source: str = SOURCE
    title: str | None = None
    project_path: str | None = None
    project_name: str | None = None
    model: str | None = None
    provider: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    cost: float | None = None
    duration_ms: int | None = None
    message_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "externalId": self.external_id,
            "source": self.source,
            "title": self.title,
            "projectPath": self.project_path,
            "projectName": self.project_name,
            "model": self.model,
            "provider": self.provider,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost,
            "durationMs": self.duration_ms,
            "messageCount": self.message_count,
        })


@dataclass(frozen=True)
class MessagePayload:
    session_external_id: str
    external_id: str
    role: str
    text_content: str | None = None
    model: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    created_at: int | None = None
    parts: tuple[MessagePart, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "sessionExternalId": self.session_external_id,
            "externalId": self.external_id,
            "role": self.role,
            "textContent": self.text_content,
            "model": self.model,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "createdAt": self.created_at,
            "parts": [part.to_dict() for part in self.parts] if self.parts else None,
        })


@dataclass(frozen=True)
class TransformOptions:
    """Knobs for message transformation.

    include_thinking: sync reasoning (as <thinking> text and thinking parts).
    include_tool_calls: emit tool-call / tool-result parts.
    duplicate_text: copy textContent into the first part whenever parts
        exist. Only needed for renderers that show one or the other.
    """

    include_thinking: bool = False
    include_tool_calls: bool = True
    duplicate_text: bool = True


DEFAULT_OPTIONS = TransformOptions()


# -- Sessions -----------------------------------------------------------------


def generate_session_title(state: SessionState, session_name: str | None = None) -> str:
    """Title for the dashboard: the session name, or "Untitled".

    Forks get a "[Fork::<parent prefix>]" marker so they're easy to spot.
    """
    title = session_name or UNTITLED
    if state.parent_external_id:
        prefix = state.parent_external_id[:FORK_PREFIX_LENGTH]
        title = f"[Fork::{prefix}] {title}"
    return title


def transform_session(
    state: SessionState,
    session_name: str | None = None,
    is_final: bool = False,
) -> SessionPayload:
    """Build the session payload from current state.

    Usage fields are left out while they're zero. durationMs is only sent
    on the final sync, when the session shuts down.
    """
    has_tokens = state.prompt_tokens > 0 or state.completion_tokens > 0

    return SessionPayload(
        external_id=state.external_id,
        title=generate_session_title(state, session_name),
        project_path=state.project_path,
        project_name=state.project_name,
        model=state.model or None,
        provider=state.provider or None,
        prompt_tokens=state.prompt_tokens if has_tokens else None,
        completion_tokens=state.completion_tokens if has_tokens else None,
        total_tokens=state.total_tokens if has_tokens else None,
        cost=state.cost if state.cost > 0 else None,
        duration_ms=now_ms() - state.started_at if is_final else None,
        message_count=state.message_count if state.message_count > 0 else None,
    )


# -- Text extraction ----------------------------------------------------------


def extract_user_text(content: str | Sequence[UserPart]) -> str:
    if isinstance(content, str):
        return content
    return "\n".join(part.text for part in content if isinstance(part, TextPart))


def extract_text(content: Iterable[AssistantPart], include_thinking: bool = False) -> str:
    """Plain text for an assistant turn, in original order.

    Thinking is wrapped in <thinking> markers and only included on request.
    Tool calls never contribute.
    """
    texts = []
    for part in content:
        if isinstance(part, TextPart):
            texts.append(part.text)
        elif isinstance(part, ThinkingPart) and include_thinking:
            texts.append(f"<thinking>{part.text}</thinking>")
    return "\n".join(texts)


def count_tool_calls(content: Iterable[AssistantPart]) -> int:
    return sum(1 for part in content if isinstance(part, ToolCallPart))


# -- Structured parts ---------------------------------------------------------


def pair_tool_results(
    calls: Sequence[ToolCallPart],
    results: Sequence[ToolResult],
) -> list[ToolResult | None]:
    """Match each call with its result. Returns one slot per call.

    Precondition: pi delivers a turn's results in the same order as its
    calls, so result i answers call i. When every result carries a
    tool_call_id that names a call in this turn we pair by id instead,
    which holds even if that ordering guarantee ever breaks. Calls beyond
    the end of the result list get None.
    """
    call_ids = {call.id for call in calls}
    if results and all(r.tool_call_id and r.tool_call_id in call_ids for r in results):
        by_id = {result.tool_call_id: result for result in results}
        return [by_id.pop(call.id, None) for call in calls]

    return [results[i] if i < len(results) else None for i in range(len(calls))]


def build_parts(
    content: Sequence[AssistantPart],
    tool_results: Sequence[ToolResult] = (),
    options: TransformOptions = DEFAULT_OPTIONS,
) -> list[MessagePart] | None:
    """Structured parts for one assistant turn, or None if there are none.

    Order:
      1. text (the full plain text, only if anything structured follows)
      2. tool-call, tool-result, tool-call, tool-result, ...
      3. thinking parts, in original order
    """
    if not options.include_tool_calls:
        tool_results = ()

    calls = [p for p in content if isinstance(p, ToolCallPart)] if options.include_tool_calls else []
    thinking = [p for p in content if isinstance(p, ThinkingPart)] if options.include_thinking else []

    parts: list[MessagePart] = []

    text = extract_text(content, options.include_thinking)
    has_structured = bool(calls or thinking or tool_results)
    if options.duplicate_text and text and has_structured:
        parts.append(MessagePart(PartType.TEXT, text))

    for call, result in zip(calls, pair_tool_results(calls, tool_results)):
        parts.append(MessagePart(
            PartType.TOOL_CALL,
            {"toolName": call.name, "args": call.arguments},
        ))
        if result is not None:
            parts.append(MessagePart(PartType.TOOL_RESULT, result.text))

    for part in thinking:
        parts.append(MessagePart(PartType.THINKING, part.text))

    return parts or None


# -- Messages -----------------------------------------------------------------


def transform_user_message(
    session_id: str,
    message_id: str,
    text: str,
    timestamp: int | None = None,
) -> MessagePayload:
    return MessagePayload(
        session_external_id=session_id,
        external_id=message_id,
        role="user",
        text_content=text,
        created_at=timestamp if timestamp is not None else now_ms(),
    )


def transform_assistant_message(
    session_id: str,
    message_id: str,
    message: AssistantMessage,
    tool_results: Sequence[ToolResult] = (),
    options: TransformOptions = DEFAULT_OPTIONS,
) -> MessagePayload:
    text = extract_text(message.content, options.include_thinking)
    parts = build_parts(message.content, tool_results, options)

    return MessagePayload(
        session_external_id=session_id,
        external_id=message_id,
        role="assistant",
        text_content=text or None,
        model=message.model,
        prompt_tokens=message.usage.input if message.usage else None,
        completion_tokens=message.usage.output if message.usage else None,
        created_at=message.timestamp,
        parts=tuple(parts) if parts else None,
    )


def for_batch(message: MessagePayload) -> MessagePayload:
    """Batch uploads omit createdAt."""
    return replace(message, created_at=None)
