"""content.py — Message content as pi delivers it, in typed form.

pi hands us messages as plain dicts (live events and JSONL history alike).
Everything downstream (state accumulation, payload transformation) works
over the typed parts defined here instead of poking at dict keys.

Content parts (the tagged union):
  - TextPart       {"type": "text", "text": ...}
  - ThinkingPart   {"type": "thinking", "thinking": ...}
  - ToolCallPart   {"type": "toolCall", "id": ..., "name": ..., "arguments": {...}}
  - ImagePart      {"type": "image", "data": ..., "mimeType": ...}

Messages:
  - UserMessage        role "user"
  - AssistantMessage   role "assistant" (text, thinking, tool calls, usage)
  - ToolResult         role "toolResult" (one per executed tool call)

parse_part() and parse_message() are the single point where pi's wire
format maps to our type system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


# -- Content parts ------------------------------------------------------------


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ThinkingPart:
    """Model reasoning. Only synced when thinking inclusion is on."""

    text: str


@dataclass(frozen=True)
class ToolCallPart:
    """A tool invocation inside an assistant turn."""

    id: str
    name: str
    arguments: Any = field(default_factory=dict)


@dataclass(frozen=True)
class ImagePart:
    data: str
    mime_type: str


ContentPart = Union[TextPart, ThinkingPart, ToolCallPart, ImagePart]
AssistantPart = Union[TextPart, ThinkingPart, ToolCallPart]
UserPart = Union[TextPart, ImagePart]


# -- Messages -----------------------------------------------------------------


@dataclass(frozen=True)
class Usage:
    """Token and cost totals reported for one assistant turn."""

    input: int = 0
    output: int = 0
    cost_total: float = 0.0


@dataclass(frozen=True)
class UserMessage:
    content: str | list[UserPart]
    timestamp: int | None = None

    role = "user"


@dataclass(frozen=True)
class AssistantMessage:
    content: list[AssistantPart] = field(default_factory=list)
    model: str | None = None
    provider: str | None = None
    usage: Usage | None = None
    timestamp: int | None = None

    role = "assistant"

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [part for part in self.content if isinstance(part, ToolCallPart)]


@dataclass(frozen=True)
class ToolResult:
    """The outcome of one tool call.

    tool_call_id is optional: pi supplies it, but pairing with calls falls
    back to list position when it is missing (see transform.pair_tool_results).
    """

    tool_name: str
    content: list[UserPart] = field(default_factory=list)
    tool_call_id: str | None = None
    is_error: bool = False
    timestamp: int | None = None

    role = "toolResult"

    @property
    def text(self) -> str:
        """Concatenated text sub-parts. Images are dropped."""
        return "\n".join(part.text for part in self.content if isinstance(part, TextPart))


Message = Union[UserMessage, AssistantMessage, ToolResult]


# -- Parsing ------------------------------------------------------------------


def parse_part(raw: dict) -> ContentPart | None:
    """Parse one raw content block. Returns None for types we don't model."""
    part_type = raw.get("type", "")

    if part_type == "text":
        return TextPart(text=raw.get("text", ""))

    elif part_type == "thinking":
        # pi-ai uses "thinking"; older transcripts carry "text"
        return ThinkingPart(text=raw.get("thinking", raw.get("text", "")))

    elif part_type == "toolCall":
        return ToolCallPart(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            arguments=raw.get("arguments", {}),
        )

    elif part_type == "image":
        return ImagePart(data=raw.get("data", ""), mime_type=raw.get("mimeType", ""))

    return None


def parse_parts(raw_parts: list[dict]) -> list[ContentPart]:
    parts = []
    for raw in raw_parts:
        if not isinstance(raw, dict):
            continue
        part = parse_part(raw)
        if part is not None:
            parts.append(part)
    return parts


def parse_usage(raw: dict | None) -> Usage | None:
    if not raw:
        return None
    cost = raw.get("cost") or {}
    return Usage(
        input=raw.get("input", 0),
        output=raw.get("output", 0),
        cost_total=cost.get("total", 0.0) if isinstance(cost, dict) else float(cost),
    )


def parse_message(raw: dict) -> Message | None:
    """Parse a raw pi message dict into a typed message.

    Returns None for roles we don't sync (bash executions, custom messages...).
    """
    role = raw.get("role", "")

    if role == "user":
        content = raw.get("content") or ""
        if not isinstance(content, str):
            content = [p for p in parse_parts(content) if isinstance(p, (TextPart, ImagePart))]
        return UserMessage(content=content, timestamp=raw.get("timestamp"))

    elif role == "assistant":
        parts = [
            p for p in parse_parts(raw.get("content") or [])
            if isinstance(p, (TextPart, ThinkingPart, ToolCallPart))
        ]
        return AssistantMessage(
            content=parts,
            model=raw.get("model"),
            provider=raw.get("provider"),
            usage=parse_usage(raw.get("usage")),
            timestamp=raw.get("timestamp"),
        )

    elif role == "toolResult":
        parts = [
            p for p in parse_parts(raw.get("content") or [])
            if isinstance(p, (TextPart, ImagePart))
        ]
        return ToolResult(
            tool_name=raw.get("toolName", ""),
            content=parts,
            tool_call_id=raw.get("toolCallId"),
            is_error=raw.get("isError", False),
            timestamp=raw.get("timestamp"),
        )

    return None
