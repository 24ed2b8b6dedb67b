"""state.py — Per-session accumulator.

One SessionState per active pi session. The orchestrator owns it and
mutates it in place as events arrive; the transformer reads it to build
session and message payloads.

The message counter is load-bearing: message ids are derived from
(external_id, role, message_count), so the counter must include every
message ever sent for this session: live ones and the ones replayed
during resume or fork backfill. If it drifts, ids collide and the remote
side silently overwrites unrelated messages.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import pendulum

from .content import Usage


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(pendulum.now("UTC").timestamp() * 1000)


@dataclass(frozen=True)
class ModelInfo:
    """The active model as reported by pi."""

    id: str
    provider: str


@dataclass
class SessionState:
    """Accumulated identity and usage for one session.

    external_id, parent_external_id and started_at are fixed at creation.
    Counters and usage totals only ever go up.
    """

    external_id: str
    project_path: str
    project_name: str
    parent_external_id: str | None = None
    model: str | None = None
    provider: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0
    message_count: int = 0
    tool_call_count: int = 0
    started_at: int = field(default_factory=now_ms)

    @classmethod
    def create(
        cls,
        session_id: str,
        project_path: str,
        model: ModelInfo | None = None,
        parent_id: str | None = None,
    ) -> SessionState:
        """Fresh state for a new, resumed, or forked session."""
        return cls(
            external_id=session_id,
            project_path=project_path,
            project_name=os.path.basename(project_path.rstrip("/")) or project_path,
            parent_external_id=parent_id,
            model=model.id if model else None,
            provider=model.provider if model else None,
        )

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def apply_usage(self, usage: Usage) -> None:
        """Add one turn's usage. Negative components count as zero."""
        self.prompt_tokens += max(0, usage.input)
        self.completion_tokens += max(0, usage.output)
        self.cost += max(0.0, usage.cost_total)

    def generate_message_id(self, role: str) -> str:
        return f"{self.external_id}-{role}-{self.message_count}"

    def increment_message_count(self, role: str) -> str:
        """Count one more message and return its id."""
        self.message_count += 1
        return self.generate_message_id(role)

    def increment_tool_call_count(self, count: int = 1) -> None:
        self.tool_call_count += max(0, count)

    def update_model(self, model: ModelInfo) -> None:
        self.model = model.id
        self.provider = model.provider
