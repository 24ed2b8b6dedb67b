"""orchestrator.py — Host events → state mutation → sync calls, in order.

The orchestrator is the only owner of the active SessionState. For each
event it mutates the state, asks the transformer for payloads, and hands
them to the client. Sync failures are logged (and shown to the user in
debug mode) but never raised and never retried. The user's session must
not notice that telemetry is down.

Lifecycle:
    UNINITIALIZED --session_start--> ACTIVE --session_shutdown--> SHUT_DOWN

  session_start     create state, backfill from history, sync session
  session_fork      new state (parent = old id), backfill, sync session,
                    batch-sync the backfilled messages, sync session again
  input             count + sync a user message (human input only)
  turn_end          count + usage + sync assistant message, re-sync session
  model_select      update model metadata, no sync
  session_shutdown  final session sync with duration, drop state, close client

Anything but session_start before a session exists is ignored, as is
everything after shutdown.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Sequence

import logfire

from .client import SyncClient, SyncResult
from .config import SyncConfig, load_config
from .content import AssistantMessage, Message, ToolResult, UserMessage
from .events import (
    Event,
    HostContext,
    InputEvent,
    InputSource,
    ModelSelectEvent,
    SessionForkEvent,
    SessionShutdownEvent,
    SessionStartEvent,
    TurnEndEvent,
)
from .state import SessionState
from .transform import (
    DEFAULT_OPTIONS,
    MessagePayload,
    TransformOptions,
    count_tool_calls,
    extract_user_text,
    for_batch,
    transform_assistant_message,
    transform_session,
    transform_user_message,
)


class OrchestratorState(Enum):
    UNINITIALIZED = auto()  # No session yet
    ACTIVE = auto()         # Tracking a session
    SHUT_DOWN = auto()      # Session ended; everything is a no-op


# -- Accumulation (shared by live events and backfill) ------------------------


def record_user_message(
    state: SessionState,
    text: str,
    timestamp: int | None = None,
) -> MessagePayload:
    """Count a user message and build its payload."""
    message_id = state.increment_message_count("user")
    return transform_user_message(state.external_id, message_id, text, timestamp)


def record_assistant_turn(
    state: SessionState,
    message: AssistantMessage,
    tool_results: Sequence[ToolResult] = (),
    options: TransformOptions = DEFAULT_OPTIONS,
) -> MessagePayload:
    """Count an assistant turn, add its usage, and build its payload."""
    message_id = state.increment_message_count("assistant")
    if message.usage:
        state.apply_usage(message.usage)
    state.increment_tool_call_count(count_tool_calls(message.content))
    return transform_assistant_message(
        state.external_id, message_id, message, tool_results, options
    )


def backfill(
    state: SessionState,
    branch: Sequence[Message],
    options: TransformOptions = DEFAULT_OPTIONS,
) -> list[MessagePayload]:
    """Replay existing history into a fresh state.

    Runs every user and assistant message through the same accumulation as
    live events, so a resumed or forked session ends up with the counters
    (and message ids) it would have had if we'd watched it from the start.
    Tool results that follow an assistant message become that turn's
    results.

    Returns the message payloads, in order, for callers that re-upload them.
    """
    payloads: list[MessagePayload] = []
    pending: AssistantMessage | None = None
    results: list[ToolResult] = []

    def flush() -> None:
        nonlocal pending, results
        if pending is not None:
            turn_results = results if options.include_tool_calls else []
            payloads.append(record_assistant_turn(state, pending, turn_results, options))
        pending, results = None, []

    for message in branch:
        if isinstance(message, ToolResult):
            if pending is not None:
                results.append(message)
            continue

        flush()

        if isinstance(message, UserMessage):
            payloads.append(
                record_user_message(state, extract_user_text(message.content), message.timestamp)
            )
        elif isinstance(message, AssistantMessage):
            pending = message

    flush()
    return payloads


# -- Orchestrator -------------------------------------------------------------


class EventOrchestrator:
    """Drives one session's sync from host lifecycle events.

    Usage:
        orchestrator = EventOrchestrator(config, client)
        await orchestrator.on_event(SessionStartEvent(), ctx)
        ...
        await orchestrator.on_event(SessionShutdownEvent(), ctx)
    """

    def __init__(self, config: SyncConfig, client: SyncClient):
        self.config = config
        self.client = client
        self._phase = OrchestratorState.UNINITIALIZED
        self._session: SessionState | None = None

    @property
    def phase(self) -> OrchestratorState:
        return self._phase

    @property
    def session(self) -> SessionState | None:
        """The active session state, if any."""
        return self._session

    @property
    def options(self) -> TransformOptions:
        return TransformOptions(
            include_thinking=self.config.sync_thinking,
            include_tool_calls=self.config.sync_tool_calls,
        )

    async def on_event(self, event: Event, ctx: HostContext) -> None:
        """Handle one host event. Runs to completion, network calls included."""
        if not self.config.auto_sync:
            return
        if self._phase is OrchestratorState.SHUT_DOWN:
            return

        if isinstance(event, SessionStartEvent):
            await self._on_session_start(ctx)
            return

        if self._session is None:
            return  # No active session

        if isinstance(event, SessionForkEvent):
            await self._on_session_fork(self._session, ctx)
        elif isinstance(event, InputEvent):
            await self._on_input(self._session, event, ctx)
        elif isinstance(event, TurnEndEvent):
            await self._on_turn_end(self._session, event, ctx)
        elif isinstance(event, ModelSelectEvent):
            self._session.update_model(event.model)
        elif isinstance(event, SessionShutdownEvent):
            await self._on_session_shutdown(self._session, ctx)

    # -- Handlers -------------------------------------------------------------

    async def _on_session_start(self, ctx: HostContext) -> None:
        state = SessionState.create(ctx.session_id, ctx.cwd, ctx.model)

        # Resumed sessions already have their messages upstream; we only
        # need the counters to line up.
        backfill(state, ctx.get_branch(), self.options)

        self._session = state
        self._phase = OrchestratorState.ACTIVE
        logfire.info(
            "Session started: {session_id} ({count} existing messages)",
            session_id=state.external_id,
            count=state.message_count,
        )

        result = await self.client.sync_session(transform_session(state, ctx.session_name))
        self._report(ctx, result, "sync session")

    async def _on_session_fork(self, previous: SessionState, ctx: HostContext) -> None:
        state = SessionState.create(
            ctx.session_id, ctx.cwd, ctx.model, parent_id=previous.external_id
        )
        messages = backfill(state, ctx.get_branch(), self.options)
        self._session = state

        logfire.info(
            "Session forked: {session_id} from {parent_id} ({count} messages)",
            session_id=state.external_id,
            parent_id=previous.external_id,
            count=len(messages),
        )

        result = await self.client.sync_session(transform_session(state, ctx.session_name))
        self._report(ctx, result, "sync forked session")

        if messages:
            result = await self.client.sync_batch([], [for_batch(m) for m in messages])
            self._report(ctx, result, "sync fork history")

        result = await self.client.sync_session(transform_session(state, ctx.session_name))
        self._report(ctx, result, "update forked session")

    async def _on_input(self, state: SessionState, event: InputEvent, ctx: HostContext) -> None:
        if event.source is InputSource.EXTENSION:
            return  # Injected, not typed by a human

        payload = record_user_message(state, event.text)
        result = await self.client.sync_message(payload)
        self._report(ctx, result, "sync message")

    async def _on_turn_end(self, state: SessionState, event: TurnEndEvent, ctx: HostContext) -> None:
        if not isinstance(event.message, AssistantMessage):
            return

        tool_results = event.tool_results if self.config.sync_tool_calls else []
        payload = record_assistant_turn(state, event.message, tool_results, self.options)

        result = await self.client.sync_message(payload)
        self._report(ctx, result, "sync message")

        result = await self.client.sync_session(transform_session(state, ctx.session_name))
        self._report(ctx, result, "update session")

    async def _on_session_shutdown(self, state: SessionState, ctx: HostContext) -> None:
        result = await self.client.sync_session(
            transform_session(state, ctx.session_name, is_final=True)
        )
        self._report(ctx, result, "sync final session")

        logfire.info(
            "Session shut down: {session_id} ({count} messages)",
            session_id=state.external_id,
            count=state.message_count,
        )
        self._session = None
        self._phase = OrchestratorState.SHUT_DOWN
        await self.client.aclose()

    # -- Reporting ------------------------------------------------------------

    def _report(self, ctx: HostContext, result: SyncResult, action: str) -> None:
        """Surface a failed sync. Never raises."""
        if result.success:
            return

        logfire.warning("Failed to {action}: {error}", action=action, error=result.error)
        if self.config.debug and ctx.has_ui:
            ctx.notify(f"[OpenSync] Failed to {action}: {result.error}", "error")


def create_orchestrator(config: SyncConfig | None = None) -> EventOrchestrator | None:
    """Entry point for hosts: an orchestrator wired to a live client.

    Returns None when sync isn't configured or auto-sync is off, in which
    case the host shouldn't subscribe at all.
    """
    if config is None:
        config = load_config()
    if config is None or not config.auto_sync:
        return None
    return EventOrchestrator(config, SyncClient.from_config(config))
