"""dispatch.py — Feed host events to the orchestrator one at a time.

Hosts that fire events without awaiting the handler (callbacks, RPC
readers) can put them on the pump instead of calling the orchestrator
directly. The driver pulls one event, awaits its handler to completion,
network calls included, and only then pulls the next. Handlers never
overlap, so SessionState is never read mid-mutation.

Usage:
    pump = EventPump(orchestrator)
    pump.start()
    await pump.put(SessionStartEvent(), ctx)
    ...
    await pump.close()   # drains everything queued, then stops
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import logfire

from .events import Event, HostContext
from .orchestrator import EventOrchestrator


@dataclass
class _Delivery:
    event: Event
    ctx: HostContext


class EventPump:
    """Sequential event queue in front of an EventOrchestrator."""

    def __init__(self, orchestrator: EventOrchestrator):
        self._orchestrator = orchestrator
        self._queue: asyncio.Queue[_Delivery | None] = asyncio.Queue()
        self._driver_task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Events queued but not yet handled."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the background driver. Needs a running event loop."""
        if self._driver_task is None:
            self._driver_task = asyncio.create_task(self._drive())

    async def put(self, event: Event, ctx: HostContext) -> None:
        """Queue an event for handling.

        Raises RuntimeError if the pump is closed.
        """
        if self._closed:
            raise RuntimeError("Cannot put to a closed pump")
        await self._queue.put(_Delivery(event, ctx))

    async def close(self) -> None:
        """Stop accepting events and wait for the queued ones to finish."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(None)  # Sentinel: the driver stops here

        if self._driver_task is not None:
            await self._driver_task

    async def _drive(self) -> None:
        while True:
            delivery = await self._queue.get()
            if delivery is None:
                return

            try:
                await self._orchestrator.on_event(delivery.event, delivery.ctx)
            except Exception as e:
                # A bug in one handler shouldn't stop later events
                logfire.exception(
                    "Handler for {event} failed: {error}",
                    event=type(delivery.event).__name__,
                    error=str(e),
                )
