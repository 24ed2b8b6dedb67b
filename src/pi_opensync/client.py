"""client.py — HTTP client for the OpenSync sync API.

Three write operations and a health check:
  POST /sync/session   upsert one session
  POST /sync/message   upsert one message
  POST /sync/batch     upsert many sessions + messages (fork replay)
  GET  /health         liveness, unauthenticated

Sync is best-effort telemetry. Every call returns a SyncResult instead of
raising: any exception from the request or a non-2xx response becomes a failed
result, reported once and then forgotten. No retries, no queuing.

Usage:
    async with SyncClient(url, api_key) as client:
        result = await client.sync_session(payload)
        if not result.success:
            print(result.error)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

import httpx
import logfire

from .config import SyncConfig
from .debug import DebugTrail
from .transform import MessagePayload, SessionPayload


class FailureKind(Enum):
    TRANSPORT = "transport"  # The request never completed
    REJECTED = "rejected"    # The server answered with a non-2xx status


@dataclass
class SyncResult:
    """Result of a sync operation."""

    success: bool
    error: str | None = None
    kind: FailureKind | None = None
    status_code: int | None = None
    data: Any = None


class SyncClient:
    """Sends payloads to an OpenSync deployment.

    The base URL is used as given; normalizing .convex.cloud to
    .convex.site is the config loader's job.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        debug: bool = False,
        debug_trail: DebugTrail | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._trail = debug_trail or (DebugTrail() if debug else None)
        self._http_client = http_client or httpx.AsyncClient()

    @classmethod
    def from_config(cls, config: SyncConfig, **kwargs: Any) -> SyncClient:
        return cls(config.convex_url, config.api_key, debug=config.debug, **kwargs)

    async def __aenter__(self) -> SyncClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._http_client.is_closed

    async def aclose(self) -> None:
        await self._http_client.aclose()

    # -- Operations -----------------------------------------------------------

    async def sync_session(self, session: SessionPayload) -> SyncResult:
        return await self._post("/sync/session", session.to_dict())

    async def sync_message(self, message: MessagePayload) -> SyncResult:
        return await self._post("/sync/message", message.to_dict())

    async def sync_batch(
        self,
        sessions: Sequence[SessionPayload],
        messages: Sequence[MessagePayload],
    ) -> SyncResult:
        return await self._post("/sync/batch", {
            "sessions": [s.to_dict() for s in sessions],
            "messages": [m.to_dict() for m in messages],
        })

    async def test_connection(self) -> SyncResult:
        """Hit /health without credentials. Any 2xx counts as up."""
        try:
            response = await self._http_client.get(f"{self.base_url}/health")
        except Exception as e:
            # httpx.InvalidURL is not an HTTPError
            return SyncResult(success=False, error=str(e) or type(e).__name__, kind=FailureKind.TRANSPORT)

        if response.is_success:
            return SyncResult(success=True, status_code=response.status_code)
        return SyncResult(
            success=False,
            error=f"Health check failed: {response.status_code}",
            kind=FailureKind.REJECTED,
            status_code=response.status_code,
        )

    # -- Transport ------------------------------------------------------------

    def _log(self, entry: dict[str, Any]) -> None:
        if self._trail is not None:
            self._trail.record(entry)

    async def _post(self, endpoint: str, body: dict[str, Any]) -> SyncResult:
        """POST a JSON body with the bearer token and interpret the reply."""
        self._log({"type": "request", "endpoint": endpoint, "payload": body})

        with logfire.span("sync {endpoint}", endpoint=endpoint) as span:
            try:
                response = await self._http_client.post(
                    f"{self.base_url}{endpoint}",
                    json=body,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self._api_key}",
                    },
                )
            except Exception as e:
                # Bad URLs and unencodable bodies fail here too, not only the network
                message = str(e) or type(e).__name__
                self._log({"type": "exception", "endpoint": endpoint, "error": message})
                span.set_attribute("error", message)
                return SyncResult(success=False, error=message, kind=FailureKind.TRANSPORT)

            if not response.is_success:
                text = response.text
                self._log({
                    "type": "error",
                    "endpoint": endpoint,
                    "status": response.status_code,
                    "error": text,
                })
                span.set_attribute("status_code", response.status_code)
                return SyncResult(
                    success=False,
                    error=f"{response.status_code}: {text}",
                    kind=FailureKind.REJECTED,
                    status_code=response.status_code,
                )

            try:
                data = response.json()
            except ValueError:
                data = None

            self._log({"type": "success", "endpoint": endpoint, "response": data})
            return SyncResult(success=True, status_code=response.status_code, data=data)
