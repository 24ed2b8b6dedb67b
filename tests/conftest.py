"""Shared test fixtures for pi-opensync.

Message fixtures mirror what pi hands extensions: dicts in pi-ai's wire
format, parsed through content.parse_message like the real thing.
"""

import json

import httpx
import logfire
import pytest

from pi_opensync.client import SyncClient
from pi_opensync.config import SyncConfig
from pi_opensync.content import parse_message
from pi_opensync.state import ModelInfo


# -- Markers ------------------------------------------------------------------


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: marks tests that need a live OpenSync deployment",
    )
    logfire.configure(send_to_logfire=False, console=False)


# -- Fake host ----------------------------------------------------------------


class FakeContext:
    """A HostContext with a fixed branch and a notification log."""

    def __init__(
        self,
        session_id: str = "session-abc12345",
        cwd: str = "/home/user/my-project",
        model: ModelInfo | None = ModelInfo(id="claude-sonnet-4-5", provider="anthropic"),
        session_name: str | None = None,
        has_ui: bool = True,
        branch: list | None = None,
    ):
        self.session_id = session_id
        self.cwd = cwd
        self.model = model
        self.session_name = session_name
        self.has_ui = has_ui
        self.branch = list(branch) if branch else []
        self.notifications: list[tuple[str, str]] = []

    def get_branch(self):
        return list(self.branch)

    def notify(self, message: str, level: str = "info") -> None:
        self.notifications.append((message, level))


@pytest.fixture
def ctx():
    return FakeContext()


@pytest.fixture
def make_ctx():
    """Factory for contexts with a custom session id, branch, etc."""
    return FakeContext


# -- Fake OpenSync ------------------------------------------------------------


class FakeOpenSync:
    """Records requests and answers with a canned response.

    Set .status / .body to change the answer, or .error to make the
    transport raise instead.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.body: str = json.dumps({"ok": True, "sessionId": "remote-1"})
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, text=self.body)

    def bodies(self, path: str | None = None) -> list[dict]:
        """JSON bodies of recorded POSTs, optionally filtered by path."""
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == "POST" and (path is None or r.url.path == path)
        ]

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def server():
    return FakeOpenSync()


@pytest.fixture
def config():
    return SyncConfig(convex_url="https://test.convex.site", api_key="osk_test123")


@pytest.fixture
def client(server, config):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    return SyncClient.from_config(config, http_client=http_client)


# -- Canned messages ----------------------------------------------------------


@pytest.fixture
def user_message():
    return parse_message({
        "role": "user",
        "content": [{"type": "text", "text": "Read both files please"}],
        "timestamp": 1706400000000,
    })


@pytest.fixture
def tool_turn():
    """An assistant turn with text and two tool calls."""
    return parse_message({
        "role": "assistant",
        "content": [
            {"type": "text", "text": "I'll read two files"},
            {"type": "toolCall", "id": "tc1", "name": "read", "arguments": {"path": "f1"}},
            {"type": "toolCall", "id": "tc2", "name": "read", "arguments": {"path": "f2"}},
        ],
        "provider": "anthropic",
        "model": "claude-sonnet-4-5",
        "usage": {"input": 100, "output": 50, "cost": {"total": 0.01}},
        "timestamp": 1706400001000,
    })


@pytest.fixture
def tool_results():
    """Results for tool_turn, in call order, without call ids."""
    return [
        parse_message({
            "role": "toolResult",
            "toolName": "read",
            "content": [{"type": "text", "text": "contents f1"}],
        }),
        parse_message({
            "role": "toolResult",
            "toolName": "read",
            "content": [{"type": "text", "text": "contents f2"}],
        }),
    ]


@pytest.fixture
def text_turn():
    return parse_message({
        "role": "assistant",
        "content": [{"type": "text", "text": "Done."}],
        "provider": "anthropic",
        "model": "claude-sonnet-4-5",
        "usage": {"input": 20, "output": 5, "cost": {"total": 0.002}},
        "timestamp": 1706400002000,
    })
