"""Structured debug trail for sync traffic.

When debug mode is on, the client appends one JSON line per request,
response and failure. The trail is for humans poking at a broken setup;
it must never change whether a sync succeeds, so write errors are dropped.
"""

import json
from pathlib import Path
from typing import Any

import pendulum

DEFAULT_DEBUG_LOG = Path(".pi") / "opensync-debug.jsonl"


class DebugTrail:
    """Append-only JSONL log of sync activity."""

    def __init__(self, path: Path | str = DEFAULT_DEBUG_LOG):
        self.path = Path(path)

    def record(self, entry: dict[str, Any]) -> None:
        """Append a timestamped entry."""
        try:
            line = json.dumps(
                {"timestamp": pendulum.now("UTC").to_iso8601_string(), **entry},
                default=str,
            )
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.write(line + "\n")
        except Exception:
            pass  # Never let the trail affect a sync
