"""history.py — Read pi's JSONL session files for backfill.

When a session is resumed or forked, the orchestrator replays the current
branch's messages to rebuild its counters. Inside pi the host hands us the
branch directly; this module provides the same view from disk, for hosts
that only know where the session file is.

JSONL format (pi session files):
  - type: "session"  header (id, cwd, timestamp)
  - type: "message"  {id, parentId, message: {role, content, ...}}
  - anything else    model changes, labels, compaction (skipped)

Entries form a tree through parentId. The current branch is the chain of
ancestors of the last entry in the file.
"""

from __future__ import annotations

import json
from pathlib import Path

from .content import Message, parse_message

DEFAULT_SESSIONS_DIR = Path.home() / ".pi" / "agent" / "sessions"


def read_session_entries(path: Path) -> list[dict]:
    """Read a JSONL file and return parsed records.

    Skips blank lines and malformed JSON silently.
    """
    records = []
    with open(path) as f:
        for line in f:
            text = line.strip()
            if not text:
                continue
            try:
                record = json.loads(text)
            except json.JSONDecodeError:
                continue
            if isinstance(record, dict):
                records.append(record)
    return records


def current_branch(entries: list[dict]) -> list[dict]:
    """Entries from the root to the last entry, following parentId links.

    Entries without ids (older flat files) are treated as one linear branch.
    """
    tree_entries = [e for e in entries if e.get("type") != "session"]
    if not tree_entries:
        return []

    if not any("id" in e for e in tree_entries):
        return tree_entries

    by_id = {e["id"]: e for e in tree_entries if "id" in e}
    branch = []
    seen: set[str] = set()
    entry: dict | None = tree_entries[-1]
    while entry is not None and entry.get("id") not in seen:
        branch.append(entry)
        seen.add(entry.get("id"))
        parent_id = entry.get("parentId")
        entry = by_id.get(parent_id) if parent_id else None

    branch.reverse()
    return branch


class JsonlSessionHistory:
    """Branch accessor backed by a session file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_branch(self) -> list[Message]:
        """Messages on the current branch, oldest first."""
        if not self.path.exists():
            return []

        messages = []
        for entry in current_branch(read_session_entries(self.path)):
            if entry.get("type") != "message":
                continue
            message = parse_message(entry.get("message", {}))
            if message is not None:
                messages.append(message)
        return messages


def find_session_path(session_id: str, search_dirs: list[Path] | None = None) -> Path | None:
    """Find the JSONL file for a session ID.

    pi names files "<timestamp>_<session_id>.jsonl" inside one directory
    per working directory.

    Args:
        session_id: The UUID of the session.
        search_dirs: Directories to search. Defaults to the subdirectories
                     of ~/.pi/agent/sessions/.

    Returns:
        Path to the JSONL file, or None if not found.
    """
    if search_dirs is None:
        if DEFAULT_SESSIONS_DIR.exists():
            search_dirs = [d for d in DEFAULT_SESSIONS_DIR.iterdir() if d.is_dir()]
        else:
            return None

    for directory in search_dirs:
        exact = directory / f"{session_id}.jsonl"
        if exact.exists():
            return exact
        matches = sorted(directory.glob(f"*_{session_id}.jsonl"))
        if matches:
            return matches[-1]

    return None
