"""Configuration for pi-opensync.

Two sources, environment first:
  PI_OPENSYNC_CONVEX_URL + PI_OPENSYNC_API_KEY (both required), with
  PI_OPENSYNC_AUTO_SYNC, PI_OPENSYNC_TOOL_CALLS, PI_OPENSYNC_THINKING and
  PI_OPENSYNC_DEBUG as optional switches.
  ~/.config/pi-opensync-plugin/config.json otherwise (camelCase keys).

The Convex URL people copy from the dashboard ends in .convex.cloud, but the
HTTP actions live on .convex.site, so the loader rewrites it.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import logfire

CONFIG_DIR = Path.home() / ".config" / "pi-opensync-plugin"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_CONVEX_URL = "https://your-app.convex.cloud"
DEFAULT_API_KEY = "osk_"


@dataclass
class SyncConfig:
    """Settings consumed by the client and orchestrator."""

    convex_url: str = DEFAULT_CONVEX_URL
    api_key: str = DEFAULT_API_KEY
    auto_sync: bool = True
    sync_tool_calls: bool = True
    sync_thinking: bool = False
    debug: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "convexUrl": self.convex_url,
            "apiKey": self.api_key,
            "autoSync": self.auto_sync,
            "syncToolCalls": self.sync_tool_calls,
            "syncThinking": self.sync_thinking,
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SyncConfig:
        """Build from the on-disk JSON shape. Missing keys take defaults."""
        if not isinstance(data, dict):
            raise ValueError("Invalid config data")
        return cls(
            convex_url=data.get("convexUrl", DEFAULT_CONVEX_URL),
            api_key=data.get("apiKey", DEFAULT_API_KEY),
            auto_sync=data.get("autoSync", True),
            sync_tool_calls=data.get("syncToolCalls", True),
            sync_thinking=data.get("syncThinking", False),
            debug=data.get("debug", False),
        )


def normalize_convex_url(url: str) -> str:
    """Point at .convex.site, where Convex serves HTTP actions."""
    return url.replace(".convex.cloud", ".convex.site")


def load_config(
    environ: dict[str, str] | None = None,
    config_file: Path = CONFIG_FILE,
) -> SyncConfig | None:
    """Load configuration from the environment, falling back to the file.

    Returns None when nothing is configured.
    """
    env = os.environ if environ is None else environ

    url = env.get("PI_OPENSYNC_CONVEX_URL")
    key = env.get("PI_OPENSYNC_API_KEY")
    if url and key:
        return SyncConfig(
            convex_url=normalize_convex_url(url),
            api_key=key,
            auto_sync=env.get("PI_OPENSYNC_AUTO_SYNC") != "false",
            sync_tool_calls=env.get("PI_OPENSYNC_TOOL_CALLS") != "false",
            sync_thinking=env.get("PI_OPENSYNC_THINKING") == "true",
            debug=env.get("PI_OPENSYNC_DEBUG") == "true",
        )

    return load_config_file(config_file)


def load_config_file(config_file: Path = CONFIG_FILE) -> SyncConfig | None:
    """Load configuration from the JSON file only."""
    if not config_file.exists():
        return None

    try:
        config = SyncConfig.from_dict(json.loads(config_file.read_text()))
    except (OSError, ValueError) as e:
        logfire.error("Error loading config from {path}: {error}", path=str(config_file), error=str(e))
        return None

    config.convex_url = normalize_convex_url(config.convex_url)
    return config


def save_config(config: SyncConfig, config_file: Path = CONFIG_FILE) -> None:
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config.to_dict(), indent=2))
