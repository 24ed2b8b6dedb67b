"""Tests for config.py — environment and file configuration."""

import json

import pytest

from pi_opensync.config import (
    SyncConfig,
    load_config,
    load_config_file,
    normalize_convex_url,
    save_config,
)


class TestNormalizeUrl:
    def test_cloud_to_site(self):
        assert normalize_convex_url("https://my-app.convex.cloud") == "https://my-app.convex.site"

    def test_site_unchanged(self):
        assert normalize_convex_url("https://my-app.convex.site") == "https://my-app.convex.site"

    def test_custom_domain_unchanged(self):
        assert normalize_convex_url("https://sync.example.com") == "https://sync.example.com"


class TestEnvironment:
    def test_requires_url_and_key(self, tmp_path):
        missing = tmp_path / "missing.json"
        assert load_config({"PI_OPENSYNC_CONVEX_URL": "https://a.convex.cloud"}, missing) is None
        assert load_config({"PI_OPENSYNC_API_KEY": "osk_1"}, missing) is None
        assert load_config({}, missing) is None

    def test_defaults(self, tmp_path):
        config = load_config(
            {"PI_OPENSYNC_CONVEX_URL": "https://a.convex.cloud", "PI_OPENSYNC_API_KEY": "osk_1"},
            tmp_path / "missing.json",
        )
        assert config == SyncConfig(convex_url="https://a.convex.site", api_key="osk_1")

    def test_switches(self, tmp_path):
        config = load_config({
            "PI_OPENSYNC_CONVEX_URL": "https://a.convex.site",
            "PI_OPENSYNC_API_KEY": "osk_1",
            "PI_OPENSYNC_AUTO_SYNC": "false",
            "PI_OPENSYNC_TOOL_CALLS": "false",
            "PI_OPENSYNC_THINKING": "true",
            "PI_OPENSYNC_DEBUG": "true",
        }, tmp_path / "missing.json")

        assert config.auto_sync is False
        assert config.sync_tool_calls is False
        assert config.sync_thinking is True
        assert config.debug is True

    def test_environment_wins_over_file(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(SyncConfig(convex_url="https://file.convex.site", api_key="osk_file"), path)

        config = load_config(
            {"PI_OPENSYNC_CONVEX_URL": "https://env.convex.site", "PI_OPENSYNC_API_KEY": "osk_env"},
            path,
        )
        assert config.api_key == "osk_env"

    def test_falls_back_to_file(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(SyncConfig(convex_url="https://file.convex.site", api_key="osk_file"), path)

        assert load_config({}, path).api_key == "osk_file"


class TestFile:
    def test_camel_case_keys(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "convexUrl": "https://a.convex.cloud",
            "apiKey": "osk_1",
            "autoSync": False,
            "syncToolCalls": False,
            "syncThinking": True,
            "debug": True,
        }))

        config = load_config_file(path)
        assert config == SyncConfig(
            convex_url="https://a.convex.site",
            api_key="osk_1",
            auto_sync=False,
            sync_tool_calls=False,
            sync_thinking=True,
            debug=True,
        )

    def test_missing_keys_take_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"convexUrl": "https://a.convex.site", "apiKey": "osk_1"}))

        config = load_config_file(path)
        assert config.auto_sync is True
        assert config.sync_tool_calls is True
        assert config.sync_thinking is False

    def test_missing_file(self, tmp_path):
        assert load_config_file(tmp_path / "nope.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config_file(path) is None

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        assert load_config_file(path) is None

    def test_save_creates_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "config.json"
        config = SyncConfig(convex_url="https://a.convex.site", api_key="osk_1", debug=True)

        save_config(config, path)

        assert json.loads(path.read_text())["debug"] is True
        assert load_config_file(path) == config


class TestFromDict:
    def test_rejects_non_dict(self):
        with pytest.raises(ValueError, match="Invalid config data"):
            SyncConfig.from_dict("nope")
