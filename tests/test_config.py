"""Tests for YAML configuration loading."""

from pathlib import Path

from prinbox import config


class TestLoadConfig:
    def test_missing_file_is_empty(self, tmp_path):
        assert config.load_config(tmp_path / "nope.yaml") == {}

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("github:\n  timeout: 5\ntiming:\n  poll_interval_seconds: 60\n")
        assert config.load_config(path) == {
            "github": {"timeout": 5},
            "timing": {"poll_interval_seconds": 60},
        }

    def test_unparseable_yaml_falls_back(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("github: [unclosed\n")
        assert config.load_config(path) == {}

    def test_non_mapping_falls_back(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        assert config.load_config(path) == {}

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("seen_file: /tmp/seen.json\n")
        monkeypatch.setenv("PR_INBOX_CONFIG", str(path))
        assert config.get_config_path() == path
        assert config.load_config() == {"seen_file": "/tmp/seen.json"}

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("PR_INBOX_CONFIG", raising=False)
        assert config.get_config_path() == Path("~/.config/pr-inbox/config.yaml").expanduser()


class TestAccessors:
    def test_defaults(self):
        assert config.get_github_config({}) == config.DEFAULT_GITHUB_CONFIG
        assert config.get_timing_config({}) == {
            "poll_interval_seconds": 600.0,
            "debounce_seconds": 5.0,
            "key_buffer_timeout_seconds": 2.0,
        }
        assert config.get_seen_path({}) == Path("~/.gh-notifications-seen.json").expanduser()

    def test_overrides(self):
        cfg = {
            "github": {"api_url": "https://ghe.example.com/api/graphql"},
            "timing": {"debounce_seconds": 1},
            "seen_file": "/data/seen.json",
            "logging": {"level": "debug", "file": "/var/log/pr-inbox.log"},
        }
        assert config.get_github_config(cfg)["api_url"] == "https://ghe.example.com/api/graphql"
        assert config.get_github_config(cfg)["timeout"] == 30
        assert config.get_timing_config(cfg)["debounce_seconds"] == 1.0
        assert config.get_seen_path(cfg) == Path("/data/seen.json")
        assert config.get_log_config(cfg) == {"file": Path("/var/log/pr-inbox.log"), "level": "DEBUG"}

    def test_bad_section_type_ignored(self):
        assert config.get_timing_config({"timing": "fast"})["poll_interval_seconds"] == 600.0

    def test_reason_sets(self):
        assert config.FALLBACK_REASON in config.REASONS
        assert config.DERIVED_REASONS <= config.REASONS
        assert config.MUTATION_KINDS == ["mark_read", "mark_unread", "mark_done", "unsubscribe", "approve"]
