"""Configuration loading and constants for pr-inbox."""

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Notification reasons
# ---------------------------------------------------------------------------

# Reasons the classifier derives from PR state. They overwrite the raw reason.
DERIVED_REASONS = frozenset({
    "needs_review",
    "replied",
    "closed",
    "team_reviewed",
    "merged",
    "reviewed",
    "draft",
})

# Raw GitHub notification reasons, lowercased
GITHUB_REASONS = frozenset({
    "assign",
    "author",
    "ci_activity",
    "comment",
    "invitation",
    "manual",
    "mention",
    "review_requested",
    "security_alert",
    "state_change",
    "subscribed",
    "team_mention",
    "approval_requested",
})

# Catch-all for raw reasons GitHub may add later
FALLBACK_REASON = "other"

REASONS = DERIVED_REASONS | GITHUB_REASONS | {FALLBACK_REASON}

StatusCheckState = Literal["success", "pending", "failure"]

MutationKind = Literal["mark_read", "mark_unread", "mark_done", "unsubscribe", "approve"]

MUTATION_KINDS: list[MutationKind] = [
    "mark_read",
    "mark_unread",
    "mark_done",
    "unsubscribe",
    "approve",
]


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_GITHUB_CONFIG = {
    "api_url": "https://api.github.com/graphql",
    "timeout": 30,
}

DEFAULT_TIMING_CONFIG = {
    "poll_interval_seconds": 600,  # 10 minutes
    "debounce_seconds": 5.0,
    "key_buffer_timeout_seconds": 2.0,
}

DEFAULT_LOG_CONFIG = {
    "file": "~/.cache/pr-inbox/dashboard.log",
    "level": "WARNING",
}

DEFAULT_SEEN_FILE = "~/.gh-notifications-seen.json"

DEFAULT_CONFIG_PATH = "~/.config/pr-inbox/config.yaml"


def get_config_path() -> Path:
    """Get the path to config.yaml.

    Can be overridden via PR_INBOX_CONFIG environment variable (used by tests).
    """
    env_override = os.environ.get("PR_INBOX_CONFIG")
    if env_override:
        return Path(env_override).expanduser()
    return Path(DEFAULT_CONFIG_PATH).expanduser()


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load the user configuration.

    A missing file yields an empty config. A file that cannot be parsed is
    logged and treated as empty as well, so the dashboard always starts.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}

    if not isinstance(config, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", config_path)
        return {}
    return config


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def get_github_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get GitHub API settings, falling back to defaults."""
    if config is None:
        config = load_config()
    github = _section(config, "github")
    return {
        "api_url": github.get("api_url", DEFAULT_GITHUB_CONFIG["api_url"]),
        "timeout": github.get("timeout", DEFAULT_GITHUB_CONFIG["timeout"]),
    }


def get_timing_config(config: dict[str, Any] | None = None) -> dict[str, float]:
    """Get poll, debounce and key-buffer timings in seconds."""
    if config is None:
        config = load_config()
    timing = _section(config, "timing")
    return {
        key: float(timing.get(key, default))
        for key, default in DEFAULT_TIMING_CONFIG.items()
    }


def get_seen_path(config: dict[str, Any] | None = None) -> Path:
    """Get the path of the seen-notifications JSON file."""
    if config is None:
        config = load_config()
    return Path(config.get("seen_file") or DEFAULT_SEEN_FILE).expanduser()


def get_log_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get the log file path and level."""
    if config is None:
        config = load_config()
    log = _section(config, "logging")
    return {
        "file": Path(log.get("file", DEFAULT_LOG_CONFIG["file"])).expanduser(),
        "level": str(log.get("level", DEFAULT_LOG_CONFIG["level"])).upper(),
    }
