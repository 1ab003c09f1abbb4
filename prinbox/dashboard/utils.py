"""Shared utility functions for the dashboard package."""

from __future__ import annotations

from datetime import datetime, timezone

# Notifications whose PR is older than this also show the creation age
OLD_PR_SECONDS = 14 * 86400


def format_age(dt: datetime | None, now: datetime | None = None) -> str:
    """Format a timestamp as a short age like '15m', '2h', '3w'."""
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    secs = (now - dt).total_seconds()
    if secs < 0:
        return "now"
    if secs < 60:
        return f"{int(secs)}s"
    if secs < 3600:
        return f"{int(secs // 60)}m"
    if secs < 86400:
        return f"{int(secs // 3600)}h"
    days = int(secs // 86400)
    if days < 7:
        return f"{days}d"
    if days < 28:
        return f"{days // 7}w"
    if days < 365:
        return f"{days // 30}mo"
    return f"{days // 365}y"


def is_old(dt: datetime | None, now: datetime | None = None) -> bool:
    if dt is None:
        return False
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - dt).total_seconds() >= OLD_PR_SECONDS


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
