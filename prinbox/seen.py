"""Seen-notification history, persisted as JSON.

File format (compatible with earlier versions of the tool):

    {"seen": {"<thread id>": {"firstSeen": iso, "lastSeen": iso,
                              "prNumber": 12, "repo": "org/repo",
                              "title": "...", "unsubscribed": true,
                              "doneHistory": [iso, ...]}}}

Writes replace the whole file (last writer wins). A missing or malformed
file is treated as empty.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .models import ParsedNotification, SeenEntry

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SeenStore:
    def __init__(self, path: Path, clock: Callable[[], str] = _now_iso) -> None:
        self.path = path
        self._clock = clock

    def load(self) -> dict[str, SeenEntry]:
        """Load all entries keyed by thread id."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable seen file %s: %s", self.path, e)
            return {}

        seen = data.get("seen") if isinstance(data, dict) else None
        if not isinstance(seen, dict):
            return {}
        return {
            thread_id: SeenEntry.from_dict(entry)
            for thread_id, entry in seen.items()
            if isinstance(entry, dict)
        }

    def save(self, entries: dict[str, SeenEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"seen": {thread_id: entry.to_dict() for thread_id, entry in entries.items()}}
        self.path.write_text(json.dumps(data, indent=2))

    def _entry_for(
        self,
        entries: dict[str, SeenEntry],
        notification: ParsedNotification,
        now: str,
    ) -> SeenEntry:
        entry = entries.get(notification.id)
        if entry is None:
            entry = SeenEntry(
                first_seen=now,
                last_seen=now,
                pr_number=notification.pr_number,
                repo=notification.repo,
                title=notification.clean_title,
            )
            entries[notification.id] = entry
        return entry

    def record_fetch(self, notifications: Iterable[ParsedNotification]) -> None:
        """Bump lastSeen for fetched notifications, adding new ones."""
        entries = self.load()
        now = self._clock()
        for n in notifications:
            entry = self._entry_for(entries, n, now)
            entry.last_seen = now
        self.save(entries)

    def record_done(self, notification: ParsedNotification) -> None:
        """Append the current time to the notification's done history."""
        entries = self.load()
        now = self._clock()
        entry = self._entry_for(entries, notification, now)
        entry.done_history.append(now)
        self.save(entries)

    def record_unsubscribed(self, notification: ParsedNotification) -> None:
        entries = self.load()
        entry = self._entry_for(entries, notification, self._clock())
        entry.unsubscribed = True
        self.save(entries)
