"""Shared test fixtures for pr-inbox tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from prinbox.models import ParsedNotification


class _ManualHandle:
    def __init__(self, when: float, callback) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Simulated clock implementing the Scheduler protocol.

    Nothing fires until advance() moves the clock past a callback's due time.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback) -> _ManualHandle:
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


@pytest.fixture
def scheduler():
    return ManualScheduler()


def make_notification(id="n1", reason="mention", unread=True, minutes_ago=0, **kw) -> ParsedNotification:
    """Build a ParsedNotification with sensible defaults for list/state tests."""
    updated = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc).timestamp() - minutes_ago * 60
    updated_at = datetime.fromtimestamp(updated, tz=timezone.utc)
    fields = dict(
        id=id,
        subject_id=f"PR_{id}",
        reason=reason,
        repo="acme/widgets",
        clean_title=f"Title {id}",
        pr_number=1,
        url=f"https://github.com/acme/widgets/pull/{id}",
        unread=unread,
        updated_at=updated_at,
        created_at=updated_at,
    )
    fields.update(kw)
    return ParsedNotification(**fields)
