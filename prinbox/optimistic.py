"""Optimistic patches for the in-memory notification list.

Each user action produces an (apply, undo) pair addressed by thread id. The
patch is applied as soon as the action is queued; undo runs only if the
batched remote call for it fails.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

from .classifier import APPROVED_PREFIX, UNSUBSCRIBED_PREFIX
from .config import MutationKind
from .models import ParsedNotification

NotificationList = list[ParsedNotification]


@dataclass
class OptimisticPatch:
    kind: MutationKind
    # Id sent to the remote API (the subject id for unsubscribe/approve)
    target_id: str
    # Thread id of the notification the patch touches
    thread_id: str
    apply: Callable[[NotificationList], NotificationList]
    undo: Callable[[NotificationList], NotificationList]

    @property
    def key(self) -> tuple[MutationKind, str]:
        return (self.kind, self.target_id)


def _update(items: NotificationList, thread_id: str, **changes) -> NotificationList:
    return [replace(n, **changes) if n.id == thread_id else n for n in items]


def _find(items: NotificationList, thread_id: str) -> ParsedNotification | None:
    for n in items:
        if n.id == thread_id:
            return n
    return None


def _unread_patch(kind: MutationKind, notification: ParsedNotification, unread: bool) -> OptimisticPatch:
    previous = notification.unread
    return OptimisticPatch(
        kind=kind,
        target_id=notification.id,
        thread_id=notification.id,
        apply=lambda items: _update(items, notification.id, unread=unread),
        undo=lambda items: _update(items, notification.id, unread=previous),
    )


def mark_read_patch(notification: ParsedNotification) -> OptimisticPatch:
    return _unread_patch("mark_read", notification, unread=False)


def mark_unread_patch(notification: ParsedNotification) -> OptimisticPatch:
    return _unread_patch("mark_unread", notification, unread=True)


def mark_done_patch(notification: ParsedNotification) -> OptimisticPatch:
    """Remove the notification; undo puts it back where it was."""
    removed: dict[str, tuple[int, ParsedNotification]] = {}

    def apply(items: NotificationList) -> NotificationList:
        for index, n in enumerate(items):
            if n.id == notification.id:
                removed["entry"] = (index, n)
                return items[:index] + items[index + 1:]
        return items

    def undo(items: NotificationList) -> NotificationList:
        if _find(items, notification.id) is not None:
            return items
        index, original = removed.get("entry", (len(items), notification))
        index = min(index, len(items))
        return items[:index] + [original] + items[index:]

    return OptimisticPatch(
        kind="mark_done",
        target_id=notification.id,
        thread_id=notification.id,
        apply=apply,
        undo=undo,
    )


def _title_prefix_patch(kind: MutationKind, notification: ParsedNotification, prefix: str) -> OptimisticPatch:
    # Whether the last apply actually added the prefix
    state = {"prefixed": False}

    def apply(items: NotificationList) -> NotificationList:
        current = _find(items, notification.id)
        state["prefixed"] = current is not None and not current.clean_title.startswith(prefix)
        if not state["prefixed"]:
            return items
        return _update(items, notification.id, clean_title=f"{prefix} {current.clean_title}")

    def undo(items: NotificationList) -> NotificationList:
        current = _find(items, notification.id)
        if not state["prefixed"] or current is None or not current.clean_title.startswith(f"{prefix} "):
            return items
        return _update(items, notification.id, clean_title=current.clean_title[len(prefix) + 1:])

    return OptimisticPatch(
        kind=kind,
        target_id=notification.subject_id,
        thread_id=notification.id,
        apply=apply,
        undo=undo,
    )


def unsubscribe_patch(notification: ParsedNotification) -> OptimisticPatch:
    return _title_prefix_patch("unsubscribe", notification, UNSUBSCRIBED_PREFIX)


def approve_patch(notification: ParsedNotification) -> OptimisticPatch:
    return _title_prefix_patch("approve", notification, APPROVED_PREFIX)


PATCH_FACTORIES: dict[MutationKind, Callable[[ParsedNotification], OptimisticPatch]] = {
    "mark_read": mark_read_patch,
    "mark_unread": mark_unread_patch,
    "mark_done": mark_done_patch,
    "unsubscribe": unsubscribe_patch,
    "approve": approve_patch,
}
