"""Notification list: one line per notification, selection drawn as a caret.

The list is a focusable Static rather than a ListView: selection lives in
UiState and every key press is forwarded to the app untouched. It stays
focused for the whole session, so help, loading and error text are drawn
into it instead of into separate widgets.
"""

from __future__ import annotations

from datetime import datetime

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

from ...aggregator import TAB_ORDER, display_tab
from ...models import ParsedNotification
from ..utils import format_age, is_old, truncate

TITLE_WIDTH = 50

_REVIEW_VERBS = {
    "APPROVED": "approved",
    "CHANGES_REQUESTED": "requested changes",
}


def _title_style(n: ParsedNotification, selected: bool) -> str:
    if selected:
        return "bold white" if n.unread else "white"
    if not n.unread:
        return "grey50"
    if n.is_closed:
        return "bold red"
    if n.reason == "merged":
        return "bold magenta"
    return "bold"


def render_notification(
    n: ParsedNotification,
    selected: bool,
    now: datetime | None = None,
) -> Text:
    """Render one notification line.

    Read notifications are greyed out. The reason is only shown for items
    whose tab is the catch-all "other" tab or a tab without a fixed slot.
    """
    read = not n.unread
    text = Text()
    if selected:
        text.append("❯ ", style="bold cyan" if n.unread else "bold grey50")
    elif n.unread:
        text.append("● ", style="cyan")
    else:
        text.append("○ ", style="grey50")

    text.append(truncate(n.clean_title, TITLE_WIDTH), style=_title_style(n, selected))
    if n.is_closed:
        text.append(" (closed)", style="grey50" if read else "red")
    if n.author:
        text.append(f" @{n.author}", style="italic white" if selected else "italic grey50")

    age = format_age(n.updated_at, now)
    if is_old(n.created_at, now):
        age += f", created {format_age(n.created_at, now)}"
    text.append(f" {age}", style="dim italic")

    if n.review_requested_from:
        text.append(f" review: {n.review_requested_from}", style="grey50" if read else "yellow")
    if n.team_reviewed_by:
        verb = _REVIEW_VERBS.get(n.team_reviewed_by.state, "commented")
        text.append(
            f" {n.team_reviewed_by.reviewer} {verb} for {n.team_reviewed_by.team}",
            style="grey50" if read else "cyan",
        )
    if n.replied_by:
        text.append(f" {n.replied_by} replied", style="grey50" if read else "magenta")

    tab = display_tab(n.reason)
    if tab == "other" or tab not in TAB_ORDER:
        text.append(f" [{n.reason}]", style="grey50" if read else "blue")
    return text


def scroll_offset(current: int, selected_index: int, height: int) -> int:
    """Smallest shift of the visible window that keeps the selection on screen."""
    if height <= 0:
        return 0
    if selected_index < current:
        return selected_index
    if selected_index >= current + height:
        return selected_index - height + 1
    return current


def render_notifications(
    items: list[ParsedNotification],
    selected_index: int,
    offset: int = 0,
    height: int | None = None,
    now: datetime | None = None,
) -> Text:
    if not items:
        return Text("No notifications in this tab.", style="dim italic")
    end = len(items) if height is None else offset + height
    lines = [
        render_notification(n, idx == selected_index, now)
        for idx, n in enumerate(items[offset:end], start=offset)
    ]
    return Text("\n").join(lines)


class NotificationList(Static, can_focus=True):
    """Renders the filtered list and forwards raw key presses."""

    DEFAULT_CSS = """
    NotificationList { height: 1fr; padding: 0 2; }
    """

    class KeyPressed(Message):
        def __init__(self, key: str, character: str | None) -> None:
            super().__init__()
            self.key = key
            self.character = character

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._offset = 0

    def update_items(self, items: list[ParsedNotification], selected_index: int) -> None:
        height = self.size.height or None
        if height is None:
            self._offset = 0
        else:
            offset = scroll_offset(self._offset, selected_index, height)
            self._offset = min(offset, max(0, len(items) - 1))
        self.update(render_notifications(items, selected_index, self._offset, height))

    def show_text(self, text: Text) -> None:
        """Replace the list with a message (help, loading, errors)."""
        self._offset = 0
        self.update(text)

    def on_key(self, event: events.Key) -> None:
        # Keep Textual's focus chain and bindings away from tab/escape
        event.stop()
        event.prevent_default()
        self.post_message(self.KeyPressed(event.key, event.character))
