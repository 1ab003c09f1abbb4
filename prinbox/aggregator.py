"""Tab aggregation and per-tab filtering/sorting."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from .models import ParsedNotification, Tab

# Tab order priority (lower = first), keyed by display name
TAB_ORDER: dict[str, int] = {
    "needs your review": 0,
    "replied to you": 1,
    "already reviewed": 2,
    "team reviewed": 3,
    "mention": 4,
    "comment": 5,
    "merged": 6,
    "draft": 7,
    "other": 8,
}

# Tabs missing from TAB_ORDER sort after all of the above
DEFAULT_TAB_PRIORITY = 100

# Reason -> display tab name. Reasons not listed display under their own name.
TAB_DISPLAY_NAMES: dict[str, str] = {
    "needs_review": "needs your review",
    "replied": "replied to you",
    "reviewed": "already reviewed",
    "team_reviewed": "team reviewed",
    "review_requested": "other",
    "closed": "merged",
}


def display_tab(reason: str) -> str:
    """Get the display tab name for a notification reason."""
    return TAB_DISPLAY_NAMES.get(reason, reason)


def reasons_for_tab(tab: str) -> frozenset[str]:
    """Reverse of display_tab: every reason shown under ``tab``."""
    reasons = {reason for reason, name in TAB_DISPLAY_NAMES.items() if name == tab}
    if tab not in TAB_DISPLAY_NAMES:
        reasons.add(tab)
    return frozenset(reasons)


def build_tabs(notifications: Iterable[ParsedNotification]) -> list[Tab]:
    """Group notifications by display tab and sort tabs by priority, then name."""
    counts = Counter(display_tab(n.reason) for n in notifications)
    tabs = [Tab(name=name, count=count) for name, count in counts.items()]
    tabs.sort(key=lambda t: (TAB_ORDER.get(t.name, DEFAULT_TAB_PRIORITY), t.name))
    return tabs


def tab_counts_total(tabs: Iterable[Tab]) -> int:
    return sum(t.count for t in tabs)


def _tab_sort_key(tab: str, n: ParsedNotification) -> tuple:
    if tab == "already reviewed":
        # The viewer's own reviews before teammate reviews
        return (n.team_reviewed_by is not None,)
    if tab == "needs your review":
        # Group by requested team/user (case-insensitive), unassigned last
        requested = (n.review_requested_from or "").lower()
        return (not requested, requested)
    if tab == "merged":
        # Closed without merge before merged
        return (not n.is_closed,)
    return ()


def filter_notifications(
    notifications: Iterable[ParsedNotification],
    tab: str | None,
) -> list[ParsedNotification]:
    """Notifications shown under ``tab``, sorted for display.

    All tabs put unread first, then apply the tab-specific key, then newest
    ``updated_at`` first. The sort is stable, so ties keep input order.
    """
    if not tab:
        return []
    reasons = reasons_for_tab(tab)
    filtered = [n for n in notifications if n.reason in reasons]
    return sorted(
        filtered,
        key=lambda n: (not n.unread, *_tab_sort_key(tab, n), -n.updated_at.timestamp()),
    )
