"""Application state store.

AppState holds the last fetched notification list, the UI state, the pending
optimistic patches and the mutation queue registry. It is created at startup
and mutated only by the keyboard state machine, the actions and the fetch
pipeline; the rendering layer reads it through the selector methods and
subscribes to change notifications.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from .aggregator import build_tabs, filter_notifications
from .batcher import MutationRegistry
from .config import MutationKind
from .models import ParsedNotification, Tab
from .optimistic import OptimisticPatch

if TYPE_CHECKING:
    from .keyboard import KeyEvent

logger = logging.getLogger(__name__)

KEY_BUFFER_SIZE = 5


@dataclass
class UiState:
    """Mutable UI state, owned by the keyboard state machine."""
    selected_index: int = 0
    selected_tab_index: int = 0
    key_buffer: deque[KeyEvent] = field(default_factory=lambda: deque(maxlen=KEY_BUFFER_SIZE))
    exiting: bool = False
    show_help: bool = False


class AppState:
    def __init__(self, registry: MutationRegistry | None = None) -> None:
        self.ui = UiState()
        self.registry = registry or MutationRegistry()
        self.notifications: list[ParsedNotification] = []
        self.error: str | None = None
        self.loading = True
        self.refreshing = False
        self._pending: dict[tuple[MutationKind, str], OptimisticPatch] = {}
        self._listeners: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def tabs(self) -> list[Tab]:
        return build_tabs(self.notifications)

    def tab_count(self) -> int:
        return len(self.tabs()) or 1

    def selected_tab(self) -> str | None:
        """The selected tab name; an out-of-range index falls back to the last tab."""
        tabs = self.tabs()
        if not tabs:
            return None
        return tabs[min(self.ui.selected_tab_index, len(tabs) - 1)].name

    def filtered(self) -> list[ParsedNotification]:
        return filter_notifications(self.notifications, self.selected_tab())

    def filtered_length(self) -> int:
        return len(self.filtered())

    def selected_notification(self) -> ParsedNotification | None:
        items = self.filtered()
        if not items:
            return None
        return items[min(self.ui.selected_index, len(items) - 1)]

    def clamp_selection(self) -> None:
        tab_count = self.tab_count()
        if self.ui.selected_tab_index >= tab_count:
            self.ui.selected_tab_index = tab_count - 1
        length = self.filtered_length()
        if self.ui.selected_index >= length:
            self.ui.selected_index = max(0, length - 1)

    # ------------------------------------------------------------------
    # Fetch results
    # ------------------------------------------------------------------

    def replace_notifications(self, notifications: list[ParsedNotification]) -> None:
        """Install a fresh fetch, keeping still-pending optimistic patches applied."""
        items = list(notifications)
        for patch in self._pending.values():
            items = patch.apply(items)
        self.notifications = items
        self.error = None
        self.loading = False
        self.refreshing = False
        self.clamp_selection()
        self.changed()

    def set_error(self, message: str) -> None:
        """Record a fetch error. The notification list is left as it was."""
        self.error = message
        self.loading = False
        self.refreshing = False
        self.changed()

    # ------------------------------------------------------------------
    # Optimistic patches
    # ------------------------------------------------------------------

    @property
    def pending_patches(self) -> list[OptimisticPatch]:
        return list(self._pending.values())

    def apply_patch(self, patch: OptimisticPatch) -> bool:
        """Apply a patch now.

        Returns False if a patch with the same key was already pending. The
        list is patched either way, but only the first patch is kept, so its
        undo still restores the state from before the first action. The
        pending entry moves to the end so a refetch replays actions in the
        order the user last made them.
        """
        existing = self._pending.pop(patch.key, None)
        self.notifications = patch.apply(self.notifications)
        self._pending[patch.key] = existing or patch
        self.clamp_selection()
        self.changed()
        return existing is None

    def settle(self, kind: MutationKind, target_ids: list[str], ok: bool) -> None:
        """Commit (ok) or roll back the patches of one finished batch."""
        for target_id in target_ids:
            patch = self._pending.pop((kind, target_id), None)
            if patch is None or ok:
                continue
            logger.info("Rolling back %s for %s", kind, patch.thread_id)
            self.notifications = patch.undo(self.notifications)
        self.clamp_selection()
        self.changed()
