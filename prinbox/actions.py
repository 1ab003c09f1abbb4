"""User actions on the selected notification.

Each mutating action applies its optimistic patch to AppState right away,
queues the remote call on the matching MutationQueue and, for done and
unsubscribe, records the action in the seen-store once its batch succeeds.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable

from .batcher import DEFAULT_DEBOUNCE_SECONDS, SendMutation, SettledCallback
from .config import MUTATION_KINDS, MutationKind
from .models import ParsedNotification
from .optimistic import PATCH_FACTORIES
from .scheduling import Scheduler
from .seen import SeenStore
from .state import AppState

logger = logging.getLogger(__name__)

# Seen-store method recording a successful batch, by mutation kind
_SEEN_RECORDERS: dict[str, str] = {
    "mark_done": "record_done",
    "unsubscribe": "record_unsubscribed",
}


def create_mutation_queues(
    state: AppState,
    send: SendMutation,
    scheduler: Scheduler,
    debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    on_settled: SettledCallback | None = None,
) -> None:
    """Create one queue per mutation kind in the state's registry.

    Settled batches go to AppState.settle by default, which commits or rolls
    back their patches. Pass ``InboxActions.settle`` (or a callback that
    calls it) to also record successful done/unsubscribe in the seen-store.
    """
    for kind in MUTATION_KINDS:
        state.registry.create_queue(
            kind,
            send,
            scheduler,
            debounce=debounce,
            on_settled=on_settled or state.settle,
        )


class InboxActions:
    """Action handlers dispatched by the keyboard state machine."""

    def __init__(
        self,
        state: AppState,
        seen_store: SeenStore | None = None,
        opener: Callable[[str], object] = webbrowser.open,
        on_refresh: Callable[[], object] | None = None,
        on_quit: Callable[[], object] | None = None,
    ) -> None:
        self.state = state
        self.seen_store = seen_store
        self._opener = opener
        self._on_refresh = on_refresh
        self._on_quit = on_quit
        # (kind, target id) -> notification awaiting a seen-store write
        self._unconfirmed: dict[tuple[MutationKind, str], ParsedNotification] = {}

    def action_table(self) -> dict[str, Callable[[], object]]:
        return {
            "mark_read": self.mark_read,
            "mark_unread": self.mark_unread,
            "mark_done": self.mark_done,
            "unsubscribe": self.unsubscribe,
            "approve": self.approve,
            "open_in_browser": self.open_in_browser,
            "refresh": self.refresh,
            "quit": self.quit,
        }

    def mark_read(self) -> bool:
        selected = self.state.selected_notification()
        if selected is None or not selected.unread:
            return False
        return self._mutate("mark_read", selected)

    def mark_unread(self) -> bool:
        selected = self.state.selected_notification()
        if selected is None or selected.unread:
            return False
        return self._mutate("mark_unread", selected)

    def mark_done(self) -> bool:
        selected = self.state.selected_notification()
        if selected is None:
            return False
        return self._mutate("mark_done", selected)

    def unsubscribe(self) -> bool:
        selected = self.state.selected_notification()
        if selected is None:
            return False
        return self._mutate("unsubscribe", selected)

    def approve(self) -> bool:
        selected = self.state.selected_notification()
        if selected is None:
            return False
        return self._mutate("approve", selected)

    def open_in_browser(self) -> None:
        selected = self.state.selected_notification()
        if selected is not None and selected.url:
            self._opener(selected.url)

    def refresh(self) -> None:
        if self._on_refresh is not None:
            self._on_refresh()

    def quit(self) -> None:
        if self._on_quit is not None:
            self._on_quit()

    def settle(self, kind: MutationKind, target_ids: list[str], ok: bool) -> None:
        """Finish one batch: commit or roll back its patches in AppState.

        Done and unsubscribe reach the seen-store only once their batch has
        succeeded, so a rolled-back action leaves no trace for the next fetch.
        """
        self.state.settle(kind, target_ids, ok)
        for target_id in target_ids:
            notification = self._unconfirmed.pop((kind, target_id), None)
            if ok and notification is not None:
                self._record(_SEEN_RECORDERS[kind], notification)

    def _mutate(self, kind: MutationKind, notification: ParsedNotification) -> bool:
        patch = PATCH_FACTORIES[kind](notification)
        if not self.state.apply_patch(patch):
            logger.debug("%s already pending for %s, reapplied", kind, notification.id)
        if kind in _SEEN_RECORDERS:
            self._unconfirmed.setdefault((kind, patch.target_id), notification)
        self.state.registry.get(kind).enqueue(patch.target_id)
        return True

    def _record(
        self,
        method_name: str,
        notification: ParsedNotification,
    ) -> None:
        if self.seen_store is None:
            return
        try:
            getattr(self.seen_store, method_name)(notification)
        except OSError:
            logger.warning("Could not update seen file %s", self.seen_store.path, exc_info=True)
