"""pr-inbox dashboard: Textual TUI app.

Launch with: pr-inbox (or python -m prinbox.dashboard)

All key presses go through the KeyboardStateMachine; Textual bindings are
not used for navigation. Fetches run in a worker thread and hand their result
back to the event loop with call_from_thread. Mutation batches are sent from
worker threads by the mutation queues.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.widgets import Header, Static

from ..actions import InboxActions, create_mutation_queues
from ..aggregator import tab_counts_total
from ..batcher import flush_pending_mutations
from ..config import DEFAULT_GITHUB_CONFIG, DEFAULT_TIMING_CONFIG, MutationKind
from ..github import GitHubClient, InboxError, resolve_token
from ..keyboard import KeyboardStateMachine
from ..pipeline import load_inbox
from ..scheduling import LoopScheduler
from ..seen import SeenStore
from ..state import AppState
from .keys import key_event_from_textual
from .widgets.footer import HintFooter
from .widgets.help_panel import render_help
from .widgets.notification_list import NotificationList
from .widgets.tab_bar import TabBar

logger = logging.getLogger(__name__)

# Verbs for the rollback toast, by mutation kind
_MUTATION_LABELS: dict[str, str] = {
    "mark_read": "mark as read",
    "mark_unread": "mark as unread",
    "mark_done": "mark as done",
    "unsubscribe": "unsubscribe from",
    "approve": "approve",
}


def _status_line(state: AppState) -> Text:
    text = Text(f"Notifications ({tab_counts_total(state.tabs())})", style="bold cyan")
    if state.refreshing:
        text.append(" Refreshing...", style="yellow")
    if state.error and state.notifications:
        text.append(f"  {state.error}", style="red")
    repo = state.notifications[0].repo if state.notifications else ""
    if repo:
        text.append(f"\n{repo}", style="bold blue")
    return text


class InboxApp(App):
    """Keyboard-driven inbox for GitHub PR notifications.

    One screen: status line, tab bar, notification list and a footer with
    hints. "?" swaps the list for the help panel. Errors from the last fetch
    replace the list until a fetch succeeds; mutation failures show a toast.
    """

    TITLE = "pr-inbox"
    SUB_TITLE = "Notifications"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    #status { height: auto; padding: 0 1; }
    """

    def __init__(
        self,
        seen_store: SeenStore,
        github_config: dict[str, Any] | None = None,
        timing: dict[str, float] | None = None,
        client_factory: Callable[[], GitHubClient] | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)
        self.state = AppState()
        self._seen_store = seen_store
        self._github_config = github_config or dict(DEFAULT_GITHUB_CONFIG)
        self._timing = timing or {k: float(v) for k, v in DEFAULT_TIMING_CONFIG.items()}
        self._client_factory = client_factory or self._default_client
        self._client: GitHubClient | None = None
        self._client_lock = threading.Lock()
        self._keyboard: KeyboardStateMachine | None = None
        self._actions: InboxActions | None = None
        self._quitting = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="status")
        yield TabBar(id="tab-bar")
        yield NotificationList(id="notification-list")
        yield HintFooter(id="hint-footer")

    def on_mount(self) -> None:
        scheduler = LoopScheduler()
        create_mutation_queues(
            self.state,
            self._send_mutation,
            scheduler,
            debounce=self._timing["debounce_seconds"],
            on_settled=self._on_settled,
        )
        self._actions = actions = InboxActions(
            self.state,
            self._seen_store,
            on_refresh=self.action_refresh,
            on_quit=self._begin_exit,
        )
        self._keyboard = KeyboardStateMachine(
            self.state.ui,
            scheduler,
            self.state.filtered_length,
            self.state.tab_count,
            actions.action_table(),
            buffer_timeout=self._timing["key_buffer_timeout_seconds"],
            on_buffer_expired=self._render_state,
        )
        self.state.subscribe(self._render_state)
        self._render_state()
        self.query_one(NotificationList).focus()

        self._fetch_data()
        self.set_interval(self._timing["poll_interval_seconds"], self._fetch_data)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_notification_list_key_pressed(self, message: NotificationList.KeyPressed) -> None:
        event = key_event_from_textual(message.key, message.character)
        if event is None or self._keyboard is None:
            return
        self._keyboard.handle_key(event)
        self._render_state()

    def action_refresh(self) -> None:
        if self.state.loading:
            return
        self.state.refreshing = True
        self.state.changed()
        self._fetch_data()

    async def action_quit(self) -> None:
        # Ctrl+Q takes the same path as q so pending mutations are flushed
        if self._keyboard is None:
            self.exit(return_code=0)
            return
        self._keyboard.dispatch("quit")
        self._render_state()

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    def _default_client(self) -> GitHubClient:
        return GitHubClient(
            token=resolve_token(),
            api_url=self._github_config["api_url"],
            timeout=self._github_config["timeout"],
        )

    def _get_client(self) -> GitHubClient:
        # Called from fetch and mutation worker threads
        with self._client_lock:
            if self._client is None:
                self._client = self._client_factory()
            return self._client

    @work(thread=True, exclusive=True, group="fetch")
    def _fetch_data(self) -> None:
        """Fetch and classify notifications in a background thread."""
        try:
            notifications = load_inbox(self._get_client(), self._seen_store)
        except InboxError as exc:
            logger.warning("Fetch failed: %s", exc.message)
            self.call_from_thread(self.state.set_error, exc.message)
            return
        self.call_from_thread(self.state.replace_notifications, notifications)

    def _send_mutation(self, kind: MutationKind, ids: list[str]) -> None:
        self._get_client().send_mutation(kind, ids)

    def _on_settled(self, kind: MutationKind, ids: list[str], ok: bool) -> None:
        if self._actions is not None:
            self._actions.settle(kind, ids, ok)
        else:
            self.state.settle(kind, ids, ok)
        if not ok:
            label = _MUTATION_LABELS.get(kind, kind)
            self.notify(
                f"Could not {label} {len(ids)} notification(s); changes were undone",
                severity="error",
                timeout=4,
            )

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def _begin_exit(self) -> None:
        if self._quitting:
            return
        self._quitting = True
        self.run_worker(self._flush_and_exit(), group="exit", exclusive=True)

    async def _flush_and_exit(self) -> None:
        self._render_state()
        await flush_pending_mutations(self.state.registry)
        self.exit(return_code=0)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_state(self) -> None:
        state = self.state
        ui = state.ui
        keyboard = self._keyboard

        body = self.query_one(NotificationList)
        tab_bar = self.query_one(TabBar)
        self.query_one("#status", Static).update(_status_line(state))

        if ui.exiting:
            body.show_text(Text("Bye! Sending pending changes...", style="magenta"))
        elif state.loading:
            body.show_text(Text("Loading notifications...", style="magenta"))
        elif state.error and not state.notifications:
            body.show_text(Text(state.error, style="red"))
        elif ui.show_help:
            body.show_text(render_help())
        else:
            body.update_items(state.filtered(), ui.selected_index)

        tab_bar.display = not ui.exiting and bool(state.notifications)
        tab_bar.update_tabs(state.tabs(), ui.selected_tab_index)
        self.query_one(HintFooter).update_hints(
            state.selected_tab(),
            keyboard.g_pending() if keyboard else False,
            keyboard.escape_pending() if keyboard else False,
        )
