"""Keyboard gesture state machine.

Raw key events are matched against an ordered list of bindings; the first
match wins. Keys that match nothing stay in a small buffer so multi-key
gestures ("gg", double Escape) can complete, and the buffer is cleared after
a short period of inactivity so an abandoned sequence never lingers.

Navigation actions change UiState directly. Everything else (mark read,
done, refresh, ...) is dispatched by name to an action table supplied by the
caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Callable

from .scheduling import Scheduler, Timer
from .state import UiState

logger = logging.getLogger(__name__)

BUFFER_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class KeyEvent:
    """One key press: the typed character plus flags for special keys."""
    input: str = ""
    escape: bool = False
    tab: bool = False
    shift: bool = False
    return_: bool = False
    up_arrow: bool = False
    down_arrow: bool = False


def last_key(buffer: Sequence[KeyEvent]) -> KeyEvent | None:
    return buffer[-1] if buffer else None


def buffer_ends_with(buffer: Sequence[KeyEvent], sequence: Sequence[str]) -> bool:
    """Check if the buffer ends with the given sequence of typed characters."""
    if len(buffer) < len(sequence):
        return False
    tail = buffer[len(buffer) - len(sequence):]
    return all(k.input == s for k, s in zip(tail, sequence))


def _typed(*chars: str) -> Callable[[Sequence[KeyEvent]], bool]:
    def match(buffer: Sequence[KeyEvent]) -> bool:
        key = last_key(buffer)
        return key is not None and key.input in chars
    return match


def _double_escape(buffer: Sequence[KeyEvent]) -> bool:
    return len(buffer) >= 2 and buffer[-1].escape and buffer[-2].escape


def _next_tab(buffer: Sequence[KeyEvent]) -> bool:
    key = last_key(buffer)
    return key is not None and (key.input == "l" or (key.tab and not key.shift))


def _prev_tab(buffer: Sequence[KeyEvent]) -> bool:
    key = last_key(buffer)
    return key is not None and (key.input == "h" or (key.tab and key.shift))


def _down(buffer: Sequence[KeyEvent]) -> bool:
    key = last_key(buffer)
    return key is not None and (key.down_arrow or key.input == "j")


def _up(buffer: Sequence[KeyEvent]) -> bool:
    key = last_key(buffer)
    return key is not None and (key.up_arrow or key.input == "k")


def _enter(buffer: Sequence[KeyEvent]) -> bool:
    key = last_key(buffer)
    return key is not None and key.return_


@dataclass(frozen=True)
class KeyBinding:
    match: Callable[[Sequence[KeyEvent]], bool]
    action: str


# Order matters: first match wins. Matchers see the buffer plus the new key.
KEY_BINDINGS: list[KeyBinding] = [
    KeyBinding(_typed("?"), "toggle_help"),
    KeyBinding(_double_escape, "quit"),
    KeyBinding(lambda b: buffer_ends_with(b, ["g", "g"]), "jump_to_start"),
    KeyBinding(_next_tab, "next_tab"),
    KeyBinding(_prev_tab, "prev_tab"),
    KeyBinding(_typed("G"), "jump_to_end"),
    KeyBinding(_typed("q"), "quit"),
    KeyBinding(_down, "move_down"),
    KeyBinding(_up, "move_up"),
    KeyBinding(_enter, "open_in_browser"),
    KeyBinding(_typed("m"), "mark_read"),
    KeyBinding(_typed("M"), "mark_unread"),
    KeyBinding(_typed("d", "y"), "mark_done"),
    KeyBinding(_typed("U"), "unsubscribe"),
    KeyBinding(_typed("A"), "approve"),
    KeyBinding(_typed("R"), "refresh"),
]

# Help screen contents: (section title, [(keys, description), ...])
HELP_SECTIONS: list[tuple[str, list[tuple[str, str]]]] = [
    ("Navigation", [
        ("Tab/l", "Next category"),
        ("⇧Tab/h", "Previous category"),
        ("↑/k", "Move up"),
        ("↓/j", "Move down"),
        ("gg", "Go to top"),
        ("G", "Go to bottom"),
    ]),
    ("Actions", [
        ("Enter", "Open PR in browser"),
        ("m", "Mark as read"),
        ("M", "Mark as unread"),
        ("d/y", "Mark as done"),
        ("U", "Unsubscribe"),
        ("A", "Approve PR"),
        ("R", "Refresh"),
    ]),
    ("Other", [
        ("Esc×2", "Quit"),
        ("q", "Quit"),
        ("?", "Toggle this help"),
    ]),
]


class KeyboardStateMachine:
    """Turns key events into UI state changes and dispatched actions.

    Args:
        ui: The UiState to mutate.
        scheduler: Used for the buffer inactivity timer.
        list_length: Returns the length of the currently displayed list.
        tab_count: Returns the number of tabs (at least 1).
        actions: Handlers for non-navigation actions, keyed by action name.
            "quit" is called after the exiting flag is set.
        buffer_timeout: Seconds of inactivity before the key buffer is cleared.
        on_buffer_expired: Called after the inactivity timer cleared the buffer.
    """

    def __init__(
        self,
        ui: UiState,
        scheduler: Scheduler,
        list_length: Callable[[], int],
        tab_count: Callable[[], int],
        actions: Mapping[str, Callable[[], object]] | None = None,
        buffer_timeout: float = BUFFER_TIMEOUT_SECONDS,
        bindings: Sequence[KeyBinding] = KEY_BINDINGS,
        on_buffer_expired: Callable[[], None] | None = None,
    ) -> None:
        self.ui = ui
        self._list_length = list_length
        self._tab_count = tab_count
        self._actions = dict(actions or {})
        self._bindings = list(bindings)
        self._on_buffer_expired = on_buffer_expired
        self._buffer_timer = Timer(scheduler, buffer_timeout, self._expire_buffer)

    @property
    def buffer(self) -> list[KeyEvent]:
        return list(self.ui.key_buffer)

    def escape_pending(self) -> bool:
        """True when one Escape has been pressed and a second would quit."""
        key = last_key(self.ui.key_buffer)
        return key is not None and key.escape

    def g_pending(self) -> bool:
        """True when one 'g' has been pressed and a second would jump to the top."""
        key = last_key(self.ui.key_buffer)
        return key is not None and key.input == "g"

    def clear_buffer(self) -> None:
        self.ui.key_buffer.clear()

    def _expire_buffer(self) -> None:
        self.clear_buffer()
        if self._on_buffer_expired is not None:
            self._on_buffer_expired()

    def handle_key(self, event: KeyEvent) -> str | None:
        """Process one key event.

        Returns the name of the action that ran, or None if the key was
        buffered, ignored, or only dismissed the help screen.
        """
        ui = self.ui
        if ui.exiting:
            return None

        # While help is showing, any key but "?" just closes it
        if ui.show_help and event.input != "?":
            ui.show_help = False
            return None

        candidate = [*ui.key_buffer, event]
        binding = next((b for b in self._bindings if b.match(candidate)), None)

        self._buffer_timer.cancel()
        if binding is None:
            ui.key_buffer.append(event)
            self._buffer_timer.restart()
            return None

        self.dispatch(binding.action)
        self.clear_buffer()
        return binding.action

    def dispatch(self, action: str) -> None:
        ui = self.ui
        if action == "toggle_help":
            ui.show_help = not ui.show_help
        elif action == "move_down":
            ui.selected_index = max(0, min(ui.selected_index + 1, self._list_length() - 1))
        elif action == "move_up":
            ui.selected_index = max(ui.selected_index - 1, 0)
        elif action == "jump_to_start":
            ui.selected_index = 0
        elif action == "jump_to_end":
            ui.selected_index = max(0, self._list_length() - 1)
        elif action == "next_tab":
            ui.selected_tab_index = (ui.selected_tab_index + 1) % max(1, self._tab_count())
            ui.selected_index = 0
        elif action == "prev_tab":
            count = max(1, self._tab_count())
            ui.selected_tab_index = (ui.selected_tab_index - 1 + count) % count
            ui.selected_index = 0
        elif action == "quit":
            ui.exiting = True
            self._buffer_timer.cancel()
            self._call("quit")
        else:
            self._call(action)

    def _call(self, action: str) -> None:
        handler = self._actions.get(action)
        if handler is None:
            logger.debug("No handler registered for %s", action)
            return
        handler()
