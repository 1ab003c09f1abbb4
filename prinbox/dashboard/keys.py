"""Translate Textual key events into KeyEvents for the keyboard state machine."""

from __future__ import annotations

from ..keyboard import KeyEvent

_SPECIAL_KEYS: dict[str, KeyEvent] = {
    "escape": KeyEvent(escape=True),
    "tab": KeyEvent(tab=True),
    "shift+tab": KeyEvent(tab=True, shift=True),
    "backtab": KeyEvent(tab=True, shift=True),
    "enter": KeyEvent(return_=True),
    "up": KeyEvent(up_arrow=True),
    "down": KeyEvent(down_arrow=True),
}


def key_event_from_textual(key: str, character: str | None) -> KeyEvent | None:
    """Map a Textual key name and character to a KeyEvent.

    Returns None for keys the inbox does not use (function keys, bare
    modifiers, ctrl chords).
    """
    special = _SPECIAL_KEYS.get(key)
    if special is not None:
        return special
    if character and character.isprintable() and len(character) == 1:
        return KeyEvent(input=character, shift=character.isupper())
    return None
