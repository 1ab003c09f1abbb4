"""Keyboard help text, built from the keyboard module's help sections."""

from __future__ import annotations

from rich.text import Text

from ...keyboard import HELP_SECTIONS

KEY_COLUMN_WIDTH = 10


def render_help() -> Text:
    text = Text("Keyboard shortcuts\n", style="bold cyan")
    for title, entries in HELP_SECTIONS:
        text.append(f"\n{title}\n", style="bold")
        for keys, description in entries:
            text.append(f"  {keys:<{KEY_COLUMN_WIDTH}}", style="yellow")
            text.append(f"{description}\n")
    text.append("\nPress any key to close", style="dim italic")
    return text
