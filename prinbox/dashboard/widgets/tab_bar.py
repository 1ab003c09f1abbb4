"""Tab bar showing one [name (count)] chip per tab."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from ...models import Tab


def render_tab_bar(tabs: list[Tab], selected_index: int) -> Text:
    text = Text()
    for idx, tab in enumerate(tabs):
        if idx:
            text.append(" ")
        if idx == selected_index:
            text.append(f" {tab.name} ({tab.count}) ", style="bold black on cyan")
        else:
            text.append(f"[{tab.name} ({tab.count})]", style="dim")
    return text


class TabBar(Static):
    DEFAULT_CSS = """
    TabBar { height: auto; padding: 0 1; }
    """

    def update_tabs(self, tabs: list[Tab], selected_index: int) -> None:
        self.update(render_tab_bar(tabs, selected_index))
