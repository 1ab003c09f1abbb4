"""Footer: per-tab explanation, key hints and pending-gesture indicators."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

TAB_HELP: dict[str, str] = {
    "needs your review": "You or your team's review is showing as pending on these PRs.",
    "replied to you": "Someone replied to one of your comments on these PRs.",
    "already reviewed": "You already reviewed these PRs.",
    "team reviewed": "Your review was requested, but a teammate already reviewed.",
    "mention": "You were mentioned in these PRs.",
    "comment": "New comments on PRs you're involved with.",
    "merged": "These PRs have been merged (or closed).",
    "draft": "These PRs are still drafts.",
}

KEY_HINTS = "tab/shift+tab switch • ↑/↓ nav • enter open • m/M read/unread • d/y done • ? help"


def render_footer(selected_tab: str | None, g_pending: bool, escape_pending: bool) -> Text:
    text = Text("─" * 60 + "\n", style="dim")
    help_text = TAB_HELP.get(selected_tab or "")
    if help_text:
        text.append(help_text + "\n", style="dim italic")
    text.append(KEY_HINTS, style="dim")
    if g_pending:
        text.append("  g", style="yellow")
    if escape_pending:
        text.append("  Press Esc again to quit", style="yellow")
    return text


class HintFooter(Static):
    DEFAULT_CSS = """
    HintFooter { height: auto; padding: 0 1; }
    """

    def update_hints(self, selected_tab: str | None, g_pending: bool, escape_pending: bool) -> None:
        self.update(render_footer(selected_tab, g_pending, escape_pending))
