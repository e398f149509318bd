"""
history_review.py - Interactive approval screen for a cleanup run

Shows what a run is about to do to the history file as a column of focusable
panels (summary, dropped commands, skipped units, and the resulting file) and
returns the user's decision: ``y`` approves the rewrite, ``n`` or ``q``
rejects it. Nothing here touches the file; `cleanup_history.run` acts on the
returned value.
"""

from __future__ import annotations

from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text as RichText
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

from cleanup_history import CleanResult, render_summary
from history_lexer import HistoryLexer, MonokaiProTheme


class NonScrollableVerticalScroll(VerticalScroll):
    """Leaves the arrow and paging keys to the app, which moves focus between panels."""

    BINDINGS = [
        b
        for b in VerticalScroll.BINDINGS
        if b.key not in ["up", "down", "pageup", "pagedown", "home", "end"]
    ]


class ReviewPanel(Static):
    """A titled, focusable block of the review screen."""

    can_focus = True

    DEFAULT_CSS = """
    ReviewPanel {
        padding: 0 1;
        margin: 1 2;
        border: round $primary;
    }
    ReviewPanel:focus {
        border: round #FF4500;
    }
    """

    def __init__(self, title: str, renderable, *args, **kwargs):
        super().__init__(renderable, *args, **kwargs)
        self.border_title = title


def render_dropped(result: CleanResult) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="#5C6370", justify="right")
    table.add_column()
    table.add_column(style="bold #98C379")
    for record, rule in result.dropped:
        table.add_row(str(record.timestamp), RichText(record.command), RichText(rule))
    return table


def render_errors(result: CleanResult) -> RichText:
    return RichText("\n".join(str(error) for error in result.errors), style="#E5C07B")


class ReviewApp(App[bool]):
    """→ Review: Lets the user approve or reject writing `result` back to disk"""

    TITLE = "cleanup-history"

    BINDINGS = [
        Binding("up", "focus_previous", "Focus previous", priority=True),
        Binding("down", "focus_next", "Focus next", priority=True),
        ("y", "approve", "Write cleaned history"),
        ("n", "reject", "Leave file unchanged"),
        Binding("q", "reject", "Quit", show=False),
    ]

    def __init__(self, result: CleanResult, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.result = result
        self.panels: list[ReviewPanel] = []
        self.scroll_container: VerticalScroll | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        self.scroll_container = NonScrollableVerticalScroll()
        with self.scroll_container:
            self.panels.append(ReviewPanel("Summary", render_summary(self.result), id="summary"))
            if self.result.dropped:
                self.panels.append(
                    ReviewPanel(
                        f"Dropped ({len(self.result.dropped)})",
                        render_dropped(self.result),
                        id="dropped",
                    )
                )
            if self.result.errors:
                self.panels.append(
                    ReviewPanel(
                        f"Skipped ({len(self.result.errors)})",
                        render_errors(self.result),
                        id="errors",
                    )
                )
            self.panels.append(
                ReviewPanel(
                    f"Result ({len(self.result.records)} records)",
                    Syntax(self.result.text, HistoryLexer(), theme=MonokaiProTheme(), line_numbers=True),
                    id="preview",
                )
            )
            yield from self.panels
        yield Footer()

    def on_mount(self):
        self.focus_panel(0)

    def focus_panel(self, index: int):
        panel = self.panels[index % len(self.panels)]
        panel.focus()
        if self.scroll_container:
            self.scroll_container.scroll_to_center(panel, animate=False)

    def get_current_panel_index(self) -> int:
        focused = self.focused
        if isinstance(focused, ReviewPanel):
            return self.panels.index(focused)
        return 0

    def action_focus_previous(self):
        self.focus_panel(self.get_current_panel_index() - 1)

    def action_focus_next(self):
        self.focus_panel(self.get_current_panel_index() + 1)

    def action_approve(self):
        self.exit(True)

    def action_reject(self):
        self.exit(False)
