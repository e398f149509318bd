from __future__ import annotations

import asyncio

import pytest

from cleanup_history import clean_history
from history_review import ReviewApp, ReviewPanel

HISTORY = "#1\necho foo\n#2\ncd\n#3\n"


def run_keys(app: ReviewApp, *keys: str) -> list[str | None]:
    """Drive the app headlessly, returning the focused panel id after each arrow key."""
    focused: list[str | None] = []

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await pilot.pause()
            for key in keys:
                await pilot.press(key)
                if key in ("up", "down"):
                    await pilot.pause()
                    focused.append(app.focused.id if isinstance(app.focused, ReviewPanel) else None)

    asyncio.run(scenario())
    return focused


@pytest.mark.parametrize("key, expected", [("y", True), ("n", False), ("q", False)])
def test_decision_is_returned(key: str, expected: bool) -> None:
    app = ReviewApp(clean_history(HISTORY))
    run_keys(app, key)
    assert app.return_value is expected


def test_panels_cover_dropped_and_skipped_units() -> None:
    app = ReviewApp(clean_history(HISTORY))
    run_keys(app, "y")
    assert [panel.id for panel in app.panels] == ["summary", "dropped", "errors", "preview"]


def test_clean_run_only_shows_summary_and_preview() -> None:
    app = ReviewApp(clean_history("#1\necho foo\n"))
    run_keys(app, "y")
    assert [panel.id for panel in app.panels] == ["summary", "preview"]


def test_arrow_keys_cycle_through_panels() -> None:
    app = ReviewApp(clean_history(HISTORY))
    assert run_keys(app, "down", "down", "up", "up", "up", "n") == ["dropped", "errors", "dropped", "summary", "preview"]
