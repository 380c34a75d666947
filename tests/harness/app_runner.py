"""App lifecycle management for Textual in-process tests.

Creates LogDeckApp instances over a fresh LogStore and manages the
run_test() lifecycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from textual.pilot import Pilot

from logdeck.app.log_store import LogStore
from logdeck.core.events import RawLogLine
from logdeck.core.grouping import GroupMode
from logdeck.io.settings import ViewerSettings
from logdeck.tui.app import LogDeckApp


@asynccontextmanager
async def run_app(
    lines: Iterable[RawLogLine] = (),
    *,
    size: tuple[int, int] = (120, 30),
    group_mode: GroupMode = GroupMode.NONE,
    settings: ViewerSettings | None = None,
) -> AsyncIterator[tuple[Pilot, LogDeckApp]]:
    """Create and run a LogDeckApp in test mode.

    Yields (pilot, app) tuple.

    Args:
        lines: Raw lines loaded into the store before the app starts.
        size: Terminal dimensions (width, height).
        group_mode: Initial grouping mode.
        settings: Viewer settings; defaults when omitted.
    """
    # [LAW:no-shared-mutable-globals] Fresh store for every test
    store = LogStore()
    store.set_logs(lines)
    store.set_group_mode(group_mode)

    app = LogDeckApp(store, settings)

    async with app.run_test(size=size) as pilot:
        # Ensure on_mount processing has completed
        await pilot.pause()
        yield pilot, app
