"""Virtualized log list using the Textual Line API.

LogListView is the viewport for the navigation engine: it knows the row
count, per-row heights, renders rows lazily through render_line(), reports
the visible row range and scrolls to a row with start / center / end / smart
alignment.

Rows are viewport rows (see core.navigation): the expanded detail panel is
its own row, taller than the rest. Row -> line mapping is a prefix sum over
row heights, rebuilt whenever the store changes.

// [LAW:one-way-deps] Reads LogStore; all mutations go through its methods.
"""

from __future__ import annotations

import bisect
import logging
from itertools import accumulate
from typing import Callable, Literal

from rich.segment import Segment
from textual import events
from textual.cache import LRUCache
from textual.geometry import Size
from textual.scroll_view import ScrollView
from textual.strip import Strip

from logdeck.app.log_store import LogStore
from logdeck.core.navigation import (
    DRAG_THRESHOLD,
    DragSelection,
    RowHeights,
    RowLayout,
    make_row_height,
)
from logdeck.core.projection import HeaderItem, LogItem, Projection, visible_count

import logdeck.tui.rendering

logger = logging.getLogger(__name__)

Align = Literal["start", "center", "end", "smart"]


class LogListView(ScrollView, can_focus=True, inherit_bindings=False):
    """Line-API viewport over the store's projection."""

    DEFAULT_CSS = """
    LogListView {
        color: $foreground;
        overflow-y: scroll;
        overflow-x: hidden;
        &:focus {
            background-tint: $foreground 5%;
        }
    }
    """

    def __init__(
        self,
        store: LogStore,
        heights: RowHeights = RowHeights(),
        drag_threshold: float = DRAG_THRESHOLD,
        id: str | None = None,
    ):
        super().__init__(id=id)
        self._store = store
        self._heights = heights
        self._drag = DragSelection(drag_threshold)
        self._projection: Projection = store.projection
        self._layout = RowLayout(0)
        self._line_offsets: list[int] = [0]
        self._row_cache: LRUCache = LRUCache(1024)
        self._hover_position: int | None = None
        self._press_in_detail = False
        self._visible_range: tuple[int, int] | None = None

        # Callbacks, registered by the app
        self.on_visible_range: Callable[[int, int], None] | None = None
        self.on_context_menu: Callable[[int], None] | None = None

    # ─── Layout ──────────────────────────────────────────────────────────────

    @property
    def row_count(self) -> int:
        return self._layout.row_count

    @property
    def total_lines(self) -> int:
        return self._line_offsets[-1]

    @property
    def visible_row_count(self) -> int:
        """Rows that fit on screen, for page-size movement."""
        height = self.scrollable_content_region.height
        return height if height > 0 else 0

    def row_height(self, row: int) -> int:
        return self._line_offsets[row + 1] - self._line_offsets[row]

    def line_of_row(self, row: int) -> int:
        return self._line_offsets[min(max(row, 0), self.row_count)]

    def row_at_line(self, line: int) -> int | None:
        if line < 0 or line >= self.total_lines:
            return None
        return bisect.bisect_right(self._line_offsets, line) - 1

    def refresh_rows(self) -> None:
        """Re-read the store and rebuild the row -> line map."""
        store = self._store
        self._projection = store.projection
        self._layout = RowLayout.for_projection(self._projection, store.selection.expanded_index)
        height_of = make_row_height(self._projection, self._layout, self._heights)
        self._line_offsets = [0, *accumulate(height_of(row) for row in range(self._layout.row_count))]
        self._row_cache.clear()
        logger.debug("layout rebuilt: %d rows, %d lines", self.row_count, self.total_lines)
        self.virtual_size = Size(self._content_width, self.total_lines)
        self.refresh()
        self._notify_visible_range()

    @property
    def _content_width(self) -> int:
        return max(1, self.scrollable_content_region.width)

    # ─── Rendering ───────────────────────────────────────────────────────────

    def render_line(self, y: int) -> Strip:
        """Line API: render a single line at virtual position y."""
        _, scroll_y = self.scroll_offset
        line = scroll_y + y
        width = self._content_width
        row = self.row_at_line(line)
        if row is None:
            return Strip.blank(width, self.rich_style)

        strips = self._row_strips(row, width)
        local = line - self._line_offsets[row]
        if local >= len(strips):
            return Strip.blank(width, self.rich_style)
        return strips[local].apply_style(self.rich_style)

    def _row_strips(self, row: int, width: int) -> list[Strip]:
        key = (row, width)
        cached = self._row_cache.get(key)
        if cached is not None:
            return cached

        height = self.row_height(row)
        renderable = self._row_renderable(row)
        console = self.app.console
        options = console.options.update_width(width).update(height=height)
        lines = console.render_lines(renderable, options, pad=True)[:height]
        strips = [Strip(segments, width) for segments in lines]
        while len(strips) < height:
            strips.append(Strip([Segment(" " * width)], width))
        self._row_cache[key] = strips
        return strips

    def _row_renderable(self, row: int):
        rendering = logdeck.tui.rendering
        store = self._store
        position, is_detail = self._layout.from_viewport_row(row)
        item = self._projection.items[position]

        if isinstance(item, HeaderItem):
            return rendering.render_header_row(item, visible_count(self._projection, item.group))

        assert isinstance(item, LogItem)
        if is_detail:
            return rendering.render_detail(item.log)

        selection = store.selection
        find = store.find
        matches = find.matches_for_log(item.log_index) if find.matches else ()
        current = find.matches[find.current_index] if find.matches else None
        return rendering.render_log_row(
            item,
            selected=selection.selected_index == item.log_index,
            multi_selected=item.log_index in selection.selected_indices,
            expanded=selection.expanded_index == item.log_index,
            matches=matches,
            current_match=current,
        )

    # ─── Scrolling ───────────────────────────────────────────────────────────

    def scroll_to_row(self, row: int, align: Align = "smart") -> None:
        """Bring a viewport row on screen."""
        if not 0 <= row < self.row_count:
            return
        top = self.line_of_row(row)
        height = self.row_height(row)
        viewport = self.scrollable_content_region.height
        current = int(self.scroll_offset.y)

        if align == "smart":
            if top < current:
                align = "start"
            elif top + height > current + viewport:
                align = "end"
            else:
                return

        if align == "start":
            target = top
        elif align == "center":
            target = top - (viewport - height) // 2
        else:
            target = top + height - viewport
        self.scroll_to(y=max(0, target), animate=False)

    def watch_scroll_y(self, old_value: float, new_value: float) -> None:
        super().watch_scroll_y(old_value, new_value)
        self._notify_visible_range()

    def _notify_visible_range(self) -> None:
        if self.total_lines == 0:
            self._visible_range = None
            return
        top = int(self.scroll_offset.y)
        bottom = min(top + max(self.scrollable_content_region.height, 1), self.total_lines) - 1
        first, last = self.row_at_line(top), self.row_at_line(bottom)
        if first is None or last is None:
            return
        visible = self._layout.logical_range(first, last)
        if visible == self._visible_range:
            return
        self._visible_range = visible
        if self.on_visible_range is not None:
            self.on_visible_range(*visible)

    # ─── Mouse ───────────────────────────────────────────────────────────────

    def _position_at(self, event: events.MouseEvent) -> tuple[int, bool] | None:
        """Logical position under the pointer, with whether it is a detail row."""
        row = self.row_at_line(int(event.y + self.scroll_offset.y))
        if row is None:
            return None
        return self._layout.from_viewport_row(row)

    def on_mouse_down(self, event: events.MouseDown) -> None:
        hit = self._position_at(event)
        if event.button == 3:
            if hit is not None:
                log_index = self._projection.log_index_at(hit[0])
                if log_index is not None and self.on_context_menu is not None:
                    self.on_context_menu(log_index)
            return
        self._press_in_detail = hit is not None and hit[1]
        if hit is None or hit[1]:
            # Empty space, or inside the detail panel
            return
        self._drag.mouse_down(hit[0], event.screen_x, event.screen_y, event.button)
        self._hover_position = hit[0]

    def on_mouse_move(self, event: events.MouseMove) -> None:
        interval = self._drag.mouse_move(event.screen_x, event.screen_y)
        hit = self._position_at(event)
        if hit is not None and hit[0] != self._hover_position:
            self._hover_position = hit[0]
            entered = self._drag.row_enter(hit[0])
            interval = entered or interval
        if interval is not None:
            self._store.drag_select(*interval)

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if event.button == 3:
            return
        release = self._drag.mouse_up()
        self._hover_position = None
        if self._press_in_detail:
            self._press_in_detail = False
            return
        self._store.release(release)

    def on_leave(self, event: events.Leave) -> None:
        self._drag.mouse_leave()
        self._hover_position = None

    def on_resize(self, event: events.Resize) -> None:
        self.refresh_rows()
