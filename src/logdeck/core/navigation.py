"""Navigation and selection over the projected row space.

Three index spaces meet here:

    log_index   what selection state stores (real >= 0, synthetic < 0)
    position    logical row: index into Projection.items
    viewport    position shifted by +1 after the expanded row, whose detail
                panel occupies row expanded_position + 1

All selection and keyboard math works on log_index / position; the +1 shift
is applied only at the viewport boundary, by RowLayout. At most one row is
expanded at a time.

// [LAW:single-enforcer] RowLayout is the sole owner of the viewport shift.
// [LAW:dataflow-not-control-flow] handle_key() returns a KeyResult value;
// the caller applies it. Nothing here mutates its inputs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable

from logdeck.core.projection import HeaderItem, LogItem, Projection


DRAG_THRESHOLD = 5.0
DEFAULT_PAGE_SIZE = 10


# ─── Viewport layout ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RowHeights:
    row: int = 1
    header: int = 1
    detail: int = 12


@dataclass(frozen=True)
class RowLayout:
    """Maps logical positions to viewport rows around one expanded row."""

    item_count: int
    expanded_position: int | None = None

    @classmethod
    def for_projection(cls, projection: Projection, expanded_index: int | None) -> "RowLayout":
        position = None if expanded_index is None else projection.position_of(expanded_index)
        return cls(len(projection), position)

    @property
    def row_count(self) -> int:
        return self.item_count + (1 if self.expanded_position is not None else 0)

    def to_viewport_row(self, position: int) -> int:
        if self.expanded_position is not None and position > self.expanded_position:
            return position + 1
        return position

    def is_detail_row(self, row: int) -> bool:
        return self.expanded_position is not None and row == self.expanded_position + 1

    def from_viewport_row(self, row: int) -> tuple[int, bool]:
        """(logical position, is_detail). The detail row reports its owner."""
        if self.expanded_position is None or row <= self.expanded_position:
            return row, False
        if row == self.expanded_position + 1:
            return self.expanded_position, True
        return row - 1, False

    def logical_range(self, start_row: int, stop_row: int) -> tuple[int, int]:
        """Logical positions covered by a visible viewport range."""
        return self.from_viewport_row(start_row)[0], self.from_viewport_row(stop_row)[0]


def make_row_height(
    projection: Projection,
    layout: RowLayout,
    heights: RowHeights = RowHeights(),
) -> Callable[[int], int]:
    """Per-viewport-row height function for the viewport collaborator."""

    def row_height(row: int) -> int:
        if layout.is_detail_row(row):
            return heights.detail
        position, _ = layout.from_viewport_row(row)
        if 0 <= position < len(projection.items) and isinstance(projection.items[position], HeaderItem):
            return heights.header
        return heights.row

    return row_height


# ─── Selection state ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SelectionState:
    """Cursor, multi-selection and expanded row, all in log_index space."""

    selected_index: int | None = None
    selected_indices: frozenset[int] = field(default_factory=frozenset)
    expanded_index: int | None = None


def click_row(state: SelectionState, log_index: int) -> SelectionState:
    """Plain click: clear multi-selection, move the cursor, toggle expansion."""
    return SelectionState(
        selected_index=log_index,
        selected_indices=frozenset(),
        expanded_index=None if state.expanded_index == log_index else log_index,
    )


def clear_all(state: SelectionState) -> SelectionState:
    """Release over empty space: nothing selected, nothing expanded."""
    return SelectionState()


def select_positions(
    state: SelectionState, projection: Projection, low: int, high: int
) -> SelectionState:
    """Multi-select every log row in the closed logical interval [low, high]."""
    indices = frozenset(
        item.log_index
        for item in projection.items[max(low, 0) : high + 1]
        if isinstance(item, LogItem)
    )
    return replace(state, selected_indices=indices)


def scroll_row_for(projection: Projection, state: SelectionState, log_index: int) -> int | None:
    """Viewport row that shows log_index under the current expansion."""
    position = projection.position_of(log_index)
    if position is None:
        return None
    return RowLayout.for_projection(projection, state.expanded_index).to_viewport_row(position)


def ordered_selection(projection: Projection, indices: Iterable[int]) -> list[int]:
    """Selected log indices in ascending display order; unprojected ones last."""
    far = len(projection.items)
    return sorted(
        indices,
        key=lambda i: (
            projection.position_of(i) if projection.position_of(i) is not None else far,
            i,
        ),
    )


def copy_text(projection: Projection, state: SelectionState) -> str | None:
    """Clipboard text for the selection set, or the cursor row when it is empty."""
    if state.selected_indices:
        indices = ordered_selection(projection, state.selected_indices)
    elif state.selected_index is not None:
        indices = [state.selected_index]
    else:
        return None
    messages = [log.message for log in map(projection.resolve, indices) if log is not None and log.message]
    return "\n".join(messages) if messages else None


# ─── Drag selection ──────────────────────────────────────────────────────────


class ReleaseKind(Enum):
    CLICK = "click"        # press + release without crossing the threshold
    CLEAR = "clear"        # release with no press on a row
    DRAG_END = "drag_end"  # a drag finished; selection already applied


@dataclass(frozen=True)
class DragRelease:
    kind: ReleaseKind
    position: int | None = None


@dataclass(frozen=True)
class _DragOrigin:
    position: int
    x: float
    y: float


class DragSelection:
    """Press / move / enter / release tracker for drag-to-select.

    Positions are logical rows. A press only records a candidate origin;
    selection starts once the pointer travels farther than threshold.
    """

    def __init__(self, threshold: float = DRAG_THRESHOLD):
        self.threshold = threshold
        self._origin: _DragOrigin | None = None
        self._current: int | None = None
        self.is_dragging = False

    def mouse_down(self, position: int, x: float, y: float, button: int = 1) -> None:
        if button != 1:
            return
        self._origin = _DragOrigin(position, x, y)
        self._current = position

    def mouse_move(self, x: float, y: float) -> tuple[int, int] | None:
        """Returns the selected interval once dragging, else None."""
        origin = self._origin
        if origin is None:
            return None
        if not self.is_dragging:
            if math.hypot(x - origin.x, y - origin.y) <= self.threshold:
                return None
            self.is_dragging = True
        return self._interval()

    def row_enter(self, position: int) -> tuple[int, int] | None:
        if self._origin is None or not self.is_dragging:
            return None
        self._current = position
        return self._interval()

    def mouse_up(self) -> DragRelease:
        origin, dragging = self._origin, self.is_dragging
        self._reset()
        if origin is None:
            return DragRelease(ReleaseKind.CLEAR)
        if not dragging:
            return DragRelease(ReleaseKind.CLICK, origin.position)
        return DragRelease(ReleaseKind.DRAG_END)

    def mouse_leave(self) -> None:
        """Pointer left the list: forget the drag, keep everything else."""
        self._reset()

    def _interval(self) -> tuple[int, int]:
        assert self._origin is not None and self._current is not None
        start = self._origin.position
        return min(start, self._current), max(start, self._current)

    def _reset(self) -> None:
        self._origin = None
        self._current = None
        self.is_dragging = False


# ─── Keyboard ────────────────────────────────────────────────────────────────


class Dismiss(Enum):
    CONTEXT_MENU = "context_menu"
    FIND = "find"


@dataclass(frozen=True)
class KeyResult:
    """What a key press did. The shell applies it."""

    state: SelectionState
    handled: bool = True
    dismiss: Dismiss | None = None
    scroll_to_row: int | None = None
    copy_text: str | None = None


_MOVES: dict[str, Callable[[int, int, int], int]] = {
    # (current ordinal, last ordinal, page size) -> new ordinal
    "down": lambda cur, last, page: min(cur + 1, last),
    "up": lambda cur, last, page: max(cur - 1, 0),
    "pagedown": lambda cur, last, page: min(cur + page, last),
    "pageup": lambda cur, last, page: max(cur - page, 0),
    "home": lambda cur, last, page: 0,
    "end": lambda cur, last, page: last,
}


def handle_key(
    key: str,
    state: SelectionState,
    projection: Projection,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    context_menu_open: bool = False,
    find_open: bool = False,
) -> KeyResult:
    """Keyboard navigation over the projection's log rows.

    Movement steps through log rows in display order (headers skipped); with
    grouping off that is exactly the filtered-log sequence.
    Escape dismisses one thing per press: context menu, find overlay, then
    expanded row and multi-selection.
    """
    if key == "escape":
        if context_menu_open:
            return KeyResult(state, dismiss=Dismiss.CONTEXT_MENU)
        if find_open:
            return KeyResult(state, dismiss=Dismiss.FIND)
        if state.expanded_index is None and not state.selected_indices:
            return KeyResult(state, handled=False)
        return KeyResult(replace(state, expanded_index=None, selected_indices=frozenset()))

    # The find overlay owns the keyboard while open
    if find_open:
        return KeyResult(state, handled=False)

    order = projection.log_order
    if not order:
        return KeyResult(state, handled=False)

    if key in ("space", "enter"):
        if state.selected_index is None:
            return KeyResult(state)
        expanded = None if state.expanded_index == state.selected_index else state.selected_index
        return KeyResult(replace(state, expanded_index=expanded))

    if key == "ctrl+c":
        if not state.selected_indices and state.selected_index is None:
            return KeyResult(state, handled=False)
        return KeyResult(state, copy_text=copy_text(projection, state))

    if key == "ctrl+a":
        return KeyResult(replace(state, selected_indices=frozenset(order), expanded_index=None))

    move = _MOVES.get(key)
    if move is None:
        return KeyResult(state, handled=False)

    try:
        current = order.index(state.selected_index) if state.selected_index is not None else -1
    except ValueError:
        current = -1
    target = move(current, len(order) - 1, max(page_size, 1))
    if target == current:
        return KeyResult(state)

    new_index = order[target]
    new_state = replace(state, selected_index=new_index)
    return KeyResult(new_state, scroll_to_row=scroll_row_for(projection, new_state, new_index))
