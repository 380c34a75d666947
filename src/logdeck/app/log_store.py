"""Log store: the application shell around the pure core.

Owns the full log sequence, the filter inputs, the grouping mode, the
collapsed set, selection state and find state. Derived views (filtered logs,
sections, projection) are recomputed on demand through identity-keyed memos.

// [LAW:one-source-of-truth] Every piece of mutable viewer state lives here.
// [LAW:one-way-deps] No widget imports. No rendering imports.

Every mutation publishes by replacing the object it changes (new list, new
frozenset, new SelectionState) and then fires on_change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Iterable

from logdeck.core.events import DEFAULT_LOG_LEVELS, LogEvent, LogLevelConfig, RawLogLine, make_event
from logdeck.core.filtering import filter_logs, quick_filters_for
from logdeck.core.find import FindOption, FindState
from logdeck.core.grouping import GroupMode, GroupSection, group_logs
from logdeck.core.memo import IdentityMemo
from logdeck.core.navigation import (
    DEFAULT_PAGE_SIZE,
    Dismiss,
    DragRelease,
    KeyResult,
    ReleaseKind,
    SelectionState,
    clear_all,
    click_row,
    copy_text,
    scroll_row_for,
    select_positions,
)
from logdeck.core.navigation import handle_key as handle_navigation_key
from logdeck.core.projection import HeaderItem, LogItem, Projection, compute_display_items

logger = logging.getLogger(__name__)

MAX_LOGS = 50_000


class LogStore:
    """Single owner of logs and viewer state.

    Callbacks are registered by the app for re-render notifications.
    All mutations go through public methods; callbacks fire after mutation.
    """

    def __init__(
        self,
        levels: Iterable[LogLevelConfig] = DEFAULT_LOG_LEVELS,
        max_logs: int = MAX_LOGS,
    ):
        self._levels = tuple(levels)
        self._max_logs = max(1, max_logs)
        self._next_seq = 0

        self._logs: list[LogEvent] = []
        self._filter_text = ""
        self._disabled_levels: frozenset[str] = frozenset()
        self._group_mode = GroupMode.NONE
        self._collapsed: frozenset[str] = frozenset()
        self._group_filter = False
        self._selection = SelectionState()
        self.find = FindState()

        self._filter_memo = IdentityMemo(filter_logs)
        self._group_memo = IdentityMemo(group_logs)
        self._projection_memo = IdentityMemo(compute_display_items)

        # Callbacks, registered by the app
        self.on_change: Callable[[], None] | None = None
        self.on_scroll_request: Callable[[int], None] | None = None

    # ─── Read side ────────────────────────────────────────────────────

    @property
    def levels(self) -> tuple[LogLevelConfig, ...]:
        return self._levels

    @property
    def logs(self) -> list[LogEvent]:
        return self._logs

    @property
    def filter_text(self) -> str:
        return self._filter_text

    @property
    def disabled_levels(self) -> frozenset[str]:
        return self._disabled_levels

    @property
    def group_mode(self) -> GroupMode:
        return self._group_mode

    @property
    def collapsed_groups(self) -> frozenset[str]:
        return self._collapsed

    @property
    def group_filter(self) -> bool:
        return self._group_filter

    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def filtered_logs(self) -> list[LogEvent]:
        return self._filter_memo(self._logs, self._filter_text, self._disabled_levels)

    @property
    def groups(self) -> list[GroupSection]:
        # Sections always come from the unfiltered logs
        return self._group_memo(self._logs, self._group_mode)

    @property
    def projection(self) -> Projection:
        before = self._projection_memo.compute_count
        projection = self._projection_memo(
            self.filtered_logs,
            self._group_mode,
            self._collapsed,
            self.groups,
            self._disabled_levels,
            self._group_filter_text(),
        )
        if self._projection_memo.compute_count != before:
            logger.debug(
                "projection recomputed: %d items from %d filtered logs (%s)",
                len(projection),
                len(projection.filtered_logs),
                self._group_mode.value,
            )
        return projection

    def _group_filter_text(self) -> str | None:
        if self._group_filter and self._group_mode != GroupMode.NONE and self._filter_text.strip():
            return self._filter_text
        return None

    def selected_log(self) -> LogEvent | None:
        index = self._selection.selected_index
        return None if index is None else self.projection.resolve(index)

    def expanded_log(self) -> LogEvent | None:
        index = self._selection.expanded_index
        return None if index is None else self.projection.resolve(index)

    # ─── Ingestion ────────────────────────────────────────────────────

    def _make_events(self, lines: Iterable[RawLogLine]) -> list[LogEvent]:
        events = []
        for line in lines:
            events.append(
                make_event(
                    self._next_seq,
                    line.timestamp,
                    line.message,
                    stream_id=line.stream_id,
                    event_id=line.event_id,
                    levels=self._levels,
                )
            )
            self._next_seq += 1
        return events

    def set_logs(self, lines: Iterable[RawLogLine]) -> None:
        """Replace the whole log set. Selection and collapse state reset."""
        events = self._make_events(lines)
        self._logs = events[-self._max_logs :]
        self._collapsed = frozenset()
        self._reset_view_state()
        logger.info("loaded %d logs", len(self._logs))
        self._notify()

    def append_logs(self, lines: Iterable[RawLogLine]) -> int:
        """Append lines, keeping the newest max_logs. Returns the number added."""
        events = self._make_events(lines)
        if not events:
            return 0
        combined = self._logs + events
        dropped = max(0, len(combined) - self._max_logs)
        self._logs = combined[dropped:]
        if dropped:
            # Real indices shifted under the selection
            logger.debug("dropped %d oldest logs", dropped)
            self._reset_view_state()
        else:
            # Synthetic indices are renumbered by the next projection
            self._selection = self._drop_synthetic(self._selection)
        self._notify()
        return len(events)

    # ─── Filter inputs ────────────────────────────────────────────────

    def set_filter_text(self, text: str) -> None:
        if text == self._filter_text:
            return
        self._filter_text = text
        self._reset_view_state()
        self._notify()

    def set_disabled_levels(self, level_ids: Iterable[str]) -> None:
        disabled = frozenset(level_ids)
        if disabled == self._disabled_levels:
            return
        self._disabled_levels = disabled
        self._reset_view_state()
        self._notify()

    def toggle_level(self, level_id: str) -> None:
        self.set_disabled_levels(self._disabled_levels ^ {level_id})

    def apply_quick_filter(self, field_name: str) -> bool:
        """Filter by a field value of the selected log. False when it has none."""
        log = self.selected_log()
        if log is None:
            return False
        text = quick_filters_for(log).get(field_name)
        if text is None:
            return False
        self.set_filter_text(text)
        return True

    def filter_by_selection(self) -> bool:
        """Install the selected row's message as the filter text."""
        log = self.selected_log()
        if log is None or not log.message.strip():
            return False
        self.set_filter_text(log.message.strip())
        return True

    # ─── Grouping ─────────────────────────────────────────────────────

    def set_group_mode(self, mode: GroupMode) -> None:
        mode = GroupMode(mode)
        if mode == self._group_mode:
            return
        self._group_mode = mode
        # Synthetic indices do not survive a new projection
        self._selection = self._drop_synthetic(self._selection)
        self._notify()

    def cycle_group_mode(self) -> GroupMode:
        modes = list(GroupMode)
        self.set_group_mode(modes[(modes.index(self._group_mode) + 1) % len(modes)])
        return self._group_mode

    def set_group_filter(self, enabled: bool) -> None:
        if enabled == self._group_filter:
            return
        self._group_filter = enabled
        self._selection = self._drop_synthetic(self._selection)
        self._notify()

    def toggle_group_collapsed(self, group_id: str) -> None:
        self._collapsed = self._collapsed ^ {group_id}
        self._notify()

    def collapse_all(self) -> None:
        self._collapsed = frozenset(group.id for group in self.groups)
        self._notify()

    def expand_all(self) -> None:
        if not self._collapsed:
            return
        self._collapsed = frozenset()
        self._notify()

    # ─── Selection ────────────────────────────────────────────────────

    def click(self, log_index: int) -> None:
        self._set_selection(click_row(self._selection, log_index))

    def set_cursor(self, log_index: int) -> None:
        """Move the cursor without touching expansion or multi-selection."""
        self._set_selection(replace(self._selection, selected_index=log_index))

    def click_position(self, position: int) -> None:
        """Click on a logical row: log rows select, headers toggle collapse."""
        projection = self.projection
        if not 0 <= position < len(projection):
            self._set_selection(clear_all(self._selection))
            return
        item = projection.items[position]
        if isinstance(item, HeaderItem):
            self.toggle_group_collapsed(item.group.id)
        elif isinstance(item, LogItem):
            self.click(item.log_index)

    def drag_select(self, low: int, high: int) -> None:
        self._set_selection(select_positions(self._selection, self.projection, low, high))

    def release(self, release: DragRelease) -> None:
        if release.kind is ReleaseKind.CLICK and release.position is not None:
            self.click_position(release.position)
        elif release.kind is ReleaseKind.CLEAR:
            self._set_selection(clear_all(self._selection))

    def handle_key(
        self,
        key: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        context_menu_open: bool = False,
    ) -> KeyResult:
        """Route one key through the navigation engine and apply the result."""
        result = handle_navigation_key(
            key,
            self._selection,
            self.projection,
            page_size=page_size,
            context_menu_open=context_menu_open,
            find_open=self.find.is_open,
        )
        if result.dismiss is Dismiss.FIND:
            self.close_find()
        self._set_selection(result.state)
        if result.scroll_to_row is not None and self.on_scroll_request is not None:
            self.on_scroll_request(result.scroll_to_row)
        return result

    def select_all(self) -> None:
        self._set_selection(
            replace(
                self._selection,
                selected_indices=frozenset(self.projection.log_order),
                expanded_index=None,
            )
        )

    def copy_selection_text(self) -> str | None:
        return copy_text(self.projection, self._selection)

    def _set_selection(self, state: SelectionState) -> None:
        if state == self._selection:
            return
        self._selection = state
        self._notify()

    def _reset_view_state(self) -> None:
        self._selection = SelectionState()

    @staticmethod
    def _drop_synthetic(state: SelectionState) -> SelectionState:
        def real(index: int | None) -> int | None:
            return index if index is not None and index >= 0 else None

        return SelectionState(
            selected_index=real(state.selected_index),
            selected_indices=frozenset(i for i in state.selected_indices if i >= 0),
            expanded_index=real(state.expanded_index),
        )

    # ─── Find ─────────────────────────────────────────────────────────

    def open_find(self) -> None:
        self.find.open()
        self.find.refresh(self.projection)
        self._notify()

    def close_find(self) -> None:
        self.find.close()
        self._notify()

    def set_find_term(self, term: str) -> None:
        self.find.set_term(term, self.projection)
        self._go_to_match(self.find.current_log_index)

    def toggle_find_option(self, option: FindOption) -> None:
        self.find.toggle_option(option, self.projection)
        self._go_to_match(self.find.current_log_index)

    def find_next(self) -> None:
        self._go_to_match(self.find.go_to_next())

    def find_prev(self) -> None:
        self._go_to_match(self.find.go_to_prev())

    def _go_to_match(self, log_index: int | None) -> None:
        """Move the cursor onto a match row and ask the viewport to show it."""
        if log_index is None:
            self._notify()
            return
        self._selection = replace(self._selection, selected_index=log_index)
        self._notify()
        row = scroll_row_for(self.projection, self._selection, log_index)
        if row is not None and self.on_scroll_request is not None:
            self.on_scroll_request(row)

    # ─── Notification ─────────────────────────────────────────────────

    def _notify(self) -> None:
        if self.find.is_open:
            self.find.refresh(self.projection)
        if self.on_change is not None:
            self.on_change()
