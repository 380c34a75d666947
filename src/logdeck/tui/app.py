"""Main TUI application using Textual.

// [LAW:one-source-of-truth] Viewer state lives in LogStore; the app only
// routes input to it and re-renders on its on_change callback.
"""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding

from logdeck.app.log_store import LogStore
from logdeck.core.events import sorted_levels
from logdeck.core.find import FindOption
from logdeck.core.navigation import DEFAULT_PAGE_SIZE, Dismiss
from logdeck.core.projection import visible_messages
from logdeck.io.settings import ViewerSettings
from logdeck.tui.keymap import MODE_KEYMAP, NAVIGATION_KEYS, InputMode
from logdeck.tui.log_list import LogListView
from logdeck.tui.widgets import ContextMenu, FilterBar, FindBar, StatusFooter

logger = logging.getLogger(__name__)

_FIND_OPTIONS = {
    "case": FindOption.CASE_SENSITIVE,
    "word": FindOption.WHOLE_WORD,
    "regex": FindOption.REGEX,
}


class LogDeckApp(App, inherit_bindings=False):
    """Terminal log viewer over one LogStore."""

    TITLE = "logdeck"
    ENABLE_COMMAND_PALETTE = False
    BINDINGS = [Binding("ctrl+q", "quit", "Quit", priority=True)]

    CSS = """
    #log-list {
        height: 1fr;
    }
    """

    def __init__(self, store: LogStore, settings: ViewerSettings | None = None, source_name: str = ""):
        super().__init__()
        self._store = store
        self._settings = settings or ViewerSettings()
        self._filter_editing = False
        self._visible_range: tuple[int, int] | None = None
        if source_name:
            self.sub_title = source_name

        self._filter_bar = FilterBar()
        self._list = LogListView(
            store,
            heights=self._settings.row_heights,
            drag_threshold=self._settings.drag_threshold,
            id="log-list",
        )
        self._menu = ContextMenu()
        self._find_bar = FindBar()
        self._footer = StatusFooter()

    @property
    def store(self) -> LogStore:
        return self._store

    @property
    def log_list(self) -> LogListView:
        return self._list

    @property
    def context_menu(self) -> ContextMenu:
        return self._menu

    @property
    def input_mode(self) -> InputMode:
        if self._menu.is_open:
            return InputMode.CONTEXT_MENU
        if self._filter_editing:
            return InputMode.FILTER_EDIT
        if self._store.find.is_open:
            return InputMode.FIND_EDIT
        return InputMode.NORMAL

    def compose(self) -> ComposeResult:
        yield self._filter_bar
        yield self._list
        yield self._menu
        yield self._find_bar
        yield self._footer

    def on_mount(self) -> None:
        self._store.on_change = self._on_store_change
        self._store.on_scroll_request = self._on_scroll_request
        self._list.on_visible_range = self._on_visible_range
        self._list.on_context_menu = self._open_context_menu
        self._list.focus()
        self._on_store_change()

    # ─── Store notifications ─────────────────────────────────────────

    def _on_store_change(self) -> None:
        self._list.refresh_rows()
        self._refresh_bars()

    def _on_scroll_request(self, row: int) -> None:
        self._list.scroll_to_row(row, "smart")

    def _on_visible_range(self, first: int, last: int) -> None:
        self._visible_range = (first, last)
        self._refresh_footer()

    def _refresh_bars(self) -> None:
        store = self._store
        self._filter_bar.update_display(
            store.filter_text,
            self._filter_editing,
            tuple(sorted_levels(store.levels)),
            store.disabled_levels,
            store.group_mode,
            store.group_filter,
        )
        find = store.find
        self._find_bar.update_display(
            find.is_open, find.term, find.options, find.current_index, len(find.matches)
        )
        self._refresh_footer()

    def _refresh_footer(self) -> None:
        store = self._store
        self._footer.update_display(
            len(store.filtered_logs),
            len(store.logs),
            len(store.selection.selected_indices),
            self._visible_range,
        )

    # ─── Key dispatch ────────────────────────────────────────────────

    async def on_key(self, event) -> None:
        """// [LAW:single-enforcer] on_key is the sole key dispatcher.

        Mode keymap first, then text entry for the edit modes, then the
        navigation engine. The context menu is modal: unmapped keys other
        than Escape are swallowed while it is open.
        """
        mode = self.input_mode
        key = event.key

        action_name = MODE_KEYMAP[mode].get(key)
        if action_name:
            event.stop()
            event.prevent_default()
            await self.run_action(action_name)
            return

        if mode in (InputMode.FILTER_EDIT, InputMode.FIND_EDIT) and event.is_printable and event.character:
            event.stop()
            event.prevent_default()
            self._type_character(mode, event.character)
            return

        if key in NAVIGATION_KEYS:
            event.stop()
            event.prevent_default()
            self._navigate(key)
            return

        if mode == InputMode.CONTEXT_MENU:
            event.stop()
            event.prevent_default()

    def _type_character(self, mode: InputMode, character: str) -> None:
        store = self._store
        if mode == InputMode.FILTER_EDIT:
            store.set_filter_text(store.filter_text + character)
            self._refresh_bars()
        else:
            store.set_find_term(store.find.term + character)

    def _navigate(self, key: str) -> None:
        page_size = self._list.visible_row_count or DEFAULT_PAGE_SIZE
        result = self._store.handle_key(
            key,
            page_size=page_size,
            context_menu_open=self._menu.is_open,
        )
        if result.dismiss is Dismiss.CONTEXT_MENU:
            self._menu.close()
        if result.copy_text:
            self._copy(result.copy_text)

    def _copy(self, text: str) -> None:
        try:
            self.copy_to_clipboard(text)
        except Exception:
            logger.exception("clipboard copy failed")
            self.notify("Copy failed", severity="error")
            return
        lines = text.count("\n") + 1
        self.notify("Copied {} line{}".format(lines, "" if lines == 1 else "s"))

    # ─── Actions: navigation and filtering ───────────────────────────

    def action_navigate(self, key: str) -> None:
        self._navigate(key)

    def action_start_filter(self) -> None:
        self._filter_editing = True
        self._refresh_bars()

    def action_end_filter(self) -> None:
        self._filter_editing = False
        self._refresh_bars()

    def action_filter_backspace(self) -> None:
        self._store.set_filter_text(self._store.filter_text[:-1])
        self._refresh_bars()

    def action_clear_filter(self) -> None:
        self._store.set_filter_text("")
        self._refresh_bars()

    def action_toggle_level(self, number: int) -> None:
        levels = sorted_levels(self._store.levels)
        if 0 <= number < len(levels):
            self._store.toggle_level(levels[number].id)

    def action_filter_by_selection(self) -> None:
        if not self._store.filter_by_selection():
            self.notify("No row selected", severity="warning")

    def action_quick_filter(self, field_name: str) -> None:
        if not self._store.apply_quick_filter(field_name):
            self.notify("Selected row has no {}".format(field_name), severity="warning")

    # ─── Actions: grouping ───────────────────────────────────────────

    def action_cycle_group_mode(self) -> None:
        mode = self._store.cycle_group_mode()
        self.notify("Grouping: {}".format(mode.value))

    def action_toggle_group_filter(self) -> None:
        self._store.set_group_filter(not self._store.group_filter)

    def action_collapse_all(self) -> None:
        self._store.collapse_all()

    def action_expand_all(self) -> None:
        self._store.expand_all()

    def action_copy_group(self) -> None:
        """Copy the visible rows of the group holding the cursor."""
        store = self._store
        projection = store.projection
        index = store.selection.selected_index
        position = None if index is None else projection.position_of(index)
        group_id = None if position is None else getattr(projection.items[position], "group_id", None)
        group = next((g for g in store.groups if g.id == group_id), None)
        if group is None:
            self.notify("Cursor is not in a group", severity="warning")
            return
        self._copy(visible_messages(projection, group))

    # ─── Actions: find ───────────────────────────────────────────────

    def action_open_find(self) -> None:
        self._store.open_find()

    def action_find_next(self) -> None:
        self._store.find_next()

    def action_find_prev(self) -> None:
        self._store.find_prev()

    def action_find_backspace(self) -> None:
        self._store.set_find_term(self._store.find.term[:-1])

    def action_toggle_find_option(self, name: str) -> None:
        option = _FIND_OPTIONS.get(name)
        if option is not None:
            self._store.toggle_find_option(option)

    # ─── Actions: context menu ───────────────────────────────────────

    def _open_context_menu(self, log_index: int) -> None:
        log = self._store.projection.resolve(log_index)
        if log is None:
            return
        self._store.set_cursor(log_index)
        self._menu.open_for(log_index, log)

    def action_open_context_menu(self) -> None:
        index = self._store.selection.selected_index
        if index is None:
            self.notify("No row selected", severity="warning")
            return
        self._open_context_menu(index)

    def action_menu_pick(self, choice: str) -> None:
        log_index = self._menu.log_index
        self._menu.close()
        if log_index is None:
            return
        log = self._store.projection.resolve(log_index)
        if log is None:
            return
        if choice == "copy":
            self._copy(log.message)
        elif choice == "filter_by_selection":
            self.action_filter_by_selection()
        else:
            self.action_quick_filter(choice)
