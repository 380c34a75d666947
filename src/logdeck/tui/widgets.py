"""Bars around the log list: filter, find, context menu and status footer.

None of these are Input widgets. The app's on_key handles all text editing
and each bar re-renders from store state through update_display().

// [LAW:single-enforcer] update_display() is the sole render entry per bar.
"""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from logdeck.core.events import LogLevelConfig
from logdeck.core.filtering import QUICK_FILTER_FIELDS, quick_filters_for
from logdeck.core.find import FindOption, compile_find_pattern
from logdeck.core.grouping import GroupMode

import logdeck.tui.rendering

PROMPT_STYLE = "bold cyan"
ACTIVE_STYLE = "bold green"
DIM_STYLE = "dim"


def _cursor(text: Text, value: str, editing: bool) -> None:
    text.append(value, style="bold")
    if editing:
        text.append("█")


class FilterBar(Static):
    """Top bar: filter text, level toggles, grouping mode."""

    DEFAULT_CSS = """
    FilterBar {
        dock: top;
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    def __init__(self):
        super().__init__("")

    def update_display(
        self,
        filter_text: str,
        editing: bool,
        levels: tuple[LogLevelConfig, ...],
        disabled_levels: frozenset[str],
        group_mode: GroupMode,
        group_filter: bool,
    ) -> None:
        line = Text(no_wrap=True, overflow="ellipsis")
        line.append("/ ", style=PROMPT_STYLE)
        if filter_text or editing:
            _cursor(line, filter_text, editing)
        else:
            line.append("filter", style=DIM_STYLE)

        line.append("   ")
        for number, level in enumerate(levels[:4], start=1):
            style = DIM_STYLE if level.id in disabled_levels else logdeck.tui.rendering.LEVEL_STYLES.get(level.id, "") or "bold"
            line.append("{}:{} ".format(number, level.name), style=style)

        line.append("  group: ", style=DIM_STYLE)
        line.append(group_mode.value, style=ACTIVE_STYLE if group_mode != GroupMode.NONE else "")
        if group_filter and group_mode != GroupMode.NONE:
            line.append(" (whole groups)", style=ACTIVE_STYLE)
        self.update(line)


_OPTION_LABELS: tuple[tuple[FindOption, str, str], ...] = (
    (FindOption.CASE_SENSITIVE, "Aa", "^t"),
    (FindOption.WHOLE_WORD, "W", "^w"),
    (FindOption.REGEX, ".*", "^r"),
)


class FindBar(Static):
    """Bottom find overlay. Hidden while find is closed."""

    DEFAULT_CSS = """
    FindBar {
        dock: bottom;
        height: auto;
        padding: 0 1;
        display: none;
        border-top: solid $accent;
    }
    """

    def __init__(self):
        super().__init__("")

    def update_display(self, is_open: bool, term: str, options: FindOption, current: int, total: int) -> None:
        if not is_open:
            self.display = False
            return
        self.display = True

        line = Text(no_wrap=True, overflow="ellipsis")
        line.append("find ", style=PROMPT_STYLE)
        _cursor(line, term, True)

        if total:
            line.append("  [{}/{}]".format(current + 1, total), style=ACTIVE_STYLE)
        elif term:
            invalid = options & FindOption.REGEX and compile_find_pattern(term, options) is None
            line.append("  [invalid regex]" if invalid else "  [no matches]", style="bold red")

        line.append("   ")
        for option, label, key in _OPTION_LABELS:
            line.append(label, style=ACTIVE_STYLE if options & option else DIM_STYLE)
            line.append(" {}  ".format(key), style=DIM_STYLE)
        self.update(line)


class ContextMenu(Static):
    """Actions for one row. Keys pick; Escape dismisses."""

    DEFAULT_CSS = """
    ContextMenu {
        dock: bottom;
        height: auto;
        padding: 0 1;
        display: none;
        border: round $accent;
    }
    """

    def __init__(self):
        super().__init__("")
        self.log_index: int | None = None

    @property
    def is_open(self) -> bool:
        return self.log_index is not None

    def open_for(self, log_index: int, log) -> None:
        self.log_index = log_index
        quick = quick_filters_for(log)
        lines = Text()
        lines.append("c", style=PROMPT_STYLE)
        lines.append("  copy message\n")
        lines.append("s", style=PROMPT_STYLE)
        lines.append("  filter by this message\n")
        for key, field_name in zip("rti", QUICK_FILTER_FIELDS):
            if field_name in quick:
                lines.append(key, style=PROMPT_STYLE)
                lines.append("  {}\n".format(quick[field_name]))
        lines.append("esc  close", style=DIM_STYLE)
        self.update(lines)
        self.display = True

    def close(self) -> None:
        self.log_index = None
        self.display = False


class StatusFooter(Static):
    """Counts and the current selection."""

    DEFAULT_CSS = """
    StatusFooter {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    ALLOW_SELECT = False

    def __init__(self):
        super().__init__("")

    def update_display(self, filtered: int, total: int, selected: int, visible_range: tuple[int, int] | None) -> None:
        line = Text(no_wrap=True, overflow="ellipsis")
        if filtered == total:
            line.append("{} logs".format(total))
        else:
            line.append("{} of {} logs".format(filtered, total))
        if selected:
            line.append("  {} selected".format(selected), style=ACTIVE_STYLE)
        if visible_range is not None:
            line.append("  rows {}-{}".format(visible_range[0] + 1, visible_range[1] + 1), style=DIM_STYLE)
        line.append("   / filter  f find  m group  q quit", style=DIM_STYLE)
        self.update(line)
