"""Rich rendering for projected rows.

Converts Projection items into Rich renderables for the log list:

- render_log_row: one line, time + message colored by level, find matches
  highlighted, cursor / multi-selection backgrounds.
- render_header_row: one line per section with lifecycle badges.
- render_detail: the expanded panel under a row.

# [LAW:single-enforcer] All row styling decisions live here. The viewport
# never picks colors; it only asks for a renderable per row.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from typing import Sequence

from rich.console import Group, RenderableType
from rich.json import JSON
from rich.text import Text

from logdeck.core.events import LogEvent, format_full_timestamp
from logdeck.core.find import FindMatch
from logdeck.core.grouping import GroupKind
from logdeck.core.projection import HeaderItem, LogItem


LEVEL_STYLES: dict[str, str] = {
    "error": "bold red",
    "warn": "yellow",
    "info": "",
    "debug": "dim",
    "system": "dim magenta",
    "unknown": "",
}

CURSOR_STYLE = "on #30363d"
MULTI_SELECT_STYLE = "on #1f3a5f"
EXPANDED_MARKER_STYLE = "bold cyan"
TIME_STYLE = "dim"
SYNTHETIC_STYLE = "italic"
FIND_MATCH_STYLE = "black on yellow"
FIND_CURRENT_STYLE = "black on dark_orange"

HEADER_STYLE = "bold"
HEADER_BG_STYLE = "on #161b22"
ERROR_DOT_STYLE = "bold red"
BADGE_STYLE = "cyan"
IN_PROGRESS_STYLE = "bold yellow"
INIT_BADGE_STYLE = "magenta"


# ─── Formatting helpers ──────────────────────────────────────────────────────


def format_duration(ms: float) -> str:
    """Coarse human duration: '<1s', '12s', '3m', '2h'."""
    if ms < 1_000:
        return "<1s"
    if ms < 60_000:
        return "{}s".format(round(ms / 1_000))
    if ms < 3_600_000:
        return "{}m".format(round(ms / 60_000))
    return "{}h".format(round(ms / 3_600_000))


def format_relative_time(timestamp_ms: int, now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    diff = now_ms - timestamp_ms
    if diff < 60_000:
        return "just now"
    if diff < 3_600_000:
        return "{}m ago".format(diff // 60_000)
    if diff < 86_400_000:
        return "{}h ago".format(diff // 3_600_000)
    return "{}d ago".format(diff // 86_400_000)


def format_compact_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def memory_percent(used: int, allocated: int) -> int | None:
    if allocated <= 0:
        return None
    return round(used / allocated * 100)


def highlight_spans(
    text: Text,
    offset: int,
    matches: Sequence[FindMatch],
    current: FindMatch | None = None,
) -> None:
    """Stylize find matches in text. offset is where the message begins."""
    for match in matches:
        style = FIND_CURRENT_STYLE if match == current else FIND_MATCH_STYLE
        text.stylize(style, offset + match.start, offset + match.start + match.length)


# ─── Rows ────────────────────────────────────────────────────────────────────


def render_log_row(
    item: LogItem,
    *,
    selected: bool = False,
    multi_selected: bool = False,
    expanded: bool = False,
    matches: Sequence[FindMatch] = (),
    current_match: FindMatch | None = None,
) -> Text:
    """One log line: marker, time, message."""
    log = item.log
    text = Text(no_wrap=True, overflow="ellipsis", end="")
    if item.group_id is not None:
        text.append("  ")
    text.append("▾ " if expanded else "  ", style=EXPANDED_MARKER_STYLE)
    text.append(log.formatted_time, style=TIME_STYLE)
    text.append(" ")

    message_start = len(text)
    # Multi-line messages render on one row; the detail panel shows them whole
    message = log.message.replace("\n", " ")
    text.append(message, style=LEVEL_STYLES.get(log.level, ""))
    if item.synthetic:
        text.stylize(SYNTHETIC_STYLE, message_start)
    if matches:
        highlight_spans(text, message_start, matches, current_match)

    if multi_selected:
        text.stylize_before(MULTI_SELECT_STYLE)
    elif selected:
        text.stylize_before(CURSOR_STYLE)
    return text


def _header_badges(header: HeaderItem) -> Text:
    group = header.group
    meta = group.metadata
    badges = Text()

    if group.kind is GroupKind.INVOCATION:
        if meta.in_progress:
            badges.append("  In progress", style=IN_PROGRESS_STYLE)
        else:
            if meta.duration is not None:
                badges.append("  " + format_duration(meta.duration), style=BADGE_STYLE)
            if meta.memory_used is not None and meta.memory_allocated is not None:
                percent = memory_percent(meta.memory_used, meta.memory_allocated)
                if percent is not None:
                    badges.append("  mem {}%".format(percent), style=BADGE_STYLE)
    else:
        badges.append(
            "  {} → {}".format(
                format_compact_time(meta.first_timestamp),
                format_compact_time(meta.last_timestamp),
            ),
            style=TIME_STYLE,
        )

    if meta.init_duration is not None:
        badges.append("  init " + format_duration(meta.init_duration), style=INIT_BADGE_STYLE)
    return badges


def render_header_row(header: HeaderItem, visible: int, now_ms: int | None = None) -> Text:
    """Section header: chevron, error dot, label, badges, counts."""
    group = header.group
    meta = group.metadata
    text = Text(no_wrap=True, overflow="ellipsis", end="")
    text.append("▶ " if header.collapsed else "▼ ", style=TIME_STYLE)
    text.append("● " if meta.has_error else "  ", style=ERROR_DOT_STYLE)
    label = meta.request_id if group.kind is GroupKind.INVOCATION and meta.request_id else group.label
    text.append(label, style=HEADER_STYLE)
    text.append_text(_header_badges(header))

    if visible == meta.log_count:
        count = "{} logs".format(meta.log_count)
    else:
        count = "{} of {}".format(visible, meta.log_count)
    text.append("  " + count, style=TIME_STYLE)
    text.append("  " + format_relative_time(meta.last_timestamp, now_ms), style=TIME_STYLE)
    text.stylize_before(HEADER_BG_STYLE)
    return text


def render_detail(log: LogEvent) -> RenderableType:
    """Expanded panel: full timestamp, stream, then payload or raw message."""
    meta = Text(no_wrap=True, overflow="ellipsis")
    meta.append("    " + format_full_timestamp(log.timestamp), style="bold")
    meta.append("  level ", style=TIME_STYLE)
    meta.append(log.level, style=LEVEL_STYLES.get(log.level, ""))
    if log.stream_id:
        meta.append("  stream ", style=TIME_STYLE)
        meta.append(log.stream_id)
    if log.event_id:
        meta.append("  event ", style=TIME_STYLE)
        meta.append(log.event_id)

    if log.payload is not None:
        body: RenderableType = JSON(json.dumps(log.payload), indent=2)
    else:
        body = Text(log.message)
    return Group(meta, body)
