"""Log event entity and ingestion-side parsing.

// [LAW:one-source-of-truth] LogEvent is the atomic unit every grouping and
// projection structure references. Events are never copied or mutated.
// [LAW:single-enforcer] classify_level() is the sole level classifier.

Events compare by identity, not by value: two unrelated lines can carry
identical fields and still have to be distinct map keys downstream.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, NamedTuple


# ─── Levels ──────────────────────────────────────────────────────────────────

SYSTEM_LEVEL = "system"
UNKNOWN_LEVEL = "unknown"
ERROR_LEVEL = "error"


@dataclass(frozen=True)
class LogLevelConfig:
    """One user-facing severity level.

    priority: lower is checked first.
    """

    id: str
    name: str
    keywords: tuple[str, ...]
    priority: int


DEFAULT_LOG_LEVELS: tuple[LogLevelConfig, ...] = (
    LogLevelConfig("error", "Error", ("error", "fatal", "err", "critical", "crit"), 0),
    LogLevelConfig("warn", "Warning", ("warn", "warning"), 1),
    LogLevelConfig("info", "Info", ("info",), 2),
    LogLevelConfig("debug", "Debug", ("debug", "trace", "verbose"), 3),
)

# Standard JSON field names carrying a level
LOG_LEVEL_JSON_FIELDS: tuple[str, ...] = (
    "level",
    "log_level",
    "Level",
    "LOG_LEVEL",
    "severity",
    "Severity",
    "SEVERITY",
    "loglevel",
    "logLevel",
)

# Lifecycle marker lines emitted by the function runtime itself
_SYSTEM_MARKER_RE = re.compile(
    r"^(START RequestId:|END RequestId:|REPORT RequestId:|INIT_REPORT|INIT_START)"
)

_KEYWORD_DELIMS = r"\s\[\]():"


def sorted_levels(levels: Iterable[LogLevelConfig]) -> list[LogLevelConfig]:
    return sorted(levels, key=lambda level: level.priority)


def levels_from_settings(raw: object) -> tuple[LogLevelConfig, ...]:
    """Build level configs from a settings value. Falls back to defaults.

    Entries that are not dicts or have no id are skipped.
    """
    if not isinstance(raw, list):
        return DEFAULT_LOG_LEVELS
    levels: list[LogLevelConfig] = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict):
            continue
        level_id = str(entry.get("id") or "").strip()
        if not level_id:
            continue
        keywords = entry.get("keywords", [])
        if not isinstance(keywords, list):
            keywords = []
        priority = entry.get("priority", position)
        levels.append(
            LogLevelConfig(
                id=level_id,
                name=str(entry.get("name") or level_id.title()),
                keywords=tuple(str(k) for k in keywords if k),
                priority=priority if isinstance(priority, int) else position,
            )
        )
    return tuple(levels) if levels else DEFAULT_LOG_LEVELS


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(
        rf"(?:^|[{_KEYWORD_DELIMS}]){re.escape(keyword.lower())}(?:[{_KEYWORD_DELIMS}]|$)",
        re.IGNORECASE,
    )


def classify_level(
    message: str,
    payload: dict | None,
    levels: Iterable[LogLevelConfig] = DEFAULT_LOG_LEVELS,
) -> str:
    """Return the level id for a message.

    Order: lifecycle marker -> JSON level field -> delimited keyword -> unknown.
    """
    if _SYSTEM_MARKER_RE.match(message):
        return SYSTEM_LEVEL

    ordered = sorted_levels(levels)

    if payload:
        for field_name in LOG_LEVEL_JSON_FIELDS:
            value = payload.get(field_name)
            if not isinstance(value, str):
                continue
            lowered = value.lower()
            for level in ordered:
                if any(k.lower() == lowered for k in level.keywords):
                    return level.id

    for level in ordered:
        for keyword in level.keywords:
            if _keyword_pattern(keyword).search(message):
                return level.id

    return UNKNOWN_LEVEL


# ─── Payload and time ────────────────────────────────────────────────────────


def try_parse_payload(message: str) -> dict | None:
    """Parse a JSON-object message. Anything else yields None."""
    trimmed = message.strip()
    if not (trimmed.startswith("{") and trimmed.endswith("}")):
        return None
    try:
        parsed = json.loads(trimmed)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def format_timestamp(timestamp_ms: int) -> str:
    """Compact local time: 'Jan 05 13:04:59'."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%b %d %H:%M:%S")


def format_full_timestamp(timestamp_ms: int) -> str:
    """Detail-row time with year and milliseconds."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return "{}.{:03d}".format(dt.strftime("%b %d, %Y %H:%M:%S"), timestamp_ms % 1000)


# ─── Entity ──────────────────────────────────────────────────────────────────


class RawLogLine(NamedTuple):
    """One line as read from a source, before classification."""

    timestamp: int
    message: str
    stream_id: str | None = None
    event_id: str | None = None


@dataclass(frozen=True, eq=False)
class LogEvent:
    """One ingested log line.

    seq: stable per-ingestion identifier, unique within one store.
    stream_id: identity of the producing execution context, if known.
    payload: parsed JSON object for structured messages.
    """

    seq: int
    timestamp: int
    message: str
    stream_id: str | None = None
    event_id: str | None = None
    level: str = UNKNOWN_LEVEL
    payload: dict[str, Any] | None = field(default=None, repr=False)
    formatted_time: str = ""


def make_event(
    seq: int,
    timestamp: int,
    message: str,
    stream_id: str | None = None,
    event_id: str | None = None,
    levels: Iterable[LogLevelConfig] = DEFAULT_LOG_LEVELS,
) -> LogEvent:
    """Create a fully parsed LogEvent from raw fields."""
    payload = try_parse_payload(message)
    return LogEvent(
        seq=seq,
        timestamp=int(timestamp),
        message=message,
        stream_id=stream_id,
        event_id=event_id,
        level=classify_level(message, payload, levels),
        payload=payload,
        formatted_time=format_timestamp(int(timestamp)),
    )
