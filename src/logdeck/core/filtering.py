"""Text and level filtering over the full log sequence.

The filtered sequence holds the same LogEvent objects as the input, in the
same order. Projection relies on that: membership is tested by identity.

Filter text forms:
    plain text          case-insensitive substring of the message
    field.path:value    case-insensitive substring of a payload value
    metadata.field:value  quick-filter form; when the literal path is
                        absent, "field" is looked up under its casing
                        variants at the top level, then under "metadata"

// [LAW:dataflow-not-control-flow] filter_logs() is pure: inputs in, subsequence out.
"""

from __future__ import annotations

import re
from typing import AbstractSet, Any, Sequence

from logdeck.core.events import LogEvent


FIELD_FILTER_RE = re.compile(r"^(\w+(?:\.\w+)*):(.+)$")

# Fields offered as one-keystroke quick filters, camelCase base names
QUICK_FILTER_FIELDS: tuple[str, ...] = ("requestId", "traceId", "clientIp")

_MISSING = object()


def get_nested_value(obj: dict, path: str) -> Any:
    """Walk a dotted path through nested dicts. Returns _MISSING when absent."""
    current: Any = obj
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return _MISSING
    return current


def _stringify(value: Any) -> str:
    # Match the JSON spelling users see in the detail row
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


def matches_filter(log: LogEvent, filter_text: str) -> bool:
    """True when a single log passes the text filter. Blank text passes all."""
    if not filter_text.strip():
        return True

    m = FIELD_FILTER_RE.match(filter_text)
    if m is not None:
        path, value = m.group(1), m.group(2)
        if not log.payload:
            return False
        found = get_nested_value(log.payload, path)
        if found is _MISSING:
            found = _quick_field_value(log.payload, path)
        if found is _MISSING:
            return False
        return value.lower() in _stringify(found).lower()

    return filter_text.lower() in log.message.lower()


def filter_logs(
    logs: Sequence[LogEvent],
    filter_text: str,
    disabled_levels: AbstractSet[str] = frozenset(),
) -> list[LogEvent]:
    """Level filter, then text filter."""
    filtered: Sequence[LogEvent] = logs
    if disabled_levels:
        filtered = [log for log in filtered if log.level not in disabled_levels]
    if filter_text.strip():
        filtered = [log for log in filtered if matches_filter(log, filter_text)]
    return list(filtered)


# ─── Field extraction ────────────────────────────────────────────────────────


def to_snake_case(name: str) -> str:
    """requestId -> request_id, clientIP -> client_i_p (letter by letter)."""
    return re.sub(r"[A-Z]", lambda m: "_" + m.group(0).lower(), name)


def _try_variants(obj: dict, field_name: str) -> str | None:
    pascal = field_name[:1].upper() + field_name[1:]
    for key in (field_name, pascal, to_snake_case(field_name)):
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return None


def extract_field_variants(payload: dict | None, field_name: str) -> str | None:
    """Find a camelCase field under its casing variants.

    Checks the top level first, then a nested "metadata" object. Only string
    values count.
    """
    if not payload:
        return None
    found = _try_variants(payload, field_name)
    if found is not None:
        return found
    metadata = payload.get("metadata")
    if isinstance(metadata, dict):
        return _try_variants(metadata, field_name)
    return None


def _quick_field_value(payload: dict, path: str) -> Any:
    prefix, _, field_name = path.partition(".")
    if prefix != "metadata" or not field_name or "." in field_name:
        return _MISSING
    found = extract_field_variants(payload, field_name)
    return _MISSING if found is None else found


def quick_filter_text(field_name: str, value: str) -> str:
    """Filter text that selects every log carrying this field value."""
    return f"metadata.{field_name}:{value}"


def quick_filters_for(log: LogEvent) -> dict[str, str]:
    """Quick filter texts available for one log, keyed by field name."""
    result: dict[str, str] = {}
    for field_name in QUICK_FILTER_FIELDS:
        value = extract_field_variants(log.payload, field_name)
        if value is not None:
            result[field_name] = quick_filter_text(field_name, value)
    return result
