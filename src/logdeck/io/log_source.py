"""Read log files into RawLogLines.

Supported inputs:
    *.jsonl / *.ndjson  one JSON object per line:
                        {"timestamp", "message", "logStreamName", "eventId"}
                        (snake_case spellings accepted)
    *.json              a CloudWatch export document {"events": [...]} or a
                        bare list of the same objects
    anything else       plain text, one event per line, optional leading
                        ISO-8601 timestamp

Timestamps may be epoch milliseconds or ISO-8601 strings. Plain-text lines
without a timestamp inherit the previous line's, starting from the file's
modification time.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from logdeck.core.events import RawLogLine

logger = logging.getLogger(__name__)

JSONL_SUFFIXES = frozenset({".jsonl", ".ndjson"})

_ISO_PREFIX_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)\s+"
)
_FRACTION_RE = re.compile(r"[.,](\d+)")
_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_iso_timestamp(text: str) -> int | None:
    """Epoch milliseconds for an ISO-8601 string. Naive times are local."""
    normalized = text.strip().replace(" ", "T", 1)
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    normalized = _OFFSET_RE.sub(r"\1:\2", normalized)
    # fromisoformat wants exactly 3 or 6 fraction digits before 3.11
    normalized = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1)
    try:
        dt = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return round(dt.timestamp() * 1000)


def _coerce_timestamp(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        if value.strip().isdigit():
            return int(value.strip())
        return parse_iso_timestamp(value)
    return None


def _first_str(record: dict, *keys: str) -> str | None:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str):
            return value
    return None


def record_to_line(record: dict) -> RawLogLine | None:
    """Map one exported event object to a RawLogLine. None when unusable."""
    message = record.get("message")
    if not isinstance(message, str):
        return None
    timestamp = _coerce_timestamp(record.get("timestamp"))
    if timestamp is None:
        return None
    return RawLogLine(
        timestamp=timestamp,
        message=message.rstrip("\n"),
        stream_id=_first_str(record, "logStreamName", "log_stream_name"),
        event_id=_first_str(record, "eventId", "event_id"),
    )


def iter_jsonl(lines: Iterable[str]) -> Iterator[RawLogLine]:
    for number, text in enumerate(lines, start=1):
        if not text.strip():
            continue
        try:
            record = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("skipping malformed JSON on line %d", number)
            continue
        line = record_to_line(record) if isinstance(record, dict) else None
        if line is None:
            logger.debug("skipping line %d: no usable timestamp/message", number)
            continue
        yield line


def iter_text(lines: Iterable[str], default_timestamp: int = 0) -> Iterator[RawLogLine]:
    timestamp = default_timestamp
    for text in lines:
        text = text.rstrip("\r\n")
        if not text.strip():
            continue
        m = _ISO_PREFIX_RE.match(text)
        if m is not None:
            parsed = parse_iso_timestamp(m.group(1))
            if parsed is not None:
                timestamp = parsed
                text = text[m.end():]
        yield RawLogLine(timestamp=timestamp, message=text)


def _iter_export_document(document) -> Iterator[RawLogLine]:
    records = document.get("events") if isinstance(document, dict) else document
    if not isinstance(records, list):
        return
    for record in records:
        line = record_to_line(record) if isinstance(record, dict) else None
        if line is not None:
            yield line


def read_log_file(path: str | Path) -> list[RawLogLine]:
    """Read every event in path, in file order.

    Raises OSError when the file can't be read.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    with path.open(encoding="utf-8", errors="replace") as f:
        if suffix in JSONL_SUFFIXES:
            result = list(iter_jsonl(f))
        elif suffix == ".json":
            try:
                document = json.load(f)
            except json.JSONDecodeError:
                # Not a single document; try it as JSON Lines
                f.seek(0)
                result = list(iter_jsonl(f))
            else:
                result = list(_iter_export_document(document))
        else:
            mtime_ms = int(path.stat().st_mtime * 1000)
            result = list(iter_text(f, default_timestamp=mtime_ms))
    logger.info("read %d events from %s", len(result), path)
    return result
