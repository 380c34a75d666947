"""Shared builders for log fixtures."""

from typing import Iterable

from logdeck.app.log_store import LogStore
from logdeck.core.events import LogEvent, RawLogLine, make_event

BASE_TS = 1_700_000_000_000

REPORT_TEMPLATE = (
    "REPORT RequestId: {rid}\tDuration: {duration} ms\tBilled Duration: {billed} ms\t"
    "Memory Size: {size} MB\tMax Memory Used: {used} MB"
)


def make_log(seq: int, message: str, *, ts: int | None = None, stream: str | None = None) -> LogEvent:
    """One classified LogEvent. Timestamps default to BASE_TS + seq seconds."""
    return make_event(seq, BASE_TS + seq * 1000 if ts is None else ts, message, stream_id=stream)


def make_logs(*messages: str, stream: str | None = None, start: int = 0) -> list[LogEvent]:
    return [make_log(start + i, m, stream=stream) for i, m in enumerate(messages)]


def raw_line(message: str, offset_s: int = 0, stream: str | None = None) -> RawLogLine:
    return RawLogLine(timestamp=BASE_TS + offset_s * 1000, message=message, stream_id=stream)


def invocation_lines(
    rid: str,
    *body: str,
    report: bool = True,
    duration: str = "45.67",
    billed: int = 46,
    size: int = 128,
    used: int = 64,
) -> list[str]:
    """START, body lines, END and (optionally) REPORT for one request."""
    lines = ["START RequestId: {} Version: $LATEST".format(rid), *body, "END RequestId: {}".format(rid)]
    if report:
        lines.append(REPORT_TEMPLATE.format(rid=rid, duration=duration, billed=billed, size=size, used=used))
    return lines


def store_with(messages: Iterable[str], stream: str | None = None) -> LogStore:
    store = LogStore()
    store.set_logs(raw_line(m, i, stream) for i, m in enumerate(messages))
    return store
