"""Group an ordered log sequence into sections.

Two groupers, both pure functions over an ordered list of LogEvents:

- group_logs_by_stream: one section per stream identity.
- group_logs_by_invocation: reconstructs serverless invocation lifecycles
  from START / END / REPORT marker lines, splits cold-start init windows into
  their own sections and collects everything else into one orphan section.

Sections are recomputed wholesale whenever the log set or the grouping mode
changes; nothing here is patched incrementally.

// [LAW:dataflow-not-control-flow] Groupers are pure: logs in, sections out.
// [LAW:one-source-of-truth] Marker patterns live here and nowhere else.
// [LAW:no-shared-mutable-globals] Per-stream scan state is owned by one call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from logdeck.core.events import ERROR_LEVEL, LogEvent


UNKNOWN_STREAM = "(unknown stream)"
ORPHAN_GROUP_ID = "ungrouped"
ORPHAN_GROUP_LABEL = "Ungrouped logs"
INIT_GROUP_LABEL = "Init (cold start)"


class GroupMode(str, Enum):
    NONE = "none"
    STREAM = "stream"
    INVOCATION = "invocation"


class GroupKind(Enum):
    STREAM = "stream"
    INVOCATION = "invocation"
    INIT = "init"
    ORPHAN = "orphan"


# ─── Data model ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GroupMetadata:
    """Derived facts about a section's members.

    first_timestamp / last_timestamp are min / max over members, not the
    first and last element: members may arrive out of time order.
    Invocation fields stay None when no REPORT line was seen.
    """

    log_count: int
    has_error: bool
    first_timestamp: int
    last_timestamp: int
    # Invocation
    request_id: str | None = None
    duration: float | None = None
    billed_duration: int | None = None
    memory_used: int | None = None
    memory_allocated: int | None = None
    in_progress: bool | None = None
    # Cold start
    init_duration: float | None = None


@dataclass(frozen=True, eq=False)
class GroupSection:
    id: str
    label: str
    kind: GroupKind
    logs: tuple[LogEvent, ...] = field(repr=False)
    metadata: GroupMetadata


def _timestamp_range(logs: Sequence[LogEvent]) -> tuple[int, int]:
    if not logs:
        return 0, 0
    first = last = logs[0].timestamp
    for log in logs[1:]:
        if log.timestamp < first:
            first = log.timestamp
        if log.timestamp > last:
            last = log.timestamp
    return first, last


def _base_metadata(logs: Sequence[LogEvent], **extra) -> GroupMetadata:
    first, last = _timestamp_range(logs)
    return GroupMetadata(
        log_count=len(logs),
        has_error=any(log.level == ERROR_LEVEL for log in logs),
        first_timestamp=first,
        last_timestamp=last,
        **extra,
    )


def _chronological(groups: list[GroupSection]) -> list[GroupSection]:
    # sort() is stable: ties keep first-seen insertion order
    groups.sort(key=lambda g: g.metadata.first_timestamp)
    return groups


# ─── Stream grouping ─────────────────────────────────────────────────────────


def group_logs_by_stream(logs: Sequence[LogEvent]) -> list[GroupSection]:
    """Partition logs by stream identity, oldest activity first.

    A missing stream identity collapses into a single "(unknown stream)" bucket.
    Each section keeps its members' original relative order.
    """
    buckets: dict[str, list[LogEvent]] = {}
    for log in logs:
        stream = log.stream_id if log.stream_id is not None else UNKNOWN_STREAM
        buckets.setdefault(stream, []).append(log)

    groups = [
        GroupSection(
            id=stream,
            label=stream,
            kind=GroupKind.STREAM,
            logs=tuple(members),
            metadata=_base_metadata(members),
        )
        for stream, members in buckets.items()
    ]
    return _chronological(groups)


# ─── Invocation grouping ─────────────────────────────────────────────────────

START_RE = re.compile(r"^START RequestId: ([\w-]+)")
END_RE = re.compile(r"^END RequestId: ([\w-]+)")
REPORT_RE = re.compile(
    r"^REPORT RequestId: ([\w-]+)\t"
    r"Duration: ([\d.]+) ms\t"
    r"Billed Duration: (\d+) ms\t"
    r"Memory Size: (\d+) MB\t"
    r"Max Memory Used: (\d+) MB"
)
INIT_REPORT_RE = re.compile(r"^INIT_REPORT Init Duration: ([\d.]+) ms")

# Lines starting with these prefixes belong to runtime / extension init
INIT_PREFIXES: tuple[str, ...] = ("EXTENSION", "[AWS")

_LEADING_FLOAT_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass(frozen=True)
class InvocationReport:
    request_id: str
    duration: float | None
    billed_duration: int
    memory_allocated: int
    memory_used: int


def parse_report_line(message: str) -> InvocationReport | None:
    """Parse a REPORT line. Returns None for anything that doesn't match."""
    m = REPORT_RE.match(message)
    if m is None:
        return None
    return InvocationReport(
        request_id=m.group(1),
        duration=parse_leading_float(m.group(2)),
        billed_duration=int(m.group(3)),
        memory_allocated=int(m.group(4)),
        memory_used=int(m.group(5)),
    )


def parse_leading_float(text: str) -> float | None:
    """Longest numeric prefix of text: "1.2.3" -> 1.2. None when there is none."""
    m = _LEADING_FLOAT_RE.match(text)
    return float(m.group(0)) if m is not None else None


def is_init_log(message: str) -> bool:
    return bool(INIT_REPORT_RE.match(message)) or message.startswith(INIT_PREFIXES)


def parse_init_duration(logs: Sequence[LogEvent]) -> float | None:
    """First INIT_REPORT duration among logs, if any."""
    for log in logs:
        m = INIT_REPORT_RE.match(log.message)
        if m is None:
            continue
        duration = parse_leading_float(m.group(1))
        if duration is not None:
            return duration
    return None


@dataclass
class _StreamScan:
    """Scan state for one stream identity, local to one grouping pass."""

    active_request_id: str | None = None
    pending_init: list[LogEvent] = field(default_factory=list)


@dataclass
class _InvocationScan:
    """Accumulators for one grouping pass."""

    invocations: dict[str, list[LogEvent]] = field(default_factory=dict)
    reports: dict[str, InvocationReport] = field(default_factory=dict)
    completed: set[str] = field(default_factory=set)
    init_windows: list[list[LogEvent]] = field(default_factory=list)
    orphans: list[LogEvent] = field(default_factory=list)
    streams: dict[str, _StreamScan] = field(default_factory=dict)

    def stream(self, log: LogEvent) -> _StreamScan:
        key = log.stream_id if log.stream_id is not None else ""
        scan = self.streams.get(key)
        if scan is None:
            scan = _StreamScan()
            self.streams[key] = scan
        return scan

    def flush_pending(self, scan: _StreamScan) -> None:
        """Emit buffered lines as a cold-start window, or demote them to orphans."""
        pending = scan.pending_init
        if not pending:
            return
        if any(is_init_log(log.message) for log in pending):
            self.init_windows.append(list(pending))
        else:
            self.orphans.extend(pending)
        pending.clear()

    def close(self, request_id: str, log: LogEvent, scan: _StreamScan) -> None:
        self.completed.add(request_id)
        bucket = self.invocations.get(request_id)
        if bucket is not None:
            bucket.append(log)
        scan.active_request_id = None

    def feed(self, log: LogEvent) -> None:
        scan = self.stream(log)
        message = log.message

        start = START_RE.match(message)
        if start is not None:
            self.flush_pending(scan)
            request_id = start.group(1)
            scan.active_request_id = request_id
            self.invocations.setdefault(request_id, []).append(log)
            return

        end = END_RE.match(message)
        if end is not None:
            self.close(end.group(1), log, scan)
            return

        report = parse_report_line(message)
        if report is not None:
            self.reports[report.request_id] = report
            self.close(report.request_id, log, scan)
            return

        active = scan.active_request_id
        if active is not None and active in self.invocations:
            self.invocations[active].append(log)
        else:
            scan.pending_init.append(log)


def _init_group_id(first_timestamp: int, taken: set[str]) -> str:
    candidate = f"init-{first_timestamp}"
    suffix = 1
    while candidate in taken:
        suffix += 1
        candidate = f"init-{first_timestamp}-{suffix}"
    return candidate


def group_logs_by_invocation(logs: Sequence[LogEvent]) -> list[GroupSection]:
    """Reconstruct invocation lifecycles in a single ordered pass.

    Marker priority per line: START > END > REPORT > plain line. A malformed
    REPORT line is a plain line. END / REPORT lines naming a request with no
    open bucket mark it completed but belong to no section.
    """
    scan = _InvocationScan()
    for log in logs:
        scan.feed(log)

    # Init window with no later invocation on its stream
    for stream_scan in scan.streams.values():
        scan.flush_pending(stream_scan)

    groups: list[GroupSection] = []

    for request_id, members in scan.invocations.items():
        report = scan.reports.get(request_id)
        groups.append(
            GroupSection(
                id=request_id,
                label=request_id,
                kind=GroupKind.INVOCATION,
                logs=tuple(members),
                metadata=_base_metadata(
                    members,
                    request_id=request_id,
                    duration=report.duration if report else None,
                    billed_duration=report.billed_duration if report else None,
                    memory_used=report.memory_used if report else None,
                    memory_allocated=report.memory_allocated if report else None,
                    in_progress=request_id not in scan.completed,
                ),
            )
        )

    taken = set(scan.invocations)
    for window in scan.init_windows:
        metadata = _base_metadata(window, init_duration=parse_init_duration(window))
        group_id = _init_group_id(metadata.first_timestamp, taken)
        taken.add(group_id)
        groups.append(
            GroupSection(
                id=group_id,
                label=INIT_GROUP_LABEL,
                kind=GroupKind.INIT,
                logs=tuple(window),
                metadata=metadata,
            )
        )

    if scan.orphans:
        groups.append(
            GroupSection(
                id=ORPHAN_GROUP_ID,
                label=ORPHAN_GROUP_LABEL,
                kind=GroupKind.ORPHAN,
                logs=tuple(scan.orphans),
                metadata=_base_metadata(scan.orphans),
            )
        )

    return _chronological(groups)


def group_logs(logs: Sequence[LogEvent], mode: GroupMode) -> list[GroupSection]:
    """Sections for a grouping mode. Always computed from the unfiltered logs
    so filters never break invocation boundaries."""
    if mode == GroupMode.INVOCATION:
        return group_logs_by_invocation(logs)
    if mode == GroupMode.STREAM:
        return group_logs_by_stream(logs)
    return []
