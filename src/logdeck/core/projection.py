"""Display projection: the flat row list a virtualized viewport renders.

compute_display_items() turns (filtered logs, grouping mode, collapsed set,
sections, disabled levels, optional group-filter text) into a Projection:

- items: HeaderItem / LogItem sequence, position-for-position the viewport rows
  (before the expanded detail row is spliced in, see core.navigation).
- a log_index per LogItem. Real indices point into the filtered sequence.
  Members rescued by group-filter mode get synthetic, strictly negative,
  per-call unique indices resolved through a side lookup.

Every index stored in selection state is a log_index from this space, so it
stays meaningful across grouped / ungrouped toggles as long as it is
re-resolved through the current Projection.

// [LAW:dataflow-not-control-flow] compute_display_items() is pure.
// [LAW:one-source-of-truth] Projection is the single row/index authority for
// viewport, navigation, drag selection and find.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import AbstractSet, Iterator, Mapping, Sequence, Union

from logdeck.core.events import LogEvent
from logdeck.core.grouping import GroupMode, GroupSection


# ─── Items ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HeaderItem:
    group: GroupSection
    collapsed: bool = False


@dataclass(frozen=True)
class LogItem:
    log: LogEvent
    log_index: int
    group_id: str | None = None

    @property
    def synthetic(self) -> bool:
        return self.log_index < 0


DisplayItem = Union[HeaderItem, LogItem]


@dataclass(frozen=True, eq=False)
class Projection:
    """Result of one projection call. Never persisted across calls."""

    items: tuple[DisplayItem, ...]
    filtered_logs: Sequence[LogEvent] = field(repr=False)
    synthetic: Mapping[int, LogEvent] = field(default_factory=dict, repr=False)
    # group id -> its visible member items, for every emitted header
    group_members: Mapping[str, tuple[LogItem, ...]] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[DisplayItem]:
        return iter(self.items)

    def resolve(self, log_index: int) -> LogEvent | None:
        """Event behind a real or synthetic index; None when unknown."""
        if log_index < 0:
            return self.synthetic.get(log_index)
        if log_index < len(self.filtered_logs):
            return self.filtered_logs[log_index]
        return None

    @cached_property
    def _positions(self) -> dict[int, int]:
        return {
            item.log_index: position
            for position, item in enumerate(self.items)
            if isinstance(item, LogItem)
        }

    def position_of(self, log_index: int) -> int | None:
        """Display position of the row carrying log_index, if it is projected."""
        return self._positions.get(log_index)

    @cached_property
    def log_order(self) -> tuple[int, ...]:
        """log_index of every LogItem, in display order."""
        return tuple(item.log_index for item in self.items if isinstance(item, LogItem))

    def log_index_at(self, position: int) -> int | None:
        if 0 <= position < len(self.items):
            item = self.items[position]
            if isinstance(item, LogItem):
                return item.log_index
        return None


# ─── Group helpers ───────────────────────────────────────────────────────────


def group_matches_text(
    group: GroupSection,
    text: str,
    filtered_members: AbstractSet[int] = frozenset(),
) -> bool:
    """Group-survives predicate: any member matches the raw text.

    Members already admitted by the active filter (by seq, in
    filtered_members) also count, which covers field:value filter text.
    """
    needle = text.lower()
    return any(
        needle in log.message.lower() or log.seq in filtered_members
        for log in group.logs
    )


def visible_count(projection: Projection, group: GroupSection) -> int:
    return len(projection.group_members.get(group.id, ()))


def visible_messages(projection: Projection, group: GroupSection) -> str:
    """Newline-joined text of the group's projected members."""
    return "\n".join(item.log.message for item in projection.group_members.get(group.id, ()))


# ─── Projection ──────────────────────────────────────────────────────────────


def _level_passes(log: LogEvent, disabled_levels: AbstractSet[str] | None) -> bool:
    return not disabled_levels or log.level not in disabled_levels


def compute_display_items(
    filtered_logs: Sequence[LogEvent],
    mode: GroupMode,
    collapsed_groups: AbstractSet[str],
    groups: Sequence[GroupSection],
    disabled_levels: AbstractSet[str] | None = None,
    group_filter_text: str | None = None,
) -> Projection:
    """Project logs and sections into display rows.

    Ungrouped: one LogItem per filtered log, log_index = position.
    Grouped: per section in order, a header then its visible members unless
    collapsed; sections with no visible member are omitted entirely.
    With group_filter_text, a section survives when any member matches the
    text, and every level-passing member is shown.
    """
    if mode == GroupMode.NONE:
        return Projection(
            items=tuple(LogItem(log, index) for index, log in enumerate(filtered_logs)),
            filtered_logs=filtered_logs,
        )

    # Identity membership: seq is unique per ingested event
    index_by_seq = {log.seq: index for index, log in enumerate(filtered_logs)}
    rescue_text = group_filter_text if group_filter_text and group_filter_text.strip() else None

    items: list[DisplayItem] = []
    synthetic: dict[int, LogEvent] = {}
    group_members: dict[str, tuple[LogItem, ...]] = {}
    next_synthetic = -1

    for group in groups:
        members: list[LogItem] = []
        if rescue_text is None:
            for log in group.logs:
                if not _level_passes(log, disabled_levels):
                    continue
                index = index_by_seq.get(log.seq)
                if index is not None:
                    members.append(LogItem(log, index, group.id))
        elif group_matches_text(group, rescue_text, index_by_seq.keys()):
            for log in group.logs:
                if not _level_passes(log, disabled_levels):
                    continue
                index = index_by_seq.get(log.seq)
                if index is None:
                    index = next_synthetic
                    next_synthetic -= 1
                    synthetic[index] = log
                members.append(LogItem(log, index, group.id))

        if not members:
            continue

        collapsed = group.id in collapsed_groups
        items.append(HeaderItem(group, collapsed))
        group_members[group.id] = tuple(members)
        if not collapsed:
            items.extend(members)

    return Projection(
        items=tuple(items),
        filtered_logs=filtered_logs,
        synthetic=synthetic,
        group_members=group_members,
    )
