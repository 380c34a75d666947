"""Unit tests for logdeck.core.projection."""

import pytest

from logdeck.core.filtering import filter_logs
from logdeck.core.grouping import GroupMode, group_logs
from logdeck.core.projection import (
    HeaderItem,
    LogItem,
    compute_display_items,
    group_matches_text,
    visible_count,
    visible_messages,
)
from tests.harness.builders import invocation_lines, make_logs


def _project(logs, mode=GroupMode.INVOCATION, collapsed=frozenset(), text="", disabled=frozenset(), group_filter=False):
    filtered = filter_logs(logs, text, disabled)
    groups = group_logs(logs, mode)
    return compute_display_items(
        filtered,
        mode,
        collapsed,
        groups,
        disabled,
        text if group_filter else None,
    )


def _two_invocations():
    return make_logs(
        *invocation_lines("r1", "alpha work", "ERROR alpha failed"),
        *invocation_lines("r2", "beta work"),
        stream="s1",
    )


def _shape(projection):
    return ["H:" + item.group.id if isinstance(item, HeaderItem) else item.log.message for item in projection]


# ─── Ungrouped ───────────────────────────────────────────────────────────────


def test_ungrouped_is_filtered_sequence_in_order():
    logs = make_logs("a", "b", "c")
    projection = _project(logs, GroupMode.NONE)
    assert [item.log_index for item in projection] == [0, 1, 2]
    assert [item.log for item in projection] == logs
    assert all(item.group_id is None for item in projection)


def test_ungrouped_indices_are_filtered_positions():
    logs = make_logs("keep 1", "drop", "keep 2")
    projection = _project(logs, GroupMode.NONE, text="keep")
    assert [item.log_index for item in projection] == [0, 1]
    assert projection.resolve(1) is logs[2]


def test_empty_log_set_projects_nothing():
    for mode in GroupMode:
        projection = _project([], mode)
        assert len(projection) == 0
        assert projection.log_order == ()


# ─── Grouped ─────────────────────────────────────────────────────────────────


def test_grouped_emits_header_then_members():
    projection = _project(_two_invocations())
    shape = _shape(projection)
    assert shape[0] == "H:r1"
    assert shape[1].startswith("START RequestId: r1")
    assert shape.index("H:r2") == 1 + 5
    assert all(item.group_id == "r1" for item in projection.items[1:6])


def test_collapsed_group_shows_header_only():
    projection = _project(_two_invocations(), collapsed=frozenset({"r1"}))
    assert _shape(projection)[:2] == ["H:r1", "H:r2"]
    header = projection.items[0]
    assert header.collapsed is True
    # Hidden members still count toward the header
    assert visible_count(projection, header.group) == 5


def test_group_with_no_visible_member_is_omitted():
    projection = _project(_two_invocations(), text="beta")
    assert _shape(projection) == ["H:r2", "beta work"]


def test_level_filter_hides_members_but_keeps_header():
    logs = _two_invocations()
    projection = _project(logs, disabled=frozenset({"error"}))
    assert "ERROR alpha failed" not in _shape(projection)
    assert "H:r1" in _shape(projection)


def test_level_filter_removes_group_when_all_members_hidden():
    logs = make_logs("ERROR one", "ERROR two", stream="only")
    projection = _project(logs, GroupMode.STREAM, disabled=frozenset({"error"}))
    assert len(projection) == 0


def test_grouped_real_indices_resolve_to_filtered_logs():
    logs = _two_invocations()
    projection = _project(logs)
    for item in projection:
        if isinstance(item, LogItem):
            assert item.log_index >= 0
            assert projection.resolve(item.log_index) is item.log


def test_position_of_and_log_index_at_round_trip():
    projection = _project(_two_invocations())
    for index in projection.log_order:
        position = projection.position_of(index)
        assert projection.log_index_at(position) == index
    assert projection.log_index_at(0) is None  # header
    assert projection.log_index_at(999) is None
    assert projection.position_of(12345) is None


def test_visible_messages_joins_member_text():
    projection = _project(_two_invocations(), text="work")
    r1 = next(item.group for item in projection if isinstance(item, HeaderItem) and item.group.id == "r1")
    assert visible_messages(projection, r1) == "alpha work"


# ─── Group filter (whole-group rescue) ───────────────────────────────────────


def test_group_filter_shows_every_member_of_matching_group():
    logs = _two_invocations()
    projection = _project(logs, text="alpha failed", group_filter=True)
    shape = _shape(projection)
    assert shape[0] == "H:r1"
    assert len(shape) == 6
    assert "H:r2" not in shape


def test_rescued_members_get_unique_negative_indices():
    logs = _two_invocations()
    projection = _project(logs, text="alpha failed", group_filter=True)
    members = [item for item in projection if isinstance(item, LogItem)]
    synthetic = [item.log_index for item in members if item.synthetic]
    real = [item.log_index for item in members if not item.synthetic]

    assert len(synthetic) == 4
    assert all(index < 0 for index in synthetic)
    assert len(set(synthetic)) == len(synthetic)
    assert real == [0]
    for item in members:
        assert projection.resolve(item.log_index) is item.log


def test_synthetic_indices_restart_each_call():
    logs = _two_invocations()
    first = _project(logs, text="alpha failed", group_filter=True)
    second = _project(logs, text="alpha failed", group_filter=True)
    assert first.log_order == second.log_order
    assert min(first.log_order) == -4


def test_group_filter_respects_disabled_levels():
    logs = _two_invocations()
    projection = _project(logs, text="alpha", disabled=frozenset({"error"}), group_filter=True)
    assert "ERROR alpha failed" not in _shape(projection)


def test_group_filter_counts_field_filter_members():
    logs = make_logs('{"user": "ann"}', "other line", stream="s")
    filtered = filter_logs(logs, "user:ann")
    groups = group_logs(logs, GroupMode.STREAM)
    assert group_matches_text(groups[0], "user:ann", {log.seq for log in filtered})


def test_unknown_index_resolves_to_none():
    projection = _project(_two_invocations())
    assert projection.resolve(-1) is None
    assert projection.resolve(10_000) is None


@pytest.mark.parametrize("mode", [GroupMode.STREAM, GroupMode.INVOCATION])
def test_every_filtered_log_appears_at_most_once(mode):
    logs = _two_invocations()
    projection = _project(logs, mode)
    order = projection.log_order
    assert len(order) == len(set(order))
