"""Unit tests for logdeck.core.events."""

import pytest

from logdeck.core.events import (
    DEFAULT_LOG_LEVELS,
    SYSTEM_LEVEL,
    UNKNOWN_LEVEL,
    LogLevelConfig,
    classify_level,
    format_full_timestamp,
    levels_from_settings,
    make_event,
    try_parse_payload,
)


# ─── Level classification ────────────────────────────────────────────────────


LEVEL_CASES = [
    pytest.param("START RequestId: abc Version: $LATEST", SYSTEM_LEVEL, id="start-marker"),
    pytest.param("REPORT RequestId: abc\tDuration: 1 ms", SYSTEM_LEVEL, id="report-marker"),
    pytest.param("INIT_START Runtime Version: x", SYSTEM_LEVEL, id="init-start"),
    pytest.param("ERROR something broke", "error", id="keyword-upper"),
    pytest.param("[warn] disk almost full", "warn", id="bracketed"),
    pytest.param("level:info ok", "info", id="colon-delimited"),
    pytest.param("(debug) tracing", "debug", id="paren-delimited"),
    pytest.param("terrorist attack simulation", UNKNOWN_LEVEL, id="keyword-inside-word"),
    pytest.param("informational", UNKNOWN_LEVEL, id="prefix-only"),
    pytest.param("", UNKNOWN_LEVEL, id="empty"),
]


@pytest.mark.parametrize("message, expected", LEVEL_CASES)
def test_classify_level_from_message(message, expected):
    assert classify_level(message, try_parse_payload(message)) == expected


def test_json_level_field_beats_message_keywords():
    message = '{"level": "WARNING", "msg": "error budget at 50%"}'
    assert classify_level(message, try_parse_payload(message)) == "warn"


def test_json_severity_field_variants():
    message = '{"Severity": "fatal", "msg": "x"}'
    assert classify_level(message, try_parse_payload(message)) == "error"


def test_unmatched_json_level_falls_through_to_keywords():
    message = '{"level": "notice", "msg": "[debug] dump"}'
    assert classify_level(message, try_parse_payload(message)) == "debug"


def test_priority_order_decides_between_levels():
    # Both "error" and "info" appear; error has the lower priority number
    assert classify_level("info: error while saving", None) == "error"


def test_custom_levels_respected():
    levels = (LogLevelConfig("notice", "Notice", ("notice",), 0),)
    assert classify_level("NOTICE: hello", None, levels) == "notice"
    assert classify_level("ERROR: hello", None, levels) == UNKNOWN_LEVEL


def test_levels_from_settings_parses_entries():
    levels = levels_from_settings(
        [
            {"id": "fatal", "keywords": ["fatal", "panic"], "priority": 0},
            {"id": "", "keywords": ["skipped"]},
            "not a dict",
            {"id": "chatty", "name": "Chatty", "keywords": "bad"},
        ]
    )
    assert [level.id for level in levels] == ["fatal", "chatty"]
    assert levels[0].keywords == ("fatal", "panic")
    assert levels[0].name == "Fatal"
    assert levels[1].keywords == ()


@pytest.mark.parametrize("raw", [None, {}, [], "error"])
def test_levels_from_settings_falls_back_to_defaults(raw):
    assert levels_from_settings(raw) is DEFAULT_LOG_LEVELS


# ─── Payload parsing ─────────────────────────────────────────────────────────


def test_try_parse_payload_objects_only():
    assert try_parse_payload('  {"a": 1}  ') == {"a": 1}
    assert try_parse_payload("[1, 2]") is None
    assert try_parse_payload("{not json}") is None
    assert try_parse_payload("plain text") is None


# ─── Entity ──────────────────────────────────────────────────────────────────


def test_events_with_identical_fields_are_distinct():
    a = make_event(0, 1000, "same")
    b = make_event(0, 1000, "same")
    assert a != b
    assert len({a, b}) == 2
    assert a == a


def test_make_event_fills_derived_fields():
    event = make_event(3, 1_700_000_000_123, '{"level": "error"}', stream_id="s", event_id="e")
    assert event.seq == 3
    assert event.level == "error"
    assert event.payload == {"level": "error"}
    assert event.stream_id == "s"
    assert event.event_id == "e"
    # 'Mon DD HH:MM:SS'
    assert len(event.formatted_time) == 15
    assert event.formatted_time[3] == " "


def test_full_timestamp_keeps_milliseconds():
    assert format_full_timestamp(1_700_000_000_007).endswith(".007")
