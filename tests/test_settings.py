"""Tests for logdeck.io.settings."""

import json
import logging

import pytest

from logdeck.core.events import DEFAULT_LOG_LEVELS
from logdeck.core.grouping import GroupMode
from logdeck.core.navigation import DRAG_THRESHOLD, RowHeights
from logdeck.io.settings import get_config_path, load_settings, viewer_settings


def test_config_path_follows_xdg(tmp_path):
    assert get_config_path() == tmp_path / "config" / "logdeck" / "settings.json"


def test_missing_file_is_empty():
    assert load_settings() == {}


def test_corrupt_file_logs_warning(settings_file, caplog):
    settings_file.write_text("{nope", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="logdeck.io.settings"):
        assert load_settings() == {}
    assert any("ignoring unreadable settings" in r.getMessage() for r in caplog.records)


def test_non_object_file_is_empty(settings_file):
    settings_file.write_text("[1, 2]", encoding="utf-8")
    assert load_settings() == {}


def test_defaults_without_file():
    settings = viewer_settings()
    assert settings.log_levels is DEFAULT_LOG_LEVELS
    assert settings.group_by is GroupMode.NONE
    assert settings.detail_height == RowHeights().detail
    assert settings.drag_threshold == DRAG_THRESHOLD


def test_values_read_from_file(settings_file):
    settings_file.write_text(
        json.dumps(
            {
                "group_by": "invocation",
                "detail_height": 20,
                "drag_threshold": 2,
                "log_levels": [{"id": "fatal", "keywords": ["fatal"], "priority": 0}],
            }
        ),
        encoding="utf-8",
    )
    settings = viewer_settings()
    assert settings.group_by is GroupMode.INVOCATION
    assert settings.row_heights == RowHeights(detail=20)
    assert settings.drag_threshold == 2.0
    assert [level.id for level in settings.log_levels] == ["fatal"]


@pytest.mark.parametrize(
    "data",
    [
        pytest.param({"group_by": "weekly"}, id="unknown-mode"),
        pytest.param({"detail_height": 0}, id="zero-height"),
        pytest.param({"detail_height": True}, id="bool-height"),
        pytest.param({"drag_threshold": -1}, id="negative-threshold"),
        pytest.param({"drag_threshold": "far"}, id="string-threshold"),
    ],
)
def test_bad_values_fall_back(data):
    settings = viewer_settings(data)
    assert settings.group_by is GroupMode.NONE
    assert settings.detail_height == RowHeights().detail
    assert settings.drag_threshold == DRAG_THRESHOLD
