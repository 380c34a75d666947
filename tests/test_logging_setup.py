"""Tests for logdeck.io.logging_setup."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

import logdeck.io.logging_setup as logging_setup


def _flush():
    for handler in logging.getLogger(logging_setup.LOGGER_NAME).handlers:
        handler.flush()


def test_log_file_is_named_after_the_source(tmp_path):
    runtime = logging_setup.configure(tmp_path / "app" / "handler.jsonl")
    path = Path(runtime.file_path)
    assert path.parent == tmp_path / "logs"
    assert path.name.startswith("handler.jsonl-")
    assert path.suffix == ".log"
    assert runtime.source == str(tmp_path / "app" / "handler.jsonl")


def test_records_are_stamped_with_the_source():
    runtime = logging_setup.configure("exports/today.json")
    logging.getLogger("logdeck.test").info("hello from test")
    _flush()
    text = Path(runtime.file_path).read_text(encoding="utf-8")
    assert "[exports/today.json] logdeck.test: hello from test" in text


def test_same_source_reuses_the_file(tmp_path):
    source = tmp_path / "a.log"
    first = logging_setup.configure(source).file_path
    logging.getLogger("logdeck.test").info("first session")
    logging_setup.reset()
    assert logging_setup.configure(source).file_path == first
    logging.getLogger("logdeck.test").info("second session")
    _flush()
    text = Path(first).read_text(encoding="utf-8")
    assert "first session" in text and "second session" in text


@pytest.mark.parametrize(
    "left, right, same",
    [
        pytest.param("/srv/a/app.log", "/srv/a/app.log", True, id="same-file"),
        pytest.param("/srv/a/app.log", "/srv/b/app.log", False, id="same-name-other-dir"),
        pytest.param("/srv/a/app.log", "/srv/a/web.log", False, id="same-dir-other-name"),
    ],
)
def test_diagnostics_path_identity(tmp_path, left, right, same):
    paths = {logging_setup.diagnostics_path(left, tmp_path), logging_setup.diagnostics_path(right, tmp_path)}
    assert (len(paths) == 1) is same


@pytest.mark.parametrize(
    "source, prefix",
    [
        pytest.param("/tmp/my source?.log", "my-source-.log-", id="unsafe-chars"),
        pytest.param("-", "stdin-", id="dash"),
    ],
)
def test_diagnostics_path_sanitizes_name(tmp_path, source, prefix):
    path = logging_setup.diagnostics_path(source, tmp_path)
    assert path.parent == tmp_path
    assert path.name.startswith(prefix)


def test_configure_is_idempotent():
    first = logging_setup.configure("one.log")
    assert logging_setup.configure("other.log") is first
    assert logging_setup.get_runtime() is first
    assert len(logging.getLogger(logging_setup.LOGGER_NAME).handlers) == 2


def test_environment_overrides(tmp_path, monkeypatch):
    target = tmp_path / "custom" / "deck.log"
    monkeypatch.setenv("LOGDECK_LOG_FILE", str(target))
    monkeypatch.setenv("LOGDECK_LOG_LEVEL", "debug")
    runtime = logging_setup.configure("ignored.log")
    assert runtime.file_path == str(target)
    assert runtime.level == logging.DEBUG
    assert runtime.level_name == "DEBUG"
    assert target.parent.is_dir()


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOGDECK_LOG_LEVEL", "chatty")
    runtime = logging_setup.configure()
    assert runtime.level == logging.INFO
    assert runtime.level_name == "INFO"


def test_handlers_split_by_level(monkeypatch):
    monkeypatch.setenv("LOGDECK_LOG_LEVEL", "DEBUG")
    logging_setup.configure()
    handlers = logging.getLogger(logging_setup.LOGGER_NAME).handlers
    file_handler = next(h for h in handlers if isinstance(h, RotatingFileHandler))
    stream_handler = next(h for h in handlers if not isinstance(h, RotatingFileHandler))
    assert file_handler.level == logging.DEBUG
    # The terminal belongs to the TUI
    assert stream_handler.level == logging.WARNING


def test_reset_forgets_runtime():
    logging_setup.configure()
    logging_setup.reset()
    assert logging_setup.get_runtime() is None
    assert logging.getLogger(logging_setup.LOGGER_NAME).handlers == []
