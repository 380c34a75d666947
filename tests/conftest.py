"""Pytest configuration and shared fixtures for logdeck tests."""

from pathlib import Path

import pytest

import logdeck.io.logging_setup
from tests.harness.builders import BASE_TS, invocation_lines, raw_line


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep log files and settings reads inside tmp_path."""
    monkeypatch.setenv("LOGDECK_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("LOGDECK_LOG_FILE", raising=False)
    monkeypatch.delenv("LOGDECK_LOG_LEVEL", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    yield
    logdeck.io.logging_setup.reset()


@pytest.fixture
def settings_file(tmp_path) -> Path:
    """Path where logdeck.io.settings looks for settings.json."""
    path = tmp_path / "config" / "logdeck" / "settings.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------------
# Log fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def lambda_lines():
    """Raw lines for a cold start followed by two invocations on one stream."""
    messages = [
        "INIT_START Runtime Version: python:3.12.v1",
        "[AWS Parameters and Secrets Lambda Extension] started",
        "INIT_REPORT Init Duration: 231.55 ms",
        *invocation_lines("req-1", "handling order 17", "ERROR payment declined"),
        *invocation_lines("req-2", "handling order 18", duration="1250.00", billed=1251),
    ]
    return [raw_line(m, i, stream="2024/01/01/[$LATEST]abc") for i, m in enumerate(messages)]


@pytest.fixture
def jsonl_file(tmp_path) -> Path:
    path = tmp_path / "events.jsonl"
    path.write_text(
        "\n".join(
            [
                '{"timestamp": %d, "message": "START RequestId: r1 Version: 1", "logStreamName": "s1", "eventId": "e1"}' % BASE_TS,
                '{"timestamp": %d, "message": "{\\"level\\": \\"error\\", \\"msg\\": \\"boom\\"}", "logStreamName": "s1"}' % (BASE_TS + 1),
                "not json at all",
                '{"timestamp": %d, "message": "END RequestId: r1", "log_stream_name": "s1", "event_id": "e3"}' % (BASE_TS + 2),
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return path
