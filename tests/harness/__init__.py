"""Textual in-process test harness for logdeck.

Re-exports all public API for convenient imports:
    from tests.harness import run_app, press_and_settle, list_text, ...
"""

from tests.harness.app_runner import run_app
from tests.harness.interactions import (
    press_and_settle,
    press_sequence,
    click_and_settle,
    type_text,
)
from tests.harness.content import (
    strips_to_text,
    list_lines,
    list_text,
    widget_text,
)
from tests.harness.builders import (
    make_log,
    make_logs,
    raw_line,
    invocation_lines,
    store_with,
)

__all__ = [
    "run_app",
    "press_and_settle",
    "press_sequence",
    "click_and_settle",
    "type_text",
    "strips_to_text",
    "list_lines",
    "list_text",
    "widget_text",
    "make_log",
    "make_logs",
    "raw_line",
    "invocation_lines",
    "store_with",
]
