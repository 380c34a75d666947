"""CLI entry point for logdeck."""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console

from logdeck.app.log_store import LogStore
from logdeck.core.grouping import GroupMode
from logdeck.core.projection import HeaderItem, visible_count
from logdeck.io.log_source import read_log_file
from logdeck.io.settings import ViewerSettings, viewer_settings
from logdeck.tui.app import LogDeckApp

import logdeck.io.logging_setup
import logdeck.tui.rendering

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logdeck",
        description="Browse, group and search a log file in the terminal",
    )
    parser.add_argument("path", help="Log file: JSON Lines, a CloudWatch JSON export, or plain text")
    parser.add_argument(
        "--group-by",
        choices=[mode.value for mode in GroupMode],
        default=None,
        help="Grouping mode (default: settings file, else none)",
    )
    parser.add_argument("--filter", default="", metavar="TEXT", help="Initial filter text (plain or field.path:value)")
    parser.add_argument(
        "--disable-level",
        action="append",
        default=[],
        metavar="LEVEL",
        help="Hide a level (repeatable), e.g. --disable-level debug",
    )
    parser.add_argument(
        "--group-filter",
        action="store_true",
        help="Keep whole groups visible when any member matches the filter",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the filtered, grouped rows to stdout and exit",
    )
    return parser


def build_store(args: argparse.Namespace, settings: ViewerSettings) -> LogStore:
    """Load the file named by args into a configured store.

    Raises OSError when the file can't be read.
    """
    store = LogStore(levels=settings.log_levels)
    store.set_logs(read_log_file(args.path))
    store.set_group_mode(GroupMode(args.group_by) if args.group_by else settings.group_by)
    store.set_disabled_levels(args.disable_level)
    store.set_filter_text(args.filter)
    store.set_group_filter(args.group_filter)
    return store


def dump(store: LogStore, console: Console) -> None:
    """Non-interactive rendering of the current projection."""
    rendering = logdeck.tui.rendering
    projection = store.projection
    for item in projection:
        if isinstance(item, HeaderItem):
            console.print(rendering.render_header_row(item, visible_count(projection, item.group)))
        else:
            console.print(rendering.render_log_row(item))
    console.print(
        "{} of {} logs".format(len(store.filtered_logs), len(store.logs)),
        style="dim",
        highlight=False,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    runtime = logdeck.io.logging_setup.configure(args.path)
    logger.info("logdeck starting: path=%s log=%s", args.path, runtime.file_path)

    settings = viewer_settings()
    try:
        store = build_store(args, settings)
    except OSError as exc:
        logger.error("cannot read %s: %s", args.path, exc)
        print("logdeck: cannot read {}: {}".format(args.path, exc.strerror or exc), file=sys.stderr)
        return 1

    if args.dump:
        dump(store, Console(highlight=False))
        return 0

    LogDeckApp(store, settings, source_name=args.path).run()
    return 0
