"""Diagnostics logging for a logdeck viewing session.

logdeck's own log lands in one file per viewed source: browsing
``/var/log/app/handler.jsonl`` appends to ``<log dir>/handler.jsonl-<hash>.log``
where the hash tells apart equally named files from different directories.
Reopening the same source continues the same file, and every record is
stamped with the source it was written for.

// [LAW:single-enforcer] Handlers for the "logdeck" logger are attached here only.
// [LAW:one-source-of-truth] The diagnostics path for a source is derived by diagnostics_path().
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path


LOGGER_NAME = "logdeck"

DEFAULT_LOG_DIR = "~/.local/share/logdeck/logs"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(source)s] %(name)s: %(message)s"
TERMINAL_FORMAT = "logdeck: %(levelname)s %(message)s"


@dataclass(frozen=True)
class LoggingRuntime:
    """What configure() settled on for this process."""

    source: str
    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def _parse_level(raw: str) -> tuple[str, int]:
    normalized = str(raw or "INFO").strip().upper()
    level = logging.getLevelName(normalized)
    if not isinstance(level, int):
        level = logging.INFO
    return logging.getLevelName(level), level


def _file_stem(source: Path) -> str:
    name = "".join(ch if ch.isalnum() or ch in "-_." else "-" for ch in source.name)
    return name.strip("-_.") or "stdin"


def diagnostics_path(source: str | os.PathLike, log_dir: str | os.PathLike | None = None) -> Path:
    """Where logdeck writes its own log while viewing source."""
    source_path = Path(source).expanduser().absolute()
    digest = hashlib.sha1(str(source_path.parent).encode("utf-8")).hexdigest()[:8]
    directory = Path(log_dir or os.environ.get("LOGDECK_LOG_DIR") or DEFAULT_LOG_DIR).expanduser()
    return directory / "{}-{}.log".format(_file_stem(source_path), digest)


class _SourceStamp(logging.Filter):
    """Adds record.source so file lines say which log was being browsed."""

    def __init__(self, source: str):
        super().__init__()
        self.source = source

    def filter(self, record: logging.LogRecord) -> bool:
        record.source = self.source
        return True


def _terminal_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    # The TUI owns the screen; only problems reach stderr
    handler.setLevel(max(level, logging.WARNING))
    handler.setFormatter(logging.Formatter(TERMINAL_FORMAT))
    return handler


def _session_file_handler(level: int, file_path: Path, source: str) -> logging.Handler:
    handler = RotatingFileHandler(file_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.addFilter(_SourceStamp(source))
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    return handler


def configure(source: str | os.PathLike = "-") -> LoggingRuntime:
    """Attach logdeck's handlers for a session viewing source.

    The first call wins; later calls return the same runtime. LOGDECK_LOG_FILE
    overrides the derived path and LOGDECK_LOG_LEVEL the INFO default.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level_name, level = _parse_level(os.environ.get("LOGDECK_LOG_LEVEL", "INFO"))
    override = os.environ.get("LOGDECK_LOG_FILE")
    file_path = Path(override) if override else diagnostics_path(source)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    source_label = os.fspath(source)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()
    logger.addHandler(_terminal_handler(level))
    logger.addHandler(_session_file_handler(level, file_path, source_label))

    _RUNTIME = LoggingRuntime(
        source=source_label,
        level_name=level_name,
        level=level,
        file_path=str(file_path),
    )
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    return _RUNTIME


def reset() -> None:
    """Detach and close handlers and forget the runtime. Tests only."""
    global _RUNTIME
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    _RUNTIME = None
