"""Settings file reads for logdeck.

Reads a JSON settings file at XDG_CONFIG_HOME/logdeck/settings.json. The
viewer never writes it; edit it by hand.

Recognized keys:
    log_levels      list of {id, name, keywords, priority}
    group_by        default grouping mode: none | stream | invocation
    detail_height   lines used by the expanded detail row
    drag_threshold  cells the pointer must travel before a drag selects
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from logdeck.core.events import DEFAULT_LOG_LEVELS, LogLevelConfig, levels_from_settings
from logdeck.core.grouping import GroupMode
from logdeck.core.navigation import DRAG_THRESHOLD, RowHeights

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / logdeck / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "logdeck" / "settings.json"


def load_settings(path: Path | None = None) -> dict:
    """Load settings from JSON file. Returns empty dict on missing/corrupt file."""
    path = path or get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("ignoring unreadable settings file %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _positive_int(value, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    return value


@dataclass(frozen=True)
class ViewerSettings:
    """Typed view of the settings file, defaults filled in."""

    log_levels: tuple[LogLevelConfig, ...] = DEFAULT_LOG_LEVELS
    group_by: GroupMode = GroupMode.NONE
    detail_height: int = RowHeights().detail
    drag_threshold: float = DRAG_THRESHOLD

    @property
    def row_heights(self) -> RowHeights:
        return RowHeights(detail=self.detail_height)


def viewer_settings(data: dict | None = None) -> ViewerSettings:
    """Build ViewerSettings from raw settings. Bad values fall back to defaults."""
    data = load_settings() if data is None else data
    try:
        group_by = GroupMode(data.get("group_by", GroupMode.NONE.value))
    except ValueError:
        group_by = GroupMode.NONE
    threshold = data.get("drag_threshold", DRAG_THRESHOLD)
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold < 0:
        threshold = DRAG_THRESHOLD
    return ViewerSettings(
        log_levels=levels_from_settings(data.get("log_levels")),
        group_by=group_by,
        detail_height=_positive_int(data.get("detail_height"), RowHeights().detail),
        drag_threshold=float(threshold),
    )
