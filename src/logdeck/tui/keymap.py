"""Pure mode system for key dispatch.

All keyboard input routes through LogDeckApp.on_key based on current mode.
Textual BINDINGS are not used - on_key is the sole dispatcher.
"""

from enum import Enum, auto


class InputMode(Enum):
    """Input modes derived from app state.

    FILTER_EDIT and FIND_EDIT consume printable keys as text; the keymap
    only names the keys that leave or steer those modes.
    """
    NORMAL = auto()
    FILTER_EDIT = auto()
    FIND_EDIT = auto()
    CONTEXT_MENU = auto()


# Keys handed to the navigation engine unchanged
NAVIGATION_KEYS = frozenset({
    "down", "up", "pagedown", "pageup", "home", "end",
    "space", "enter", "escape", "ctrl+c", "ctrl+a",
})


# [LAW:one-source-of-truth] Key→action mapping per mode.
MODE_KEYMAP: dict[InputMode, dict[str, str]] = {
    InputMode.NORMAL: {
        # Vim-style aliases for the navigation engine
        "j": "navigate('down')",
        "k": "navigate('up')",
        "g": "navigate('home')",
        "G": "navigate('end')",

        # Filtering
        "slash": "start_filter",
        "/": "start_filter",
        "1": "toggle_level(0)",
        "2": "toggle_level(1)",
        "3": "toggle_level(2)",
        "4": "toggle_level(3)",
        "s": "filter_by_selection",
        "r": "quick_filter('requestId')",
        "t": "quick_filter('traceId')",
        "i": "quick_filter('clientIp')",
        "x": "clear_filter",

        # Grouping
        "m": "cycle_group_mode",
        "o": "toggle_group_filter",
        "z": "collapse_all",
        "Z": "expand_all",
        "y": "copy_group",

        # Find
        "ctrl+f": "open_find",
        "f": "open_find",

        # Menu
        "M": "open_context_menu",
        "q": "quit",
    },
    InputMode.FILTER_EDIT: {
        "enter": "end_filter",
        "escape": "end_filter",
        "backspace": "filter_backspace",
        "ctrl+u": "clear_filter",
    },
    InputMode.FIND_EDIT: {
        "enter": "find_next",
        "shift+enter": "find_prev",
        "down": "find_next",
        "up": "find_prev",
        "backspace": "find_backspace",
        "ctrl+t": "toggle_find_option('case')",
        "ctrl+w": "toggle_find_option('word')",
        "ctrl+r": "toggle_find_option('regex')",
    },
    InputMode.CONTEXT_MENU: {
        "c": "menu_pick('copy')",
        "s": "menu_pick('filter_by_selection')",
        "r": "menu_pick('requestId')",
        "t": "menu_pick('traceId')",
        "i": "menu_pick('clientIp')",
    },
}
