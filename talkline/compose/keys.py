"""Keyboard events understood by the composer."""

from enum import Enum


class Key(Enum):
    UP = "up"
    DOWN = "down"
    TAB = "tab"
    ENTER = "enter"
    SHIFT_ENTER = "shift_enter"
    ESC = "esc"
    CHAR = "char"


# Browser/terminal key names -> Key
_KEY_NAMES = {
    "arrowup": Key.UP,
    "up": Key.UP,
    "arrowdown": Key.DOWN,
    "down": Key.DOWN,
    "tab": Key.TAB,
    "enter": Key.ENTER,
    "return": Key.ENTER,
    "escape": Key.ESC,
    "esc": Key.ESC,
}


def parse_key(name: str, shift: bool = False) -> Key:
    """Map a key name such as "ArrowDown" or "Enter" to a Key.

    Unknown names are treated as ordinary characters.
    """
    key = _KEY_NAMES.get(name.lower(), Key.CHAR)
    if key == Key.ENTER and shift:
        return Key.SHIFT_ENTER
    return key
