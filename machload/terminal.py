"""Keyboard input for the interactive dashboard."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import IntEnum

if os.name == "nt":
    import msvcrt
else:
    import termios

ESCAPE = 27


class Key(IntEnum):
    """Codes returned for arrow keys; other keys return their character code."""

    UP = 1000
    DOWN = 1001
    RIGHT = 1002
    LEFT = 1003


_ANSI_ARROWS = {"A": Key.UP, "B": Key.DOWN, "C": Key.RIGHT, "D": Key.LEFT}
_CONSOLE_ARROWS = {72: Key.UP, 80: Key.DOWN, 75: Key.LEFT, 77: Key.RIGHT}
_CONSOLE_PREFIXES = {0, 0xE0}


def decode_key(read_char: Callable[[], str]) -> int:
    """Read one key press from ``read_char`` and return its code.

    ``read_char`` returns one character, or an empty string at end of input.
    ANSI arrow sequences become :class:`Key` values, a lone or unknown escape
    sequence gives 27, end of input gives 0.
    """
    char = read_char()
    if not char:
        return 0
    if char == "\x1b":
        first = read_char()
        if not first:
            return ESCAPE
        second = read_char()
        if not second:
            return ESCAPE
        if first == "[" and second in _ANSI_ARROWS:
            return _ANSI_ARROWS[second]
    return ord(char)


def _decode_console_key(read_char: Callable[[], str]) -> int:
    """Decode a key from a Windows console, where arrows arrive after a prefix."""
    code = ord(read_char())
    if code in _CONSOLE_PREFIXES:
        code = ord(read_char())
        return _CONSOLE_ARROWS.get(code, code)
    return code


def _read_stdin_char() -> str:
    try:
        data = os.read(sys.stdin.fileno(), 1)
    except (OSError, ValueError):
        return ""
    return data.decode("latin-1")


def read_key() -> int:
    """Block until a key is pressed on standard input and return its code."""
    if os.name == "nt":
        return _decode_console_key(msvcrt.getwch)
    return decode_key(_read_stdin_char)


@contextmanager
def raw_mode() -> Iterator[bool]:
    """Turn off echo and line buffering on standard input for the block.

    Yields True when the terminal settings were changed, False when standard
    input is not a terminal or needs no change.
    """
    if os.name == "nt":
        yield False
        return
    try:
        fd = sys.stdin.fileno()
        saved = termios.tcgetattr(fd)
    except (AttributeError, ValueError, OSError, termios.error):
        saved = None
    if saved is None:
        yield False
        return
    raw = list(saved)
    raw[3] &= ~(termios.ECHO | termios.ICANON)
    termios.tcsetattr(fd, termios.TCSAFLUSH, raw)
    try:
        yield True
    finally:
        termios.tcsetattr(fd, termios.TCSAFLUSH, saved)