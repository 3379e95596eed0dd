"""Single-key terminal reads for the dashboard (POSIX cbreak mode)."""

from __future__ import annotations

import os
import selectors
import sys
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager

_ARROWS = {"[A": "up", "[B": "down", "[C": "right", "[D": "left"}


class KeyReader:
    """Reads one key at a time from a file descriptor already in cbreak mode.

    Bytes are taken with ``os.read`` so the selector and the reader agree on
    what is pending, which keeps arrow-key escape sequences intact.
    """

    def __init__(self, fd: int) -> None:
        self._fd = fd
        self._selector = selectors.DefaultSelector()
        self._selector.register(fd, selectors.EVENT_READ)

    def close(self) -> None:
        self._selector.unregister(self._fd)
        self._selector.close()

    def read(self, timeout: float = 0.05) -> str | None:
        """Return the next key name, or None if nothing arrived in time."""
        if not self._selector.select(timeout=timeout):
            return None
        ch = self._getch()
        if ch != "\x1b":
            return ch
        tail = ""
        while len(tail) < 2 and self._selector.select(timeout=0.02):
            tail += self._getch()
        return _ARROWS.get(tail, "escape")

    def _getch(self) -> str:
        return os.read(self._fd, 1).decode("utf-8", errors="replace")


@contextmanager
def cbreak_keys() -> Iterator[KeyReader]:
    """Put stdin into cbreak mode for the duration of the block."""
    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    reader = KeyReader(fd)
    try:
        yield reader
    finally:
        reader.close()
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
