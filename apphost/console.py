"""ANSI console writer for rendered event lines."""

import sys
from typing import TextIO

from apphost.renderer import Color

# ANSI color codes
COLORS = {
    Color.GRAY: "\033[90m",
    Color.YELLOW: "\033[33m",
    Color.RED: "\033[31m",
    Color.WHITE: "\033[37m",
}
ERROR_STYLE = "\033[97;41m"  # white on red
RESET = "\033[0m"


class Console:
    """Writes (text, color) pairs to a stream, colorized only when enabled."""

    def __init__(self, stream: TextIO | None = None, color: bool = True):
        self._stream = stream if stream is not None else sys.stdout
        self._color = color

    @property
    def color(self) -> bool:
        return self._color

    def write(self, text: str, color: Color = Color.WHITE):
        if self._color:
            text = f"{COLORS[color]}{text}{RESET}"
        print(text, file=self._stream, flush=True)

    def error(self, text: str):
        """Write a clearly marked fatal diagnostic."""
        if self._color:
            text = f"{ERROR_STYLE}{text}{RESET}"
        print(text, file=self._stream, flush=True)
