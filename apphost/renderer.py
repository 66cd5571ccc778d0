"""Decide what each event looks like on the console: its text and color."""

from enum import Enum

from apphost.models import DEBUG, ERROR, FATAL, VERBOSE, WARNING, EventRecord


class Color(Enum):
    GRAY = "gray"
    YELLOW = "yellow"
    RED = "red"
    WHITE = "white"


LEVEL_COLORS = {
    VERBOSE: Color.GRAY,
    DEBUG: Color.GRAY,
    WARNING: Color.YELLOW,
    ERROR: Color.RED,
    FATAL: Color.RED,
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

WINDOW_EXCEEDED = "<window exceeded>"


def level_color(level: str) -> Color:
    """Map a level to a color; Information and anything unrecognized are white."""
    return LEVEL_COLORS.get(level, Color.WHITE)


def format_event(event: EventRecord) -> tuple[str, Color]:
    """Return the console line for an event, with the exception on the next line."""
    ts = event.timestamp.astimezone().strftime(TIMESTAMP_FORMAT)
    line = f"{ts} [{event.level}] {event.message}"
    if event.exception:
        line += "\n" + event.exception
    return line, level_color(event.level)


def window_exceeded() -> tuple[str, Color]:
    """Advisory printed when the last confirmed event dropped out of the window."""
    return WINDOW_EXCEEDED, Color.YELLOW
