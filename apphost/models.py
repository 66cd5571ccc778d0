"""Event records read from the Seq events API, and the shapes handed to reactors."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

VERBOSE = "Verbose"
DEBUG = "Debug"
INFORMATION = "Information"
WARNING = "Warning"
ERROR = "Error"
FATAL = "Fatal"

LEVELS = (VERBOSE, DEBUG, INFORMATION, WARNING, ERROR, FATAL)

# Seq emits up to 7 fractional digits; fromisoformat wants exactly 6.
_FRACTION = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class EventRecord:
    id: str
    timestamp: datetime          # offset-aware
    level: str                   # one of LEVELS, or whatever the server sent
    message: str                 # rendered message
    exception: str | None = None
    message_template: str | None = None
    event_type: int | None = None
    properties: dict = field(default_factory=dict)


@dataclass(frozen=True)
class LogEventData:
    id: str
    local_timestamp: datetime
    level: str
    message_template: str | None
    rendered_message: str
    exception: str | None
    properties: dict


@dataclass(frozen=True)
class ReactorEvent:
    id: str
    event_type: int | None
    timestamp: datetime          # UTC
    data: LogEventData


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into an offset-aware datetime.

    Timestamps without an offset are taken to be UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_event_type(value) -> int | None:
    """Seq reports event types as ``$XXXXXXXX`` hex strings."""
    if value is None or isinstance(value, int):
        return value
    text = str(value).strip()
    if text.startswith("$"):
        text = text[1:]
    return int(text, 16)


def _template_from_tokens(tokens: list[dict]) -> str | None:
    if not tokens:
        return None
    parts = []
    for token in tokens:
        if "Text" in token:
            parts.append(token["Text"])
        elif "RawText" in token:
            parts.append(token["RawText"])
        elif "PropertyName" in token:
            parts.append("{" + token["PropertyName"] + "}")
    return "".join(parts)


def event_from_json(data: dict) -> EventRecord:
    """Build an EventRecord from one element of the ``/api/events`` response.

    Raises KeyError or ValueError if a required field is missing or malformed.
    """
    properties = {p["Name"]: p.get("Value") for p in data.get("Properties") or []}
    return EventRecord(
        id=data["Id"],
        timestamp=parse_timestamp(data["Timestamp"]),
        level=data.get("Level") or INFORMATION,
        message=data.get("RenderedMessage") or "",
        exception=data.get("Exception") or None,
        message_template=_template_from_tokens(data.get("MessageTemplateTokens") or []),
        event_type=parse_event_type(data.get("EventType")),
        properties=properties,
    )


def to_reactor_event(event: EventRecord) -> ReactorEvent:
    """Convert an EventRecord into the event shape a reactor receives.

    Properties are copied 1:1 by name so the reactor cannot mutate the record.
    """
    data = LogEventData(
        id=event.id,
        local_timestamp=event.timestamp,
        level=event.level,
        message_template=event.message_template,
        rendered_message=event.message,
        exception=event.exception,
        properties=dict(event.properties),
    )
    return ReactorEvent(
        id=event.id,
        event_type=event.event_type,
        timestamp=event.timestamp.astimezone(timezone.utc),
        data=data,
    )
