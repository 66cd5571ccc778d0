"""Shared pytest fixtures for the seq-dev-apphost test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from apphost.models import INFORMATION, EventRecord

BASE_TIME = datetime(2024, 1, 15, 8, 0, 0, tzinfo=timezone.utc)


def make_event(
    event_id: str,
    t: int = 0,
    level: str = INFORMATION,
    message: str | None = None,
    exception: str | None = None,
    properties: dict | None = None,
) -> EventRecord:
    """Build an EventRecord ``t`` seconds after BASE_TIME."""
    return EventRecord(
        id=event_id,
        timestamp=BASE_TIME + timedelta(seconds=t),
        level=level,
        message=message if message is not None else f"event {event_id}",
        exception=exception,
        properties=properties or {},
    )


def event_json(event_id: str, timestamp: str = "2024-01-15T08:23:45.1234567+00:00", **extra) -> dict:
    """A raw event object as the /api/events endpoint returns it."""
    data = {
        "Id": event_id,
        "Timestamp": timestamp,
        "Level": "Information",
        "RenderedMessage": f"Hello from {event_id}",
        "MessageTemplateTokens": [
            {"Text": "Hello from "},
            {"PropertyName": "Source", "RawText": "{Source}"},
        ],
        "EventType": "$A1B2C3D4",
        "Properties": [{"Name": "Source", "Value": event_id}],
    }
    data.update(extra)
    return data


@pytest.fixture()
def started_at() -> datetime:
    return BASE_TIME
