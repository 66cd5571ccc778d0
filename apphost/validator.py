"""JSON-schema validation of event objects returned by the events API."""

import jsonschema

PROPERTY_SCHEMA = {
    "type": "object",
    "required": ["Name"],
    "properties": {
        "Name": {"type": "string"},
    },
}

EVENT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["Id", "Timestamp"],
    "properties": {
        "Id": {"type": "string", "minLength": 1},
        "Timestamp": {"type": "string", "minLength": 1},
        "Level": {"type": ["string", "null"]},
        "RenderedMessage": {"type": ["string", "null"]},
        "Exception": {"type": ["string", "null"]},
        "EventType": {"type": ["string", "integer", "null"]},
        "MessageTemplateTokens": {"type": ["array", "null"], "items": {"type": "object"}},
        "Properties": {"type": ["array", "null"], "items": PROPERTY_SCHEMA},
    },
}


class EventValidator:
    """Validates raw event objects before they are turned into EventRecords."""

    def __init__(self, schema: dict | None = None):
        self._validator = jsonschema.Draft202012Validator(schema or EVENT_SCHEMA)

    def validate(self, event: dict) -> tuple[bool, list[str]]:
        """Returns (is_valid, error messages)."""
        errors = [e.message for e in self._validator.iter_errors(event)]
        return not errors, errors
