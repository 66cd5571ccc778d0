"""HTTP client for the Seq events and expressions APIs."""

import logging
from datetime import datetime, timezone

import requests

from apphost.models import EventRecord, event_from_json
from apphost.validator import EventValidator

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Seq-ApiKey"


class SourceError(Exception):
    """Raised when the event store cannot be reached or returns a bad response."""


class FilterError(Exception):
    """Raised when the server rejects a filter expression."""


class _BadRequest(SourceError):
    """HTTP 400; only meaningful to callers that can blame their own input."""


def format_utc(instant: datetime) -> str:
    """Format an instant the way the events API expects ``fromDateUtc``."""
    return instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class SeqClient:
    """Thin wrapper over a requests session bound to one Seq server."""

    def __init__(
        self,
        server: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self._server = server.rstrip("/")
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._session.headers["Accept"] = "application/json"
        if api_key:
            self._session.headers[API_KEY_HEADER] = api_key
        self._validator = EventValidator()

    @property
    def server(self) -> str:
        return self._server

    def close(self):
        self._session.close()

    def list_recent(
        self, filter: str | None, since: datetime, count: int,
    ) -> list[EventRecord]:
        """Return up to ``count`` events matching ``filter`` since ``since``, newest first."""
        params = {
            "count": count,
            "render": "true",
            "fromDateUtc": format_utc(since),
        }
        if filter:
            params["filter"] = filter

        payload = self._get_json("api/events", params)
        if not isinstance(payload, list):
            raise SourceError(f"Expected a list of events, got {type(payload).__name__}")

        events = []
        for item in payload:
            is_valid, errors = self._validator.validate(item)
            if not is_valid:
                raise SourceError(f"Malformed event from server: {'; '.join(errors)}")
            try:
                events.append(event_from_json(item))
            except (KeyError, ValueError) as e:
                raise SourceError(f"Malformed event {item.get('Id')!r}: {e}") from e
        logger.debug("Fetched %d events since %s", len(events), params["fromDateUtc"])
        return events

    def to_strict(self, filter: str) -> str:
        """Translate a free-text or fuzzy filter into the server's strict syntax."""
        try:
            body = self._get_json("api/expressions/to-strict", {"fuzzy": filter})
        except _BadRequest as e:
            raise FilterError(f"Invalid filter {filter!r}: {e}") from e

        strict = body.get("StrictExpression") if isinstance(body, dict) else None
        if not strict:
            raise FilterError(f"Server could not translate filter {filter!r}")
        if body.get("MatchedAsText"):
            logger.info("Filter %r matched as text: %s", filter, body.get("ReasonIfMatchedAsText"))
        logger.info("Using strict filter: %s", strict)
        return strict

    def _get_json(self, path: str, params: dict):
        url = f"{self._server}/{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise SourceError(f"GET {url} failed: {e}") from e

        if response.status_code == 400:
            raise _BadRequest(f"GET {url} returned HTTP 400: {_error_message(response)}")
        if response.status_code >= 400:
            raise SourceError(f"GET {url} returned HTTP {response.status_code}: {_error_message(response)}")

        try:
            return response.json()
        except ValueError as e:
            raise SourceError(f"GET {url} returned invalid JSON") from e


def _error_message(response) -> str:
    """Seq reports failures as ``{"Error": "..."}``; fall back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("Error"):
        return body["Error"]
    return response.text[:200]
