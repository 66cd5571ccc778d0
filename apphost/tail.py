"""The tail loop: poll, reconcile, render, dispatch, and wait when idle."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from apphost.client import SeqClient
from apphost.console import Console
from apphost.reactor import ReactorDispatcher
from apphost.renderer import format_event, window_exceeded
from apphost.stats import TailStats
from apphost.window import DEFAULT_LOOKBACK, TailState, next_query_bound, reconcile

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Tailer:
    """Single sequential tail over one event source.

    The loop owns its TailState outright; nothing else reads or writes it.
    Source errors are not retried here and propagate to the caller.
    """

    def __init__(
        self,
        client: SeqClient,
        console: Console,
        dispatcher: ReactorDispatcher,
        strict_filter: str | None = None,
        window: int = 100,
        idle_delay: float = 1.0,
        lookback: timedelta = DEFAULT_LOOKBACK,
        stats: TailStats | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._client = client
        self._console = console
        self._dispatcher = dispatcher
        self._filter = strict_filter
        self._window = window
        self._idle_delay = idle_delay
        self._lookback = lookback
        self._stats = stats if stats is not None else TailStats()
        self._clock = clock

    @property
    def stats(self) -> TailStats:
        return self._stats

    def run(self, cancel: threading.Event) -> TailState:
        """Tail until ``cancel`` is set. Returns the final state."""
        state = TailState(started_at=self._clock())
        logger.info("Tailing events since %s (window=%d)", state.started_at.isoformat(), self._window)

        while not cancel.is_set():
            since = next_query_bound(state, self._clock(), self._lookback)
            poll = self._client.list_recent(self._filter, since, self._window)
            if cancel.is_set():
                # Result arrived after cancellation; dropping it leaves no trace.
                break

            self._stats.record_poll(len(poll))
            if not poll:
                cancel.wait(self._idle_delay)
                continue

            state = self.process(state, poll)

        logger.info("Tail stopped")
        return state

    def process(self, state: TailState, poll) -> TailState:
        """Print and dispatch the new events in one poll; return the next state."""
        result = reconcile(state, poll)

        if result.coverage_lost:
            logger.warning("Last confirmed event %s not in window; events may have been missed",
                           state.last_confirmed_id)
            self._stats.record_window_exceeded()
            self._console.write(*window_exceeded())

        for event in result.new_events:
            self._console.write(*format_event(event))
            self._dispatcher.dispatch(event)
        self._stats.record_emitted(len(result.new_events))

        return result.state
