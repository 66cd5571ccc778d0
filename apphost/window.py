"""Sliding-window reconciliation of overlapping "most recent N events" polls.

The events API can only answer "give me the newest N events since T". Results
may arrive late or out of order, so after the first confirmed event every poll
re-requests a trailing window (now minus a lookback) and drops events that were
already printed. If the last confirmed event is missing from a poll, the window
was too small to cover the gap and some events may have been missed.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Sequence

from apphost.models import EventRecord

DEFAULT_LOOKBACK = timedelta(minutes=3)


@dataclass(frozen=True)
class TailState:
    started_at: datetime
    last_confirmed_id: str | None = None
    seen_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Reconciliation:
    new_events: list[EventRecord]
    coverage_lost: bool
    state: TailState


def next_query_bound(
    state: TailState, now: datetime, lookback: timedelta = DEFAULT_LOOKBACK,
) -> datetime:
    """Lower time bound for the next poll.

    Until an event is confirmed the tail covers everything since it started;
    afterwards it re-queries a fixed trailing window to pick up late arrivals.
    """
    if state.last_confirmed_id is None:
        return state.started_at
    return now - lookback


def reconcile(state: TailState, poll: Sequence[EventRecord]) -> Reconciliation:
    """Work out which events in a newest-first poll have not been emitted yet.

    Returns the new events oldest-first, whether the previously confirmed event
    fell out of the window, and the state for the next cycle.
    """
    if not poll:
        return Reconciliation(new_events=[], coverage_lost=False, state=state)

    coverage_lost = (
        state.last_confirmed_id is not None
        and all(e.id != state.last_confirmed_id for e in poll)
    )

    new_events = []
    last_confirmed_id = state.last_confirmed_id
    for event in reversed(poll):
        if event.id in state.seen_ids:
            continue
        new_events.append(event)
        last_confirmed_id = event.id

    # Replaced rather than merged: memory stays bounded by one window.
    new_state = replace(
        state,
        last_confirmed_id=last_confirmed_id,
        seen_ids=frozenset(e.id for e in poll),
    )
    return Reconciliation(new_events=new_events, coverage_lost=coverage_lost, state=new_state)
