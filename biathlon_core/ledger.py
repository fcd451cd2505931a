"""Race ledger state transitions (pure, no file I/O).

This module turns the decoded event stream into per-competitor race records.

Architecture:
- The ledger is a plain dict of competitor id -> CompetitorRecord, created by
  new_ledger() and owned by the caller for the duration of one race replay
- apply_event() takes (ledger, event, config) and mutates exactly one record
- Records are created lazily on the first event that mentions a competitor
  and are never removed

Interval bookkeeping:
- A lap opens on STARTED (lap 1) and on every ENDED_LAP while fewer laps than
  configured exist; the final ENDED_LAP sets finish_time instead
- A penalty loop opens on ENTERED_PENALTY_LOOP and closes on LEFT_PENALTY_LOOP
- open_lap / open_penalty point at the interval waiting for its end; closing
  without an open interval raises MalformedEvent

Late start:
- Checked once, when STARTED arrives: actual start strictly after
  drawn start + start_delta marks the competitor not_started
- No drawn start time means no check
"""
from __future__ import annotations

import logging
from typing import Iterable

from .events import describe_event, format_clock
from .exceptions import MalformedEvent
from .types import CompetitorRecord, Event, EventKind, Interval, Ledger
from .validation import RaceConfig

logger = logging.getLogger(__name__)


def new_ledger() -> Ledger:
    """Create an empty ledger for one race replay."""
    return {}


def _record_for(ledger: Ledger, competitor_id: str) -> CompetitorRecord:
    record = ledger.get(competitor_id)
    if record is None:
        record = CompetitorRecord()
        ledger[competitor_id] = record
    return record


def _open_lap(record: CompetitorRecord, event: Event) -> None:
    record.laps.append(Interval(start=event.timestamp))
    record.open_lap = len(record.laps) - 1


def _check_late_start(record: CompetitorRecord, event: Event, config: RaceConfig) -> None:
    if record.scheduled_start is None or record.actual_start is None:
        return
    deadline = record.scheduled_start + config.start_delta
    if record.actual_start > deadline:
        record.not_started = True
        record.comment = (
            f"started at {format_clock(record.actual_start)}, "
            f"allowed until {format_clock(deadline)}"
        )
        logger.warning(
            f"Competitor {event.competitor_id} disqualified: did not start in time "
            f"({record.comment})"
        )


def apply_event(ledger: Ledger, event: Event, config: RaceConfig) -> None:
    """Apply one decoded event to the ledger.

    Args:
        ledger: Competitor id -> record mapping (mutated in place)
        event: Decoded event, applied in log order
        config: Race configuration (lap count and start window are used)

    Raises:
        MalformedEvent: The event contradicts the record, e.g. closing a lap or
            penalty loop that was never opened, or starting twice

    Transitions:
        - REGISTERED: registered = True
        - START_TIME_DRAWN: scheduled_start = drawn time
        - STARTED: actual_start = timestamp, open lap 1, late-start check
        - TARGET_HIT: hits += 1
        - ENTERED_PENALTY_LOOP / LEFT_PENALTY_LOOP: open / close penalty loop
        - ENDED_LAP: close lap, open the next one or set finish_time
        - CANNOT_CONTINUE: not_finished = True, comment = free text
        - ON_START_LINE, ON_FIRING_RANGE, LEFT_FIRING_RANGE, UNKNOWN: log only
    """
    record = _record_for(ledger, event.competitor_id)
    kind = event.kind

    if kind == EventKind.REGISTERED:
        record.registered = True

    elif kind == EventKind.START_TIME_DRAWN:
        drawn = event.payload["start_time"]
        record.scheduled_start = drawn
        if drawn < config.start:
            logger.warning(
                f"Competitor {event.competitor_id} drawn to start at {format_clock(drawn)}, "
                f"before the race start {format_clock(config.start)}"
            )

    elif kind == EventKind.STARTED:
        if record.actual_start is not None:
            raise MalformedEvent(
                f"competitor {event.competitor_id} already started at "
                f"{format_clock(record.actual_start)}"
            )
        record.actual_start = event.timestamp
        _open_lap(record, event)
        _check_late_start(record, event, config)

    elif kind == EventKind.TARGET_HIT:
        record.hits += 1

    elif kind == EventKind.ENTERED_PENALTY_LOOP:
        if record.open_penalty is not None:
            raise MalformedEvent(
                f"competitor {event.competitor_id} entered a penalty loop while still in one"
            )
        record.penalty_loops.append(Interval(start=event.timestamp))
        record.open_penalty = len(record.penalty_loops) - 1

    elif kind == EventKind.LEFT_PENALTY_LOOP:
        if record.open_penalty is None:
            raise MalformedEvent(
                f"competitor {event.competitor_id} left a penalty loop that was never entered"
            )
        record.penalty_loops[record.open_penalty].end = event.timestamp
        record.open_penalty = None

    elif kind == EventKind.ENDED_LAP:
        if record.open_lap is None:
            raise MalformedEvent(
                f"competitor {event.competitor_id} ended a lap that was never started"
            )
        record.laps[record.open_lap].end = event.timestamp
        record.open_lap = None
        if len(record.laps) < config.laps:
            _open_lap(record, event)
        else:
            record.finish_time = event.timestamp

    elif kind == EventKind.CANNOT_CONTINUE:
        record.not_finished = True
        record.comment = event.payload.get("comment", "")

    # ON_START_LINE, ON_FIRING_RANGE, LEFT_FIRING_RANGE and UNKNOWN carry no state.

    if kind != EventKind.UNKNOWN:
        logger.info(describe_event(event))


def apply_events(ledger: Ledger, events: Iterable[Event], config: RaceConfig) -> Ledger:
    """Apply events in order; stops at the first MalformedEvent."""
    for event in events:
        apply_event(ledger, event, config)
    return ledger
