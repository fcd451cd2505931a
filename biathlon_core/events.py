"""Event log decoding (pure, no I/O).

One line of the timing system's log looks like::

    [09:30:01.005] 6 1 3

i.e. a bracketed time of day, the numeric event code, the competitor id and
any kind-specific fields, all separated by single spaces.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime

from .exceptions import MalformedEvent
from .types import Event, EventKind, EventPayload

logger = logging.getLogger(__name__)

_CLOCK_RE = re.compile(r"([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]{3}))?")


def parse_clock_ms(text: str, *, require_ms: bool = False) -> datetime | None:
    """Parse ``HH:MM:SS.mmm`` (or, unless require_ms, ``HH:MM:SS``) to a time of day.

    Returns None when the text does not match or is out of range.
    """
    match = _CLOCK_RE.fullmatch(text)
    if not match or (require_ms and match.group(4) is None):
        return None
    hours, minutes, seconds = (int(part) for part in match.group(1, 2, 3))
    millis = int(match.group(4) or 0)
    try:
        return datetime(1900, 1, 1, hours, minutes, seconds, millis * 1000)
    except ValueError:
        return None


def parse_event_line(line: str) -> Event:
    """Decode one event line.

    Raises:
        MalformedEvent: timestamp, code or a required payload field is bad
    """
    raw = line.rstrip("\r\n")
    params = raw.split(" ")
    if len(params) < 3:
        raise MalformedEvent("event needs a timestamp, a code and a competitor id", line=raw)

    time_str, code_str, competitor_id = params[0], params[1], params[2]
    extra = params[3:]

    if len(time_str) < 2 or not (time_str.startswith("[") and time_str.endswith("]")):
        raise MalformedEvent(f"timestamp must be bracketed: {time_str!r}", line=raw)
    timestamp = parse_clock_ms(time_str[1:-1], require_ms=True)
    if timestamp is None:
        raise MalformedEvent(f"cannot parse event time {time_str!r}", line=raw)

    if not (code_str.isascii() and code_str.isdigit()):
        raise MalformedEvent(f"event code is not an integer: {code_str!r}", line=raw)
    code = int(code_str)

    if not competitor_id:
        raise MalformedEvent("empty competitor id", line=raw)

    kind = EventKind.from_code(code)
    payload: EventPayload = {}

    if kind == EventKind.START_TIME_DRAWN:
        if not extra:
            raise MalformedEvent("draw event without a start time", line=raw)
        start_time = parse_clock_ms(extra[0])
        if start_time is None:
            raise MalformedEvent(f"cannot parse drawn start time {extra[0]!r}", line=raw)
        payload["start_time"] = start_time
    elif kind == EventKind.ON_FIRING_RANGE:
        if not extra:
            raise MalformedEvent("firing range event without a range id", line=raw)
        payload["firing_range"] = extra[0]
    elif kind == EventKind.TARGET_HIT:
        if not extra:
            raise MalformedEvent("target hit event without a target id", line=raw)
        payload["target"] = extra[0]
    elif kind == EventKind.CANNOT_CONTINUE:
        payload["comment"] = " ".join(extra)
    elif kind == EventKind.UNKNOWN:
        logger.warning(f"Unknown event code: {code}, event: {raw}")

    return Event(
        timestamp=timestamp,
        kind=kind,
        code=code,
        competitor_id=competitor_id,
        payload=payload,
    )


def format_clock(value: datetime) -> str:
    """Render a time of day as ``HH:MM:SS.mmm``."""
    return value.strftime("%H:%M:%S.") + f"{value.microsecond // 1000:03d}"


def describe_event(event: Event) -> str:
    """Human-readable narration of an event, as printed in the race log."""
    ts = f"[{format_clock(event.timestamp)}]"
    cid = event.competitor_id
    kind = event.kind
    payload = event.payload

    if kind == EventKind.REGISTERED:
        return f"{ts} The competitor({cid}) registered"
    if kind == EventKind.START_TIME_DRAWN:
        drawn = format_clock(payload["start_time"])
        return f"{ts} The start time for the competitor({cid}) was set by a draw to {drawn}"
    if kind == EventKind.ON_START_LINE:
        return f"{ts} The competitor({cid}) is on the start line"
    if kind == EventKind.STARTED:
        return f"{ts} The competitor({cid}) has started"
    if kind == EventKind.ON_FIRING_RANGE:
        return f"{ts} The competitor({cid}) is on the firing range({payload['firing_range']})"
    if kind == EventKind.TARGET_HIT:
        return f"{ts} The target({payload['target']}) has been hit by competitor({cid})"
    if kind == EventKind.LEFT_FIRING_RANGE:
        return f"{ts} The competitor({cid}) left the firing range"
    if kind == EventKind.ENTERED_PENALTY_LOOP:
        return f"{ts} The competitor({cid}) entered the penalty laps"
    if kind == EventKind.LEFT_PENALTY_LOOP:
        return f"{ts} The competitor({cid}) left the penalty laps"
    if kind == EventKind.ENDED_LAP:
        return f"{ts} The competitor({cid}) ended the main lap"
    if kind == EventKind.CANNOT_CONTINUE:
        return f"{ts} The competitor({cid}) can`t continue: {payload['comment']}"
    return f"{ts} Unknown event {event.code} for competitor({cid})"
