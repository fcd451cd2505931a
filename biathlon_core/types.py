"""Type definitions for race events and per-competitor race records."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Dict, List, Optional, TypedDict


class EventKind(IntEnum):
    """Event kinds known to the timing system, keyed by their wire code."""

    UNKNOWN = 0
    REGISTERED = 1
    START_TIME_DRAWN = 2
    ON_START_LINE = 3
    STARTED = 4
    ON_FIRING_RANGE = 5
    TARGET_HIT = 6
    LEFT_FIRING_RANGE = 7
    ENTERED_PENALTY_LOOP = 8
    LEFT_PENALTY_LOOP = 9
    ENDED_LAP = 10
    CANNOT_CONTINUE = 11

    @classmethod
    def from_code(cls, code: int) -> "EventKind":
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class EventPayload(TypedDict, total=False):
    """
    Kind-specific event fields.

    Only the key matching the event kind is present.
    """
    # START_TIME_DRAWN
    start_time: datetime
    # ON_FIRING_RANGE
    firing_range: str
    # TARGET_HIT
    target: str
    # CANNOT_CONTINUE
    comment: str


@dataclass(frozen=True)
class Event:
    """One decoded line of the event log."""

    timestamp: datetime
    kind: EventKind
    code: int  # raw wire code, kept for UNKNOWN kinds
    competitor_id: str
    payload: EventPayload = field(default_factory=dict)  # type: ignore[assignment]


@dataclass
class Interval:
    start: datetime
    end: Optional[datetime] = None

    @property
    def closed(self) -> bool:
        return self.end is not None


@dataclass
class CompetitorRecord:
    """Mutable race record; only the ledger writes to it."""

    registered: bool = False
    scheduled_start: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    laps: List[Interval] = field(default_factory=list)
    penalty_loops: List[Interval] = field(default_factory=list)
    # Index into laps / penalty_loops of the interval still waiting for its end.
    open_lap: Optional[int] = None
    open_penalty: Optional[int] = None
    hits: int = 0
    finish_time: Optional[datetime] = None
    not_started: bool = False
    not_finished: bool = False
    comment: str = ""


# Ledger: competitor id -> record, owned by whoever runs the race replay.
Ledger = Dict[str, CompetitorRecord]
