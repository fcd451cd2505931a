from .events import describe_event, format_clock, parse_clock_ms, parse_event_line
from .exceptions import BiathlonError, ConfigurationError, MalformedEvent
from .ledger import apply_event, apply_events, new_ledger
from .types import CompetitorRecord, Event, EventKind, EventPayload, Interval, Ledger
from .validation import RaceConfig, load_config, parse_clock, parse_duration
from .report import (
    IntervalResult,
    RankedCompetitor,
    RaceStatus,
    ReportRow,
    build_report,
    compute_ranking,
    format_duration,
    race_status,
    render_report,
    render_row,
)

__all__ = [
    "BiathlonError",
    "CompetitorRecord",
    "ConfigurationError",
    "Event",
    "EventKind",
    "EventPayload",
    "Interval",
    "Ledger",
    "MalformedEvent",
    "RaceConfig",
    "apply_event",
    "apply_events",
    "describe_event",
    "format_clock",
    "load_config",
    "new_ledger",
    "parse_clock",
    "parse_clock_ms",
    "parse_duration",
    "parse_event_line",
    "IntervalResult",
    "RankedCompetitor",
    "RaceStatus",
    "ReportRow",
    "build_report",
    "compute_ranking",
    "format_duration",
    "race_status",
    "render_report",
    "render_row",
]
