"""Final results table: ranking and rendering of finished race records.

Single place where the ledger becomes a report:
- Comparator: not started, then not finished, then finished by elapsed time.
- Ties inside a tier are broken by competitor id (numeric ids by value).
- Rendering: one text line per competitor, lap and penalty loop speeds in
  track units per second.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal, Mapping, Sequence

from .types import CompetitorRecord, Interval
from .validation import RaceConfig


RaceStatus = Literal["not_started", "not_finished", "finished"]

_STATUS_ORDER: dict[RaceStatus, int] = {
    "not_started": 0,
    "not_finished": 1,
    "finished": 2,
}

_STATUS_TAGS: dict[RaceStatus, str] = {
    "not_started": "{NotStarted}",
    "not_finished": "{NotFinished}",
}


@dataclass(frozen=True)
class IntervalResult:
    # None duration means one endpoint never arrived.
    duration: timedelta | None
    speed: float | None


@dataclass(frozen=True)
class RankedCompetitor:
    competitor_id: str
    status: RaceStatus
    elapsed: timedelta | None
    record: CompetitorRecord


@dataclass(frozen=True)
class ReportRow:
    position: int
    competitor_id: str
    status: RaceStatus
    elapsed: timedelta | None
    laps: tuple[IntervalResult, ...]
    penalty_loops: tuple[IntervalResult, ...]
    hits: int
    shots: int
    comment: str


def format_duration(value: timedelta) -> str:
    """Render a duration as ``HH:MM:SS.mmm``; hours are not wrapped at 24."""
    total_ms = round(value.total_seconds() * 1000)
    sign = "-" if total_ms < 0 else ""
    total_ms = abs(total_ms)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def _elapsed(record: CompetitorRecord) -> timedelta | None:
    if record.actual_start is None or record.finish_time is None:
        return None
    return record.finish_time - record.actual_start


def race_status(record: CompetitorRecord) -> RaceStatus:
    """Effective status; not_started wins over not_finished."""
    if record.not_started:
        return "not_started"
    if record.not_finished:
        return "not_finished"
    if _elapsed(record) is not None:
        return "finished"
    # No flag but no finish either: never started, or the log ended mid-race.
    if record.actual_start is None:
        return "not_started"
    return "not_finished"


def _competitor_id_key(competitor_id: str) -> tuple[int, int, str]:
    if competitor_id.isdecimal():
        return (0, int(competitor_id), competitor_id)
    return (1, 0, competitor_id)


def _ranking_sort_key(item: RankedCompetitor) -> tuple[int, float, tuple[int, int, str]]:
    elapsed = item.elapsed.total_seconds() if item.elapsed is not None else math.inf
    return (
        _STATUS_ORDER[item.status],
        elapsed if item.status == "finished" else 0.0,
        _competitor_id_key(item.competitor_id),
    )


def compute_ranking(ledger: Mapping[str, CompetitorRecord]) -> tuple[RankedCompetitor, ...]:
    """Total order over all competitors in the ledger."""
    items = [
        RankedCompetitor(
            competitor_id=competitor_id,
            status=race_status(record),
            elapsed=_elapsed(record),
            record=record,
        )
        for competitor_id, record in ledger.items()
    ]
    return tuple(sorted(items, key=_ranking_sort_key))


def _interval_result(interval: Interval, length: float) -> IntervalResult:
    if interval.end is None:
        return IntervalResult(duration=None, speed=None)
    duration = interval.end - interval.start
    seconds = duration.total_seconds()
    speed = length / seconds if seconds > 0 else 0.0
    return IntervalResult(duration=duration, speed=speed)


def build_report(
    ledger: Mapping[str, CompetitorRecord],
    config: RaceConfig,
) -> tuple[ReportRow, ...]:
    """Rank the ledger and compute per-lap and per-penalty-loop results."""
    rows: list[ReportRow] = []
    for position, item in enumerate(compute_ranking(ledger), start=1):
        record = item.record
        rows.append(
            ReportRow(
                position=position,
                competitor_id=item.competitor_id,
                status=item.status,
                elapsed=item.elapsed if item.status == "finished" else None,
                laps=tuple(_interval_result(lap, config.lap_len) for lap in record.laps),
                penalty_loops=tuple(
                    _interval_result(loop, config.penalty_len) for loop in record.penalty_loops
                ),
                hits=record.hits,
                shots=config.shots_total,
                comment=record.comment,
            )
        )
    return tuple(rows)


def _render_intervals(results: Sequence[IntervalResult]) -> str:
    parts = []
    for result in results:
        if result.duration is None or result.speed is None:
            parts.append("{,}")
        else:
            parts.append(f"{{{format_duration(result.duration)}, {result.speed:.3f}}}")
    return "[" + ", ".join(parts) + "]"


def render_row(row: ReportRow) -> str:
    if row.status == "finished" and row.elapsed is not None:
        total = format_duration(row.elapsed)
    else:
        total = _STATUS_TAGS.get(row.status, _STATUS_TAGS["not_finished"])
    return (
        f"{total} {row.competitor_id} "
        f"{_render_intervals(row.laps)} {_render_intervals(row.penalty_loops)} "
        f"{row.hits}/{row.shots}\n"
    )


def render_report(rows: Sequence[ReportRow]) -> str:
    return "".join(render_row(row) for row in rows)
