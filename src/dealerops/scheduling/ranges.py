"""Interval overlap and named date-range resolution."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .dates import (
    REFERENCE_TIMEZONE,
    is_date_only_value,
    parse_calendar_day,
    parse_exact_instant,
    parse_instant,
    start_of_day,
    start_of_next_day,
    zone_midnight,
)
from .models import Job, ScheduleValue, ScheduleWindow

logger = logging.getLogger(__name__)


class DateRange:
    """Named display ranges understood by :func:`resolve_date_range`."""

    TODAY = "today"
    NEXT_3_DAYS = "next3days"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


# Number of reference-zone days each named range spans, starting today.
_NAMED_RANGE_DAYS = {
    DateRange.TODAY: 1,
    DateRange.NEXT_3_DAYS: 3,
    DateRange.WEEK: 7,
    "next7days": 7,
    DateRange.MONTH: 30,
    "next30days": 30,
}


@dataclass(slots=True, frozen=True)
class Interval:
    """Resolved interval of aware instants; ``start == end`` marks a point."""

    start: datetime.datetime
    end: datetime.datetime

    @property
    def is_point(self) -> bool:
        return self.start == self.end

    def widened(self, delta: datetime.timedelta) -> "Interval":
        if not delta:
            return self
        return Interval(self.start - delta, self.end + delta)


@dataclass(slots=True, frozen=True)
class CustomRange:
    """Caller-supplied ``[start, end)`` display range."""

    start: ScheduleValue
    end: ScheduleValue


DateRangeSpec = Union[str, CustomRange, None]


def intervals_overlap(a: Interval, b: Interval) -> bool:
    """Half-open overlap test; symmetric in its arguments.

    A point overlaps an interval when ``start <= point < end``; two points
    overlap only when they coincide.
    """

    if a.is_point and b.is_point:
        return a.start == b.start
    if a.is_point:
        return b.start <= a.start < b.end
    if b.is_point:
        return a.start <= b.start < a.end
    return a.start < b.end and a.end > b.start


def _usable(value: ScheduleValue, tz: datetime.tzinfo) -> bool:
    return bool(value) and parse_instant(value, tz) is not None


def _day_span(
    value: ScheduleValue, tz: datetime.tzinfo
) -> Optional[tuple[datetime.datetime, datetime.datetime]]:
    day = parse_calendar_day(value, tz)
    if day is None:
        return None
    return zone_midnight(day, tz), zone_midnight(day + datetime.timedelta(days=1), tz)


def _instant_span(
    value: ScheduleValue, tz: datetime.tzinfo
) -> Optional[tuple[datetime.datetime, datetime.datetime]]:
    moment = parse_exact_instant(value, tz)
    if moment is None:
        return None
    return moment, moment


def resolve_window(
    window: ScheduleWindow, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> Optional[Interval]:
    """Resolve a raw window to an :class:`Interval`, or None when it has no usable bound.

    A window whose usable bounds are all date-only covers whole calendar days.
    Once either bound carries a time of day, both bounds are read as exact
    instants, so an appointment ending at ``T00:00:00Z`` ends at that instant.
    With only one usable bound the window collapses to that bound (a point, or
    a whole day for date-only values). An end before the start collapses the
    window to its start.
    """

    bounds = [value for value in (window.start, window.end) if _usable(value, tz)]
    span = _day_span if all(is_date_only_value(value) for value in bounds) else _instant_span

    start_span = span(window.start, tz) if window.start else None
    end_span = span(window.end, tz) if window.end else None

    if start_span is None and end_span is None:
        return None
    if start_span is None:
        return Interval(*end_span)
    if end_span is None:
        return Interval(*start_span)

    start, end = start_span[0], end_span[1]
    if end < start:
        return Interval(*start_span)
    return Interval(start, end)


def is_within_range(
    window: ScheduleWindow,
    query_start: ScheduleValue,
    query_end: ScheduleValue,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> bool:
    """Return True when ``window`` overlaps ``[query_start, query_end)``.

    This is interval overlap, not containment: an appointment that starts
    before the query window and ends inside it is included.
    """

    interval = resolve_window(window, tz)
    if interval is None:
        return False
    q_start = parse_exact_instant(query_start, tz)
    q_end = parse_exact_instant(query_end, tz)
    if q_start is None or q_end is None:
        return False
    return intervals_overlap(interval, Interval(q_start, q_end))


def resolve_date_range(
    date_range: DateRangeSpec,
    now: ScheduleValue,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> Optional[Interval]:
    """Resolve a named or custom range to a concrete ``[start, end)`` interval.

    Named ranges start at the beginning of ``now``'s day in ``tz``. ``all``,
    ``None``, unknown names and unusable custom bounds return None, meaning
    no date filtering.
    """

    if date_range is None:
        return None

    if isinstance(date_range, (tuple, list)) and len(date_range) == 2:
        date_range = CustomRange(date_range[0], date_range[1])

    if isinstance(date_range, CustomRange):
        start = parse_exact_instant(date_range.start, tz)
        end = parse_exact_instant(date_range.end, tz)
        if start is None or end is None or end <= start:
            logger.debug("Ignoring unusable custom range %r", date_range)
            return None
        return Interval(start, end)

    if not isinstance(date_range, str):
        logger.debug("Ignoring unsupported date range %r", date_range)
        return None

    name = date_range.strip().lower()
    days = _NAMED_RANGE_DAYS.get(name)
    if days is None:
        if name and name != DateRange.ALL:
            logger.debug("Unknown date range %r; not filtering by date", date_range)
        return None

    moment = parse_exact_instant(now, tz) if now is not None else None
    if moment is None:
        logger.debug("Date range %r given without a usable 'now'", date_range)
        return None

    return Interval(start_of_day(moment, tz), start_of_next_day(moment, tz, days))


def day_interval(day: datetime.date, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> Interval:
    """Return the whole calendar ``day`` in ``tz`` as an interval."""

    return Interval(zone_midnight(day, tz), zone_midnight(day + datetime.timedelta(days=1), tz))


def job_intervals(
    job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> list[tuple[ScheduleWindow, Interval]]:
    """Return every resolvable window of ``job`` (job level first, then parts)."""

    resolved = []
    for window in job.windows:
        interval = resolve_window(window, tz)
        if interval is not None:
            resolved.append((window, interval))
    return resolved


def job_in_range(job: Job, query: Interval, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> bool:
    """Return True when any of the job's windows overlaps ``query``."""

    return any(intervals_overlap(interval, query) for _, interval in job_intervals(job, tz))


def primary_window(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> ScheduleWindow:
    """Return the single window used for card/list placement.

    Earliest start across the job and its parts, paired with the latest end.
    Ties go to the job-level window, then to parts in order.
    """

    resolved = job_intervals(job, tz)
    if not resolved:
        return ScheduleWindow()

    earliest_window, _ = min(resolved, key=lambda item: item[1].start)
    latest_window, _ = max(resolved, key=lambda item: item[1].end)
    start = earliest_window.start if _usable(earliest_window.start, tz) else earliest_window.end
    end = latest_window.end if _usable(latest_window.end, tz) else latest_window.start
    return ScheduleWindow(start, end)


def primary_interval(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> Optional[Interval]:
    """Resolved span from the earliest start to the latest end, or None."""

    resolved = job_intervals(job, tz)
    if not resolved:
        return None
    return Interval(
        min(interval.start for _, interval in resolved),
        max(interval.end for _, interval in resolved),
    )


def promise_day(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> Optional[datetime.date]:
    """Return the job's promise day, falling back to the earliest part promise."""

    day = parse_calendar_day(job.promised_date, tz)
    if day is not None:
        return day
    part_days = [
        d for d in (parse_calendar_day(p.promised_date, tz) for p in job.parts) if d is not None
    ]
    return min(part_days) if part_days else None


__all__ = [
    "CustomRange",
    "DateRange",
    "DateRangeSpec",
    "Interval",
    "day_interval",
    "intervals_overlap",
    "is_within_range",
    "job_in_range",
    "job_intervals",
    "primary_interval",
    "primary_window",
    "promise_day",
    "resolve_date_range",
    "resolve_window",
]
