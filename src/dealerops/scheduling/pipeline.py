"""Filter pipeline answering "which jobs are visible under these filters"."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from .dates import REFERENCE_TIMEZONE
from .grouping import derive_location
from .models import Job, JobStatus, LocationType, ScheduleFlags, ScheduleValue, ensure_job_sequence
from .query import matches, normalize_query
from .ranges import (
    CustomRange,
    DateRange,
    DateRangeSpec,
    Interval,
    day_interval,
    intervals_overlap,
    job_intervals,
    primary_interval,
    promise_day,
    resolve_date_range,
)
from .status import ScheduleState, classify_schedule_state, normalize_status

logger = logging.getLogger(__name__)

ASSIGNEE_ME = "me"

_LOCATION_ALIASES = {
    "in-house": LocationType.IN_HOUSE,
    "in_house": LocationType.IN_HOUSE,
    "off-site": LocationType.OFF_SITE,
    "off_site": LocationType.OFF_SITE,
    "mixed": LocationType.MIXED,
}


def _optional_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


@dataclass(slots=True, frozen=True)
class FilterCriteria:
    """Filters applied by :func:`apply_filters`; every field is optional.

    ``now`` is always supplied by the caller; the pipeline never reads a clock.
    """

    date_range: DateRangeSpec = None
    now: Union[ScheduleValue, datetime.datetime] = None
    assignee: Optional[str] = None
    assignee_id: Optional[str] = None
    location: Optional[str] = None
    query: Optional[str] = None
    status: Optional[str] = None
    vendor_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Any) -> "FilterCriteria":
        """Build criteria from a loosely shaped mapping.

        Malformed entries are dropped, which disables that stage instead of
        failing the whole pipeline.
        """

        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            logger.debug("Ignoring non-mapping filter criteria %r", data)
            return cls()

        raw_range = _first(data, "date_range", "dateRange")
        date_range: DateRangeSpec
        if isinstance(raw_range, Mapping):
            date_range = CustomRange(raw_range.get("start"), raw_range.get("end"))
        elif isinstance(raw_range, (list, tuple)) and len(raw_range) == 2:
            date_range = CustomRange(raw_range[0], raw_range[1])
        else:
            date_range = _optional_str(raw_range)

        now = data.get("now")
        if not isinstance(now, (str, datetime.datetime)):
            now = None

        return cls(
            date_range=date_range,
            now=now,
            assignee=_optional_str(data.get("assignee")),
            assignee_id=_optional_str(_first(data, "assignee_id", "assigneeId")),
            location=_optional_str(data.get("location")),
            query=data.get("query") if isinstance(data.get("query"), str) else _optional_str(data.get("q")),
            status=_optional_str(data.get("status")),
            vendor_id=_optional_str(_first(data, "vendor_id", "vendorId", "vendor")),
        )


def _coerce_criteria(criteria: Any) -> FilterCriteria:
    if isinstance(criteria, FilterCriteria):
        return criteria
    return FilterCriteria.from_mapping(criteria)


def _resolve_location(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if value in LocationType.CHOICES:
        return value
    normalized = value.strip().lower()
    if normalized == LocationType.ALL.lower():
        return None
    location = _LOCATION_ALIASES.get(normalized)
    if location is None:
        logger.debug("Unknown location filter %r; not filtering by location", value)
    return location


def _in_window(job: Job, window: Interval, flags: ScheduleFlags, tz: datetime.tzinfo) -> bool:
    resolved = job_intervals(job, tz)
    if resolved:
        return any(intervals_overlap(interval, window) for _, interval in resolved)
    if not flags.include_promised_only:
        return False
    # Promise-only jobs sit in the all-day lane of their promise day.
    promised = promise_day(job, tz)
    return promised is not None and intervals_overlap(day_interval(promised, tz), window)


def _has_vendor(job: Job, vendor_id: str) -> bool:
    if job.vendor_id == vendor_id:
        return True
    return any(part.vendor_id == vendor_id for part in job.parts)


def apply_filters(
    jobs: Sequence[Job],
    criteria: Union[FilterCriteria, Mapping[str, Any], None] = None,
    flags: Optional[ScheduleFlags] = None,
    *,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> list[Job]:
    """Return the jobs visible under ``criteria``, preserving input order.

    Stages run in order and each only narrows the previous result:

    1. resolve ``date_range`` against ``now``;
    2. keep jobs with any window overlapping it, or promise-only jobs whose
       promise day falls inside it;
    3. ``assignee == "me"`` keeps jobs coordinated by ``assignee_id``;
    4. a specific ``location`` keeps jobs of that classification;
    5. exact ``status`` and ``vendor_id`` filters;
    6. a non-blank ``query`` keeps jobs matching the free-text search.

    Raises:
        TypeError: if ``jobs`` is not a sequence.
    """

    candidates = list(ensure_job_sequence(jobs))
    criteria = _coerce_criteria(criteria)
    flags = flags or ScheduleFlags()

    window = resolve_date_range(criteria.date_range, criteria.now, tz)
    if window is not None:
        candidates = [job for job in candidates if _in_window(job, window, flags, tz)]
    elif not flags.include_unscheduled_when_unbounded:
        candidates = [
            job for job in candidates if job_intervals(job, tz) or promise_day(job, tz) is not None
        ]

    if criteria.assignee and criteria.assignee.strip().lower() == ASSIGNEE_ME:
        if criteria.assignee_id:
            candidates = [
                job for job in candidates if job.delivery_coordinator_id == criteria.assignee_id
            ]
        else:
            logger.debug("Assignee 'me' given without an id; not filtering by assignee")

    location = _resolve_location(criteria.location)
    if location is not None:
        candidates = [job for job in candidates if derive_location(job) == location]

    if criteria.status:
        wanted = normalize_status(criteria.status)
        candidates = [job for job in candidates if normalize_status(job.status) == wanted]

    if criteria.vendor_id:
        candidates = [job for job in candidates if _has_vendor(job, criteria.vendor_id)]

    if normalize_query(criteria.query):
        candidates = [job for job in candidates if matches(job, criteria.query)]

    return candidates


def _start_key(job: Job, tz: datetime.tzinfo) -> datetime.datetime:
    interval = primary_interval(job, tz)
    if interval is None:
        return datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)
    return interval.start


def filter_and_sort(
    jobs: Sequence[Job], *, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> list[Job]:
    """Return live bookings that have a start, sorted ascending by start.

    Live bookings are stored ``scheduled`` and ``in_progress`` jobs. Ties keep
    input order.
    """

    live = [
        job
        for job in ensure_job_sequence(jobs)
        if normalize_status(job.status) in JobStatus.LIVE_BOOKINGS
        and primary_interval(job, tz) is not None
    ]
    return sorted(live, key=lambda job: _start_key(job, tz))


@dataclass(slots=True)
class SnapshotBuckets:
    """Active-appointment snapshot split by schedule state."""

    upcoming: list[Job] = field(default_factory=list)
    overdue_recent: list[Job] = field(default_factory=list)
    overdue_old: list[Job] = field(default_factory=list)


def split_snapshot_items(
    jobs: Sequence[Job],
    now: Union[ScheduleValue, datetime.datetime],
    *,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> SnapshotBuckets:
    """Split scheduled jobs into upcoming, recently overdue and long overdue.

    Jobs without a scheduled start are skipped; each bucket is sorted by start.
    """

    buckets = SnapshotBuckets()
    for job in ensure_job_sequence(jobs):
        if primary_interval(job, tz) is None:
            continue
        state = classify_schedule_state(job, now, tz)
        if state in (ScheduleState.SCHEDULED, ScheduleState.IN_PROGRESS):
            buckets.upcoming.append(job)
        elif state == ScheduleState.OVERDUE_RECENT:
            buckets.overdue_recent.append(job)
        elif state == ScheduleState.OVERDUE_OLD:
            buckets.overdue_old.append(job)

    for bucket in (buckets.upcoming, buckets.overdue_recent, buckets.overdue_old):
        bucket.sort(key=lambda job: _start_key(job, tz))
    return buckets


__all__ = [
    "ASSIGNEE_ME",
    "DateRange",
    "FilterCriteria",
    "SnapshotBuckets",
    "apply_filters",
    "filter_and_sort",
    "split_snapshot_items",
]
