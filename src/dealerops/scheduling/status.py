"""Display-only status derivation and status-change planning.

Nothing here writes to the job store. The functions compute what a job
should *look like* right now, or which status a consumer should request when
acting on it; applying the change is the job store's business.
"""

from __future__ import annotations

import datetime
from typing import Any, Optional

from .dates import (
    REFERENCE_TIMEZONE,
    coerce_now,
    is_date_only_value,
    parse_calendar_day,
    parse_instant,
    to_rfc3339,
)
from .models import Job, JobStatus, ScheduleValue, StatusChange
from .ranges import primary_interval, promise_day

_OVERDUE_RECENT_DAYS = 7


class ScheduleState:
    """Buckets used by the active-appointments snapshot."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    OVERDUE_RECENT = "overdue_recent"
    OVERDUE_OLD = "overdue_old"
    SCHEDULED_NO_TIME = "scheduled_no_time"
    UNSCHEDULED = "unscheduled"


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower()


def relevant_start(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> ScheduleValue:
    """Return the start that drives promotion: job level, else the earliest part start."""

    if parse_instant(job.scheduled_start, tz) is not None:
        return job.scheduled_start

    candidates = [
        (moment, part.scheduled_start)
        for part in job.parts
        if (moment := parse_instant(part.scheduled_start, tz)) is not None
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda item: item[0])[1]


def _has_started(start: ScheduleValue, now: datetime.datetime, tz: datetime.tzinfo) -> bool:
    # Date-only starts promote once the reference-zone day arrives, not at UTC midnight.
    if is_date_only_value(start):
        start_day = parse_calendar_day(start, tz)
        now_day = parse_calendar_day(now, tz)
        return start_day is not None and now_day is not None and now_day >= start_day
    start_at = parse_instant(start, tz)
    return start_at is not None and start_at <= now


def get_effective_status(
    job: Job, now: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> str:
    """Return the status to display for ``job`` at ``now``.

    ``scheduled`` and ``booked`` jobs whose start has arrived display as
    ``in_progress``. Every other status passes through unchanged.
    """

    moment = coerce_now(now)
    base = normalize_status(job.status)
    if base not in JobStatus.SCHEDULED_LIKE:
        return base

    start = relevant_start(job, tz)
    if start is None:
        return base
    return JobStatus.IN_PROGRESS if _has_started(start, moment, tz) else base


def get_uncomplete_target_status(
    job: Job, now: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> str:
    """Return the status a completed job reverts to.

    ``scheduled`` while its start is still ahead, otherwise ``in_progress``.
    A job with no schedule at all is assumed to have been worked.
    """

    moment = coerce_now(now)
    start = relevant_start(job, tz)
    if start is None:
        return JobStatus.IN_PROGRESS
    return JobStatus.IN_PROGRESS if _has_started(start, moment, tz) else JobStatus.SCHEDULED


def get_reopen_target_status(
    job: Job, now: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> str:
    """Completed jobs reopen into ``quality_check``; others follow the uncomplete rule."""

    if normalize_status(job.status) == JobStatus.COMPLETED:
        coerce_now(now)
        return JobStatus.QUALITY_CHECK
    return get_uncomplete_target_status(job, now, tz)


def classify_schedule_state(
    job: Job, now: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> str:
    """Place ``job`` in one of the :class:`ScheduleState` buckets at ``now``.

    Overdue means the scheduled window ended before ``now``; it is recent
    for up to seven days. Promise-only jobs are compared by calendar day in
    ``tz``.
    """

    moment = coerce_now(now)
    status = normalize_status(job.status)
    active = status in (JobStatus.IN_PROGRESS, JobStatus.QUALITY_CHECK)
    interval = primary_interval(job, tz)

    if interval is None:
        promised = promise_day(job, tz)
        if promised is None:
            return ScheduleState.UNSCHEDULED
        if active:
            return ScheduleState.IN_PROGRESS
        today = parse_calendar_day(moment, tz)
        if today is not None and promised < today:
            days = (today - promised).days
            return (
                ScheduleState.OVERDUE_RECENT
                if days <= _OVERDUE_RECENT_DAYS
                else ScheduleState.OVERDUE_OLD
            )
        return ScheduleState.SCHEDULED_NO_TIME

    if active:
        return ScheduleState.IN_PROGRESS
    if interval.end < moment:
        days = (moment - interval.end) // datetime.timedelta(days=1)
        return (
            ScheduleState.OVERDUE_RECENT if days <= _OVERDUE_RECENT_DAYS else ScheduleState.OVERDUE_OLD
        )
    return ScheduleState.SCHEDULED


def plan_completion(job: Job, now: ScheduleValue) -> StatusChange:
    """Request to mark ``job`` completed at ``now``."""

    moment = coerce_now(now)
    return StatusChange(
        job_id=job.id,
        status=JobStatus.COMPLETED,
        extra={"completed_at": to_rfc3339(moment)},
    )


def plan_reopen(
    job: Job, now: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> StatusChange:
    """Request to reopen ``job``, clearing its completion timestamp."""

    return StatusChange(
        job_id=job.id,
        status=get_reopen_target_status(job, now, tz),
        extra={"completed_at": None},
    )


def plan_undo_completion(
    job: Job,
    previous_status: Optional[str],
    previous_completed_at: Optional[str],
    now: ScheduleValue,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> StatusChange:
    """Request to undo a completion that was just applied to ``job``.

    ``quality_check`` and ``delivered`` are restored as they were; anything
    else reverts by the uncomplete rule.
    """

    previous = normalize_status(previous_status)
    if previous in (JobStatus.QUALITY_CHECK, JobStatus.DELIVERED):
        coerce_now(now)
        target = previous
    else:
        target = get_uncomplete_target_status(job, now, tz)
    return StatusChange(
        job_id=job.id,
        status=target,
        extra={"completed_at": previous_completed_at},
    )


__all__ = [
    "ScheduleState",
    "classify_schedule_state",
    "get_effective_status",
    "get_reopen_target_status",
    "get_uncomplete_target_status",
    "normalize_status",
    "plan_completion",
    "plan_reopen",
    "plan_undo_completion",
    "relevant_start",
]
