"""Grouping helpers for calendar lanes and the agenda list."""

from __future__ import annotations

import datetime
from typing import Optional, Sequence

from .dates import REFERENCE_TIMEZONE, UNSCHEDULED, to_canonical_date_key
from .models import Job, LocationType, ensure_job_sequence
from .ranges import primary_window, promise_day

UNASSIGNED = "unassigned"

_OFF_SITE_SERVICE_TYPES = frozenset({"vendor", "offsite", "off_site", "off-site"})
_IN_HOUSE_SERVICE_TYPES = frozenset({"onsite", "on_site", "in_house", "in-house"})


def derive_location(job: Job) -> Optional[str]:
    """Classify where the job's work happens.

    Parts flagged off-site and in-house together make the job ``Mixed``.
    Without flagged parts the job's ``service_type`` decides.
    """

    has_off_site = any(part.is_off_site is True for part in job.parts)
    has_in_house = any(part.is_off_site is False for part in job.parts)
    if has_off_site and has_in_house:
        return LocationType.MIXED
    if has_off_site:
        return LocationType.OFF_SITE
    if has_in_house:
        return LocationType.IN_HOUSE

    service_type = str(job.service_type or "").strip().lower()
    if service_type in _OFF_SITE_SERVICE_TYPES:
        return LocationType.OFF_SITE
    if service_type in _IN_HOUSE_SERVICE_TYPES:
        return LocationType.IN_HOUSE
    return None


def group_by_vendor(jobs: Sequence[Job]) -> dict[str, list[Job]]:
    """Map vendor id to its jobs; jobs without a vendor land under ``unassigned``."""

    grouped: dict[str, list[Job]] = {}
    for job in ensure_job_sequence(jobs):
        grouped.setdefault(job.vendor_id or UNASSIGNED, []).append(job)
    return grouped


def group_by_location(jobs: Sequence[Job]) -> dict[str, list[Job]]:
    """Split jobs into ``onsite`` and ``offsite`` lanes; mixed jobs go off-site."""

    lanes: dict[str, list[Job]] = {"onsite": [], "offsite": []}
    for job in ensure_job_sequence(jobs):
        location = derive_location(job)
        if location in (LocationType.OFF_SITE, LocationType.MIXED):
            lanes["offsite"].append(job)
        else:
            lanes["onsite"].append(job)
    return lanes


def day_key_for(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> tuple[str, bool]:
    """Return ``(day_key, all_day)`` for placing ``job`` on the agenda.

    Timed jobs use the day of their primary start; promise-only jobs use the
    promise day and are flagged all-day.
    """

    window = primary_window(job, tz)
    if window.start is not None:
        return to_canonical_date_key(window.start, tz), False
    promised = promise_day(job, tz)
    if promised is not None:
        return promised.isoformat(), True
    return UNSCHEDULED, True


def group_by_day(
    jobs: Sequence[Job], tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> list[tuple[str, list[Job]]]:
    """Group jobs into agenda days, sorted by day key.

    Within a day, all-day items come first; input order is kept otherwise.
    Jobs with neither a window nor a promise collect under ``unscheduled``,
    which sorts after every date.
    """

    buckets: dict[str, tuple[list[Job], list[Job]]] = {}
    for job in ensure_job_sequence(jobs):
        key, all_day = day_key_for(job, tz)
        all_day_items, timed_items = buckets.setdefault(key, ([], []))
        (all_day_items if all_day else timed_items).append(job)

    return [
        (key, [*all_day_items, *timed_items])
        for key, (all_day_items, timed_items) in sorted(buckets.items())
    ]


__all__ = [
    "UNASSIGNED",
    "day_key_for",
    "derive_location",
    "group_by_day",
    "group_by_location",
    "group_by_vendor",
]
