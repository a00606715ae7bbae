"""Per-vendor double-booking detection."""

from __future__ import annotations

import datetime
from typing import Iterable, Sequence

from .dates import REFERENCE_TIMEZONE
from .models import Job, ensure_job_sequence
from .ranges import Interval, intervals_overlap, resolve_window


def _booked_windows(
    job: Job, tz: datetime.tzinfo
) -> Iterable[tuple[str, Interval]]:
    """Yield ``(resource_key, interval)`` for each fully bounded window of ``job``."""

    if job.vendor_id and job.scheduled_start and job.scheduled_end:
        interval = resolve_window(job.window, tz)
        if interval is not None:
            yield job.vendor_id, interval

    for part in job.parts:
        resource = part.vendor_id or job.vendor_id
        if not resource or not (part.scheduled_start and part.scheduled_end):
            continue
        interval = resolve_window(part.window, tz)
        if interval is not None:
            yield resource, interval


def detect_conflicts(
    jobs: Sequence[Job],
    *,
    buffer: datetime.timedelta = datetime.timedelta(0),
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> set[str]:
    """Return the ids of jobs whose windows overlap another job on the same vendor.

    ``jobs`` should already be scoped to live bookings. Each window is keyed
    by its part's vendor, else the job's vendor; windows without a vendor, or
    without both a start and an end, are ignored. ``buffer`` pads every
    window on both sides.

    Windows are swept in start order per vendor, so each one is compared only
    against windows that begin before it ends.
    """

    rows = ensure_job_sequence(jobs)
    by_resource: dict[str, list[tuple[str, Interval]]] = {}
    for job in rows:
        for resource, interval in _booked_windows(job, tz):
            by_resource.setdefault(resource, []).append((job.id, interval.widened(buffer)))

    conflicted: set[str] = set()
    for entries in by_resource.values():
        entries.sort(key=lambda entry: entry[1].start)
        for index, (first_id, first) in enumerate(entries):
            for second_id, second in entries[index + 1 :]:
                if second.start > first.end:
                    break
                if first_id != second_id and intervals_overlap(first, second):
                    conflicted.add(first_id)
                    conflicted.add(second_id)
    return conflicted


__all__ = ["detect_conflicts"]
