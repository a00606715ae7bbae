"""Human-readable schedule labels for agenda rows and calendar cards."""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from .dates import (
    REFERENCE_TIMEZONE,
    format_day_header,
    format_display_time_window,
    is_date_only_value,
)
from .models import Job
from .ranges import primary_window, promise_day

NO_SCHEDULE = "—"
TIME_TBD = "Time TBD"
NO_TIME_BADGE = "Scheduled (No Time)"


@dataclass(slots=True, frozen=True)
class ScheduleDisplay:
    primary: str
    badge: str = ""


def schedule_display(job: Job, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> ScheduleDisplay:
    """Return the schedule label and badge shown for ``job``."""

    window = primary_window(job, tz)
    start = window.start

    if start is not None and not is_date_only_value(start):
        header = format_day_header(start, tz)
        times = format_display_time_window(start, window.end, tz)
        if header and times:
            return ScheduleDisplay(f"{header} • {times} ET")
        return ScheduleDisplay(NO_SCHEDULE)

    if start is not None:
        header = format_day_header(start, tz)
        return ScheduleDisplay(f"{header} • {TIME_TBD}" if header else NO_SCHEDULE)

    promised = promise_day(job, tz)
    if promised is not None:
        return ScheduleDisplay(
            f"All-day ({TIME_TBD}) • {format_day_header(promised, tz)}",
            badge=NO_TIME_BADGE,
        )

    return ScheduleDisplay(NO_SCHEDULE)


__all__ = ["NO_SCHEDULE", "ScheduleDisplay", "schedule_display"]
