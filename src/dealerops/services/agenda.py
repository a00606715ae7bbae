"""Agenda service composing the job store with the scheduling core."""

from __future__ import annotations

import dataclasses
import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..scheduling.conflicts import detect_conflicts
from ..scheduling.dates import REFERENCE_TIMEZONE, UNSCHEDULED, format_day_header
from ..scheduling.display import schedule_display
from ..scheduling.grouping import day_key_for, derive_location, group_by_day
from ..scheduling.models import Job, JobStatus, ScheduleFlags, StatusChange
from ..scheduling.pipeline import FilterCriteria, apply_filters
from ..scheduling.status import (
    get_effective_status,
    normalize_status,
    plan_completion,
    plan_reopen,
    plan_undo_completion,
)
from .job_store import Clock, JobSource, JobStatusSink, utc_now
from .mappers import job_from_record

logger = logging.getLogger(__name__)

@dataclass(slots=True)
class AgendaItem:
    """A job annotated for display at a given moment."""

    job: Job
    effective_status: str
    conflict: bool
    day_key: str
    all_day: bool
    schedule_label: str
    badge: str = ""
    location: Optional[str] = None


@dataclass(slots=True)
class AgendaDay:
    key: str
    header: str
    items: list[AgendaItem] = field(default_factory=list)


@dataclass(slots=True)
class Agenda:
    """Filtered jobs grouped by day, with the conflict set for the same scope."""

    days: list[AgendaDay]
    job_ids: list[str]
    conflict_ids: set[str]
    generated_at: datetime.datetime

    @property
    def total(self) -> int:
        return len(self.job_ids)


@dataclass(slots=True, frozen=True)
class CompletionReceipt:
    """What a completion changed, kept so the consumer can undo it."""

    change: StatusChange
    previous_status: str
    previous_completed_at: Optional[str]
    row: Mapping[str, Any]


def map_records(records: Iterable[Mapping[str, Any]]) -> list[Job]:
    """Map store rows to jobs, skipping rows that cannot be mapped."""

    jobs: list[Job] = []
    for record in records:
        try:
            jobs.append(job_from_record(record))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping unmappable job row: %s", exc)
    return jobs


def conflict_scope(jobs: Sequence[Job]) -> list[Job]:
    """Jobs that occupy a vendor: stored scheduled, booked or in progress."""

    return [job for job in jobs if normalize_status(job.status) in JobStatus.BOOKED_OR_ACTIVE]


def build_agenda_from_jobs(
    jobs: Sequence[Job],
    criteria: Union[FilterCriteria, Mapping[str, Any], None],
    now: datetime.datetime,
    flags: Optional[ScheduleFlags] = None,
    *,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> Agenda:
    """Filter, annotate and group ``jobs`` as seen at ``now``.

    ``criteria.now`` is replaced by ``now`` when the caller left it unset.
    """

    flags = flags or ScheduleFlags()
    if not isinstance(criteria, FilterCriteria):
        criteria = FilterCriteria.from_mapping(criteria)
    if criteria.now is None:
        criteria = dataclasses.replace(criteria, now=now)

    visible = apply_filters(jobs, criteria, flags, tz=tz)
    conflicts = detect_conflicts(conflict_scope(visible), buffer=flags.conflict_buffer, tz=tz)

    days: list[AgendaDay] = []
    for key, day_jobs in group_by_day(visible, tz):
        header = "Unscheduled" if key == UNSCHEDULED else format_day_header(key, tz)
        day = AgendaDay(key=key, header=header)
        for job in day_jobs:
            _, all_day = day_key_for(job, tz)
            display = schedule_display(job, tz)
            day.items.append(
                AgendaItem(
                    job=job,
                    effective_status=get_effective_status(job, now, tz),
                    conflict=job.id in conflicts,
                    day_key=key,
                    all_day=all_day,
                    schedule_label=display.primary,
                    badge=display.badge,
                    location=derive_location(job),
                )
            )
        days.append(day)

    return Agenda(
        days=days,
        job_ids=[job.id for job in visible],
        conflict_ids=conflicts,
        generated_at=now,
    )


class AgendaService:
    """Build agendas from the job store and apply status actions to it.

    The service owns the clock; every call into the scheduling core receives
    ``now`` explicitly.
    """

    def __init__(
        self,
        source: JobSource,
        sink: JobStatusSink,
        flags: Optional[ScheduleFlags] = None,
        *,
        tz: datetime.tzinfo = REFERENCE_TIMEZONE,
        clock: Clock = utc_now,
    ) -> None:
        self._source = source
        self._sink = sink
        self._flags = flags or ScheduleFlags()
        self._tz = tz
        self._clock = clock

    @property
    def flags(self) -> ScheduleFlags:
        return self._flags

    @property
    def timezone(self) -> datetime.tzinfo:
        return self._tz

    def now(self) -> datetime.datetime:
        return self._clock()

    async def build_agenda(
        self, criteria: Union[FilterCriteria, Mapping[str, Any], None] = None
    ) -> Agenda:
        rows = await self._source.fetch_jobs()
        jobs = map_records(rows)
        return build_agenda_from_jobs(jobs, criteria, self.now(), self._flags, tz=self._tz)

    async def _load(self, job_id: str) -> Job:
        return job_from_record(await self._source.fetch_job(job_id))

    async def _apply(self, change: StatusChange) -> dict[str, Any]:
        return await self._sink.update_job_status(change.job_id, change.status, dict(change.extra))

    async def complete_job(self, job_id: str) -> CompletionReceipt:
        job = await self._load(job_id)
        change = plan_completion(job, self.now())
        row = await self._apply(change)
        return CompletionReceipt(
            change=change,
            previous_status=normalize_status(job.status),
            previous_completed_at=job.completed_at,
            row=row,
        )

    async def reopen_job(self, job_id: str) -> tuple[StatusChange, dict[str, Any]]:
        job = await self._load(job_id)
        change = plan_reopen(job, self.now(), self._tz)
        return change, await self._apply(change)

    async def undo_completion(
        self,
        job_id: str,
        previous_status: Optional[str],
        previous_completed_at: Optional[str] = None,
    ) -> tuple[StatusChange, dict[str, Any]]:
        """Revert a completion made through :meth:`complete_job`."""

        job = await self._load(job_id)
        change = plan_undo_completion(
            job, previous_status, previous_completed_at, self.now(), self._tz
        )
        return change, await self._apply(change)


__all__ = [
    "Agenda",
    "AgendaDay",
    "AgendaItem",
    "AgendaService",
    "CompletionReceipt",
    "build_agenda_from_jobs",
    "conflict_scope",
    "map_records",
]
