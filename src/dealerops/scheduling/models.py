"""Domain models describing jobs and their scheduling fields."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

ScheduleValue = Union[str, datetime.datetime, datetime.date, None]


class JobStatus:
    """Known job status values as stored by the job store."""

    DRAFT = "draft"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    BOOKED = "booked"
    PROMISED = "promised"
    IN_PROGRESS = "in_progress"
    QUALITY_CHECK = "quality_check"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    # Legacy values still present in older rows.
    CANCELED = "canceled"
    NO_SHOW = "no_show"
    DELIVERED = "delivered"

    SCHEDULED_LIKE = frozenset({SCHEDULED, BOOKED})
    LIVE_BOOKINGS = frozenset({SCHEDULED, IN_PROGRESS})
    BOOKED_OR_ACTIVE = frozenset({SCHEDULED, BOOKED, IN_PROGRESS})


class LocationType:
    """Where the work for a job happens, derived from its parts."""

    IN_HOUSE = "In-House"
    OFF_SITE = "Off-Site"
    MIXED = "Mixed"

    ALL = "All"
    CHOICES = frozenset({IN_HOUSE, OFF_SITE, MIXED})


@dataclass(slots=True, frozen=True)
class ScheduleWindow:
    """Raw scheduled window; either bound may be missing."""

    start: ScheduleValue = None
    end: ScheduleValue = None

    @property
    def is_empty(self) -> bool:
        return not self.start and not self.end


@dataclass(slots=True)
class JobPart:
    """Line item on a job, optionally carrying its own schedule and vendor."""

    id: Optional[str] = None
    scheduled_start: ScheduleValue = None
    scheduled_end: ScheduleValue = None
    promised_date: ScheduleValue = None
    vendor_id: Optional[str] = None
    is_off_site: Optional[bool] = None
    requires_scheduling: bool = False

    @property
    def window(self) -> ScheduleWindow:
        return ScheduleWindow(self.scheduled_start, self.scheduled_end)


@dataclass(slots=True)
class Vehicle:
    """Vehicle attached to a job."""

    description: Optional[str] = None
    stock_number: Optional[str] = None
    vin: Optional[str] = None
    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    owner_name: Optional[str] = None
    owner_phone: Optional[str] = None

    @property
    def label(self) -> str:
        """Return a short label such as ``2024 Honda Accord • Stock S123``."""

        base = " ".join(str(v) for v in (self.year, self.make, self.model) if v)
        if not base and self.description:
            base = self.description
        if self.stock_number:
            return f"{base} • Stock {self.stock_number}".strip(" •")
        return base


@dataclass(slots=True)
class Job:
    """Job as seen by the scheduling core; read-only from its perspective."""

    id: str
    status: str = JobStatus.PENDING
    scheduled_start: ScheduleValue = None
    scheduled_end: ScheduleValue = None
    promised_date: ScheduleValue = None
    parts: tuple[JobPart, ...] = ()
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    delivery_coordinator_id: Optional[str] = None
    assigned_to: Optional[str] = None
    service_type: Optional[str] = None
    job_number: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    vehicle_description: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    stock_number: Optional[str] = None
    vehicle: Optional[Vehicle] = None
    completed_at: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def window(self) -> ScheduleWindow:
        """Job-level window, ignoring parts."""

        return ScheduleWindow(self.scheduled_start, self.scheduled_end)

    @property
    def windows(self) -> list[ScheduleWindow]:
        """Job-level window followed by every part window that has a bound."""

        windows = [self.window] if not self.window.is_empty else []
        windows.extend(p.window for p in self.parts if not p.window.is_empty)
        return windows

    @property
    def has_schedule(self) -> bool:
        return bool(self.windows)

    @property
    def vehicle_label(self) -> str:
        if self.vehicle is None:
            return ""
        return self.vehicle.label


@dataclass(slots=True, frozen=True)
class ScheduleFlags:
    """Explicit configuration for the filter pipeline and conflict pass."""

    include_promised_only: bool = True
    include_unscheduled_when_unbounded: bool = False
    conflict_buffer: datetime.timedelta = datetime.timedelta(0)


@dataclass(slots=True, frozen=True)
class StatusChange:
    """A requested status transition for the status sink to apply."""

    job_id: str
    status: str
    extra: Mapping[str, Any] = field(default_factory=dict)


def ensure_job_sequence(value: Any, name: str = "jobs") -> Sequence[Job]:
    """Return ``value`` when it is a sequence of jobs; raise TypeError otherwise.

    A missing or non-sequence argument is an integration bug, so it fails
    loudly instead of producing an empty result.
    """

    if value is None or isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        raise TypeError(f"'{name}' must be a sequence of jobs, got {type(value).__name__}")
    return value


__all__ = [
    "Job",
    "JobPart",
    "JobStatus",
    "LocationType",
    "ScheduleFlags",
    "ScheduleValue",
    "ScheduleWindow",
    "StatusChange",
    "Vehicle",
    "ensure_job_sequence",
]
