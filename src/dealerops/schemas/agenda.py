"""Request and response models for the agenda API."""

from __future__ import annotations

import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..scheduling.models import ScheduleValue, StatusChange


def _as_text(value: ScheduleValue) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return str(value)


class CustomRangePayload(BaseModel):
    start: str
    end: str


class FilterCriteriaPayload(BaseModel):
    """Filter criteria as posted by the UI; unknown keys are ignored."""

    date_range: Union[str, CustomRangePayload, None] = Field(
        default=None, description="Named range (today, next3days, week, month, all) or custom bounds"
    )
    now: Optional[str] = None
    assignee: Optional[str] = None
    assignee_id: Optional[str] = None
    location: Optional[str] = None
    query: Optional[str] = None
    status: Optional[str] = None
    vendor_id: Optional[str] = None

    def to_mapping(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class FilterRequest(BaseModel):
    jobs: list[dict[str, Any]] = Field(default_factory=list)
    criteria: FilterCriteriaPayload = Field(default_factory=FilterCriteriaPayload)
    now: Optional[str] = Field(default=None, description="Current moment; defaults to server time")


class ConflictRequest(BaseModel):
    jobs: list[dict[str, Any]] = Field(default_factory=list)
    buffer_minutes: Optional[int] = Field(default=None, ge=0, le=24 * 60)


class ConflictResponse(BaseModel):
    conflict_ids: list[str]


StatusAction = Literal["complete", "reopen", "uncomplete", "undo"]


class StatusTargetRequest(BaseModel):
    job: dict[str, Any]
    action: StatusAction
    now: Optional[str] = None
    previous_status: Optional[str] = None
    previous_completed_at: Optional[str] = None


class StatusChangeResponse(BaseModel):
    job_id: str
    status: str
    extra: dict[str, Any] = Field(default_factory=dict)
    effective_status: Optional[str] = None

    @classmethod
    def from_change(
        cls, change: StatusChange, effective_status: Optional[str] = None
    ) -> "StatusChangeResponse":
        return cls(
            job_id=change.job_id,
            status=change.status,
            extra=dict(change.extra),
            effective_status=effective_status,
        )


class UndoCompletionRequest(BaseModel):
    previous_status: Optional[str] = None
    previous_completed_at: Optional[str] = None


class CompletionResponse(StatusChangeResponse):
    previous_status: str
    previous_completed_at: Optional[str] = None


class AgendaItemModel(BaseModel):
    job_id: str
    job_number: Optional[str] = None
    title: Optional[str] = None
    status: str
    effective_status: str
    conflict: bool = False
    day_key: str
    all_day: bool = False
    schedule_label: str
    badge: str = ""
    location: Optional[str] = None
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    customer_name: Optional[str] = None
    vehicle_label: str = ""
    scheduled_start: Optional[str] = None
    scheduled_end: Optional[str] = None
    promised_date: Optional[str] = None


class AgendaDayModel(BaseModel):
    key: str
    header: str
    items: list[AgendaItemModel]


class AgendaResponse(BaseModel):
    generated_at: datetime.datetime
    total: int
    job_ids: list[str]
    conflict_ids: list[str]
    days: list[AgendaDayModel]

    @classmethod
    def from_agenda(cls, agenda: Any) -> "AgendaResponse":
        days = []
        for day in agenda.days:
            items = []
            for item in day.items:
                job = item.job
                items.append(
                    AgendaItemModel(
                        job_id=job.id,
                        job_number=job.job_number,
                        title=job.title,
                        status=job.status,
                        effective_status=item.effective_status,
                        conflict=item.conflict,
                        day_key=item.day_key,
                        all_day=item.all_day,
                        schedule_label=item.schedule_label,
                        badge=item.badge,
                        location=item.location,
                        vendor_id=job.vendor_id,
                        vendor_name=job.vendor_name,
                        customer_name=job.customer_name,
                        vehicle_label=job.vehicle_label,
                        scheduled_start=_as_text(job.scheduled_start),
                        scheduled_end=_as_text(job.scheduled_end),
                        promised_date=_as_text(job.promised_date),
                    )
                )
            days.append(AgendaDayModel(key=day.key, header=day.header, items=items))
        return cls(
            generated_at=agenda.generated_at,
            total=agenda.total,
            job_ids=list(agenda.job_ids),
            conflict_ids=sorted(agenda.conflict_ids),
            days=days,
        )


__all__ = [
    "AgendaDayModel",
    "AgendaItemModel",
    "AgendaResponse",
    "CompletionResponse",
    "ConflictRequest",
    "ConflictResponse",
    "CustomRangePayload",
    "FilterCriteriaPayload",
    "FilterRequest",
    "StatusChangeResponse",
    "StatusTargetRequest",
    "UndoCompletionRequest",
]
