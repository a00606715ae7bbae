"""API routes for the scheduling agenda."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..config import Settings, get_settings
from ..scheduling.conflicts import detect_conflicts
from ..scheduling.dates import coerce_now
from ..scheduling.models import Job, StatusChange
from ..scheduling.status import (
    get_effective_status,
    get_uncomplete_target_status,
    plan_completion,
    plan_reopen,
    plan_undo_completion,
)
from ..schemas.agenda import (
    AgendaResponse,
    CompletionResponse,
    ConflictRequest,
    ConflictResponse,
    FilterRequest,
    StatusChangeResponse,
    StatusTargetRequest,
    UndoCompletionRequest,
)
from ..services.agenda import AgendaService, build_agenda_from_jobs, conflict_scope, map_records
from ..services.job_store import JobNotFoundError, JobStoreError
from ..services.mappers import job_from_record

router = APIRouter(prefix="/api/agenda", tags=["agenda"])


def get_agenda_service(request: Request) -> AgendaService:
    service = getattr(request.app.state, "agenda_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job store is not configured",
        )
    return service


def get_schedule_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def _resolve_now(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        return coerce_now(value)
    except TypeError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _map_job(record: dict) -> Job:
    try:
        return job_from_record(record)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _store_error(exc: JobStoreError) -> HTTPException:
    if isinstance(exc, JobNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.detail)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.detail)


@router.post("/filter", response_model=AgendaResponse)
async def filter_jobs(
    payload: FilterRequest,
    settings: Settings = Depends(get_schedule_settings),
) -> AgendaResponse:
    """Evaluate filters over posted job records without touching the store."""

    now = _resolve_now(payload.now or payload.criteria.now)
    # Range resolution and effective status must see the same moment.
    criteria = {**payload.criteria.to_mapping(), "now": now}
    agenda = build_agenda_from_jobs(
        map_records(payload.jobs),
        criteria,
        now,
        settings.schedule_flags(),
        tz=settings.timezone,
    )
    return AgendaResponse.from_agenda(agenda)


@router.post("/conflicts", response_model=ConflictResponse)
async def find_conflicts(
    payload: ConflictRequest,
    settings: Settings = Depends(get_schedule_settings),
) -> ConflictResponse:
    buffer = settings.conflict_buffer
    if payload.buffer_minutes is not None:
        buffer = timedelta(minutes=payload.buffer_minutes)
    jobs = conflict_scope(map_records(payload.jobs))
    ids = detect_conflicts(jobs, buffer=buffer, tz=settings.timezone)
    return ConflictResponse(conflict_ids=sorted(ids))


@router.post("/status-target", response_model=StatusChangeResponse)
async def status_target(
    payload: StatusTargetRequest,
    settings: Settings = Depends(get_schedule_settings),
) -> StatusChangeResponse:
    """Return the status change an action would request, without applying it."""

    job = _map_job(payload.job)
    now = _resolve_now(payload.now)
    tz = settings.timezone

    if payload.action == "complete":
        change = plan_completion(job, now)
    elif payload.action == "reopen":
        change = plan_reopen(job, now, tz)
    elif payload.action == "undo":
        change = plan_undo_completion(
            job, payload.previous_status, payload.previous_completed_at, now, tz
        )
    else:
        change = StatusChange(
            job_id=job.id,
            status=get_uncomplete_target_status(job, now, tz),
            extra={"completed_at": None},
        )
    return StatusChangeResponse.from_change(change, get_effective_status(job, now, tz))


@router.get("", response_model=AgendaResponse)
async def read_agenda(
    date_range: Optional[str] = Query(default=None, alias="range"),
    assignee: Optional[str] = None,
    assignee_id: Optional[str] = None,
    location: Optional[str] = None,
    q: Optional[str] = None,
    job_status: Optional[str] = Query(default=None, alias="status"),
    vendor_id: Optional[str] = None,
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaResponse:
    criteria = {
        "date_range": date_range,
        "assignee": assignee,
        "assignee_id": assignee_id,
        "location": location,
        "query": q,
        "status": job_status,
        "vendor_id": vendor_id,
    }
    try:
        agenda = await service.build_agenda(criteria)
    except JobStoreError as exc:
        raise _store_error(exc) from exc
    return AgendaResponse.from_agenda(agenda)


@router.post("/jobs/{job_id}/complete", response_model=CompletionResponse)
async def complete_job(
    job_id: str,
    service: AgendaService = Depends(get_agenda_service),
) -> CompletionResponse:
    try:
        receipt = await service.complete_job(job_id)
    except JobStoreError as exc:
        raise _store_error(exc) from exc
    return CompletionResponse(
        job_id=receipt.change.job_id,
        status=receipt.change.status,
        extra=dict(receipt.change.extra),
        previous_status=receipt.previous_status,
        previous_completed_at=receipt.previous_completed_at,
    )


@router.post("/jobs/{job_id}/reopen", response_model=StatusChangeResponse)
async def reopen_job(
    job_id: str,
    service: AgendaService = Depends(get_agenda_service),
) -> StatusChangeResponse:
    try:
        change, _ = await service.reopen_job(job_id)
    except JobStoreError as exc:
        raise _store_error(exc) from exc
    return StatusChangeResponse.from_change(change)


@router.post("/jobs/{job_id}/undo-completion", response_model=StatusChangeResponse)
async def undo_completion(
    job_id: str,
    payload: UndoCompletionRequest,
    service: AgendaService = Depends(get_agenda_service),
) -> StatusChangeResponse:
    try:
        change, _ = await service.undo_completion(
            job_id, payload.previous_status, payload.previous_completed_at
        )
    except JobStoreError as exc:
        raise _store_error(exc) from exc
    return StatusChangeResponse.from_change(change)


__all__ = ["get_agenda_service", "get_schedule_settings", "router"]
