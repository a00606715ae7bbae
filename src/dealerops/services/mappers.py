"""Map job store rows into scheduling :class:`Job` records.

Rows arrive either straight from PostgREST (snake_case, embedded
``job_parts``/``vehicles``/``vendors``) or as camelCase view models posted by
the UI. This module is the only place that knows about both shapes.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from ..scheduling.models import Job, JobPart, JobStatus, Vehicle

_START_KEYS = ("scheduled_start_time", "scheduled_start", "scheduledStartTime", "scheduledStart")
_END_KEYS = ("scheduled_end_time", "scheduled_end", "scheduledEndTime", "scheduledEnd")
_PROMISE_KEYS = ("promised_date", "promisedDate", "promisedAt", "promised_at")


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    # PostgREST embeds to-one relations as objects, some views as one-item lists.
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], Mapping):
        return value[0]
    return None


def _tri_state(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "t"}:
        return True
    if normalized in {"false", "0", "no", "f"}:
        return False
    return None


def _vendor_id(record: Mapping[str, Any]) -> Optional[str]:
    direct = _pick(record, "vendor_id", "vendorId")
    if direct is not None:
        return _text(direct)
    vendor = _first_mapping(record.get("vendor")) or _first_mapping(record.get("vendors"))
    return _text(vendor.get("id")) if vendor else None


def _vendor_name(record: Mapping[str, Any]) -> Optional[str]:
    direct = _pick(record, "vendor_name", "vendorName")
    if direct is not None:
        return _text(direct)
    vendor = _first_mapping(record.get("vendor")) or _first_mapping(record.get("vendors"))
    return _text(vendor.get("name")) if vendor else None


def part_from_record(record: Mapping[str, Any]) -> JobPart:
    """Map a ``job_parts`` row to :class:`JobPart`."""

    return JobPart(
        id=_text(record.get("id")),
        scheduled_start=_pick(record, *_START_KEYS),
        scheduled_end=_pick(record, *_END_KEYS),
        promised_date=_pick(record, *_PROMISE_KEYS),
        vendor_id=_vendor_id(record),
        is_off_site=_tri_state(_pick(record, "is_off_site", "isOffSite")),
        requires_scheduling=(
            _tri_state(_pick(record, "requires_scheduling", "requiresScheduling")) is True
        ),
    )


def vehicle_from_record(record: Optional[Mapping[str, Any]]) -> Optional[Vehicle]:
    """Map an embedded ``vehicles`` row to :class:`Vehicle`; None when absent."""

    if not record:
        return None
    return Vehicle(
        description=_text(_pick(record, "description", "vehicle_description")),
        stock_number=_text(_pick(record, "stock_number", "stockNumber")),
        vin=_text(record.get("vin")),
        year=_text(record.get("year")),
        make=_text(record.get("make")),
        model=_text(record.get("model")),
        owner_name=_text(_pick(record, "owner_name", "ownerName")),
        owner_phone=_text(_pick(record, "owner_phone", "ownerPhone")),
    )


def _parts(record: Mapping[str, Any]) -> tuple[JobPart, ...]:
    rows = _pick(record, "job_parts", "parts", "jobParts") or ()
    if not isinstance(rows, Iterable) or isinstance(rows, (str, bytes, Mapping)):
        return ()
    return tuple(part_from_record(row) for row in rows if isinstance(row, Mapping))


def job_from_record(record: Mapping[str, Any]) -> Job:
    """Map a job row (PostgREST or UI view model) to :class:`Job`.

    Fields missing at the top level are looked up in a nested ``raw`` mapping,
    which is where UI view models keep the original row.

    Raises:
        ValueError: if the record has no id.
    """

    if not isinstance(record, Mapping):
        raise TypeError(f"job record must be a mapping, got {type(record).__name__}")

    nested = record.get("raw")
    source: dict[str, Any] = dict(nested) if isinstance(nested, Mapping) else {}
    source.update({key: value for key, value in record.items() if value is not None})

    job_id = _text(source.get("id"))
    if job_id is None:
        raise ValueError("job record is missing an id")

    vehicle = vehicle_from_record(
        _first_mapping(source.get("vehicle")) or _first_mapping(source.get("vehicles"))
    )
    customer_name = _text(_pick(source, "customer_name", "customerName"))
    if customer_name is None and vehicle is not None:
        customer_name = vehicle.owner_name

    return Job(
        id=job_id,
        status=_text(_pick(source, "job_status", "status", "jobStatus")) or JobStatus.PENDING,
        scheduled_start=_pick(source, *_START_KEYS),
        scheduled_end=_pick(source, *_END_KEYS),
        promised_date=_pick(source, *_PROMISE_KEYS),
        parts=_parts(source),
        vendor_id=_vendor_id(source),
        vendor_name=_vendor_name(source),
        delivery_coordinator_id=_text(
            _pick(source, "delivery_coordinator_id", "deliveryCoordinatorId")
        ),
        assigned_to=_text(_pick(source, "assigned_to", "assignedTo")),
        service_type=_text(_pick(source, "service_type", "serviceType")),
        job_number=_text(_pick(source, "job_number", "jobNumber")),
        title=_text(source.get("title")),
        description=_text(source.get("description")),
        vehicle_description=_text(_pick(source, "vehicle_description", "vehicleDescription")),
        customer_name=customer_name,
        customer_phone=_text(_pick(source, "customer_phone", "customerPhone")),
        stock_number=_text(_pick(source, "stock_number", "stockNumber")),
        vehicle=vehicle,
        completed_at=_text(_pick(source, "completed_at", "completedAt")),
        raw=dict(record),
    )


def jobs_from_records(records: Iterable[Mapping[str, Any]]) -> list[Job]:
    """Map a batch of rows, preserving order."""

    return [job_from_record(record) for record in records]


__all__ = ["job_from_record", "jobs_from_records", "part_from_record", "vehicle_from_record"]
