"""Free-text search over a job's descriptive fields."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from .models import Job

_JOB_FIELDS = (
    "job_number",
    "title",
    "description",
    "vehicle_description",
    "customer_name",
    "customer_phone",
    "stock_number",
)

_VEHICLE_FIELDS = (
    "description",
    "stock_number",
    "vin",
    "year",
    "make",
    "model",
    "owner_name",
    "owner_phone",
)

# Keys read from the original record, in both naming conventions.
_RAW_KEYS = (
    "job_number",
    "jobNumber",
    "title",
    "description",
    "vehicle_description",
    "vehicleDescription",
    "customer_name",
    "customerName",
    "customer_phone",
    "customerPhone",
    "stock_number",
    "stockNumber",
    "vehicleLabel",
)

_RAW_VEHICLE_KEYS = (
    "description",
    "stock_number",
    "stockNumber",
    "vin",
    "year",
    "make",
    "model",
    "owner_name",
    "ownerName",
    "owner_phone",
    "ownerPhone",
)


def normalize_query(query: Optional[str]) -> str:
    """Trim and lower-case ``query``; None becomes the empty string."""

    if query is None:
        return ""
    return str(query).strip().lower()


def _mapping_values(mapping: Any, keys: Iterable[str]) -> list[Any]:
    if not isinstance(mapping, Mapping):
        return []
    return [mapping.get(key) for key in keys]


def build_haystack(job: Job) -> str:
    """Return the lower-cased, space-joined text searched by :func:`matches`."""

    values: list[Any] = [getattr(job, name) for name in _JOB_FIELDS]
    if job.vehicle is not None:
        values.extend(getattr(job.vehicle, name) for name in _VEHICLE_FIELDS)

    raw = job.raw
    values.extend(_mapping_values(raw, _RAW_KEYS))
    if isinstance(raw, Mapping):
        nested = raw.get("vehicle") or raw.get("vehicles")
        values.extend(_mapping_values(nested, _RAW_VEHICLE_KEYS))
        inner = raw.get("raw")
        values.extend(_mapping_values(inner, _RAW_KEYS))

    values.append(job.customer_name)
    values.append(job.vehicle_label)
    return " ".join(str(value).lower() for value in values if value)


def matches(job: Job, query: Optional[str]) -> bool:
    """Plain substring match of ``query`` against the job's haystack.

    A blank query matches every job.
    """

    needle = normalize_query(query)
    if not needle:
        return True
    return needle in build_haystack(job)


__all__ = ["build_haystack", "matches", "normalize_query"]
