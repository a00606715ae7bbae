"""PostgREST-backed job source and status sink."""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, Callable, Mapping, Optional, Protocol, runtime_checkable

import httpx
from fastapi import status

from ..config import Settings

logger = logging.getLogger(__name__)

JOB_SELECT = (
    "*,"
    "vendor:vendors(id,name),"
    "vehicle:vehicles(*),"
    "job_parts(id,vendor_id,promised_date,requires_scheduling,is_off_site,"
    "scheduled_start_time,scheduled_end_time)"
)


class JobStoreError(Exception):
    """Wrap transport or API failures when talking to the job store."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


class JobNotFoundError(JobStoreError):
    """Raised when the job store has no row for the requested id."""

    def __init__(self, job_id: str):
        super().__init__(status.HTTP_404_NOT_FOUND, f"Job '{job_id}' not found")
        self.job_id = job_id


@runtime_checkable
class JobSource(Protocol):
    async def fetch_jobs(self) -> list[dict[str, Any]]:
        ...

    async def fetch_job(self, job_id: str) -> dict[str, Any]:
        ...


@runtime_checkable
class JobStatusSink(Protocol):
    async def update_job_status(
        self, job_id: str, new_status: str, extra: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        ...


Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class PostgrestJobStore:
    """Read jobs and write status changes through a PostgREST endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0))
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgrestJobStore":
        if settings.postgrest_url is None:
            raise ValueError("POSTGREST_URL is not configured")
        api_key = settings.postgrest_api_key.get_secret_value() if settings.postgrest_api_key else None
        return cls(str(settings.postgrest_url), api_key=api_key, timeout=settings.request_timeout)

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        request_headers = dict(self._headers)
        if headers:
            request_headers.update(headers)

        try:
            response = await self._client.request(
                method,
                f"{self._base_url}/{path}",
                params=params,
                json=json_body,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            raise JobStoreError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

        if response.status_code >= 400:
            detail = self._extract_error_detail(response.content)
            logger.warning("Job store %s %s failed (%s): %s", method, path, response.status_code, detail)
            raise JobStoreError(response.status_code, detail)

        try:
            return response.json()
        except ValueError as exc:
            raise JobStoreError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

    async def fetch_jobs(self) -> list[dict[str, Any]]:
        """Return every job row with its parts, vendor and vehicle embedded."""

        rows = await self._request("GET", "jobs", params={"select": JOB_SELECT})
        if not isinstance(rows, list):
            raise JobStoreError(status.HTTP_502_BAD_GATEWAY, "Expected a list of jobs")
        logger.debug("Fetched %d job rows", len(rows))
        return rows

    async def fetch_job(self, job_id: str) -> dict[str, Any]:
        rows = await self._request(
            "GET", "jobs", params={"select": JOB_SELECT, "id": f"eq.{job_id}"}
        )
        if not rows:
            raise JobNotFoundError(job_id)
        return rows[0]

    async def update_job_status(
        self, job_id: str, new_status: str, extra: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        """Set ``job_status`` (plus ``extra`` columns) on one job and return the updated row."""

        if not job_id:
            raise ValueError("job_id must be provided")

        update: dict[str, Any] = {
            "job_status": new_status,
            "updated_at": self._clock().isoformat(),
        }
        update.update(extra or {})

        rows = await self._request(
            "PATCH",
            "jobs",
            params={"id": f"eq.{job_id}"},
            json_body=update,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise JobNotFoundError(job_id)
        logger.info("Updated job %s status to %s", job_id, new_status)
        return rows[0]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Job store returned an empty error response."
        text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            return payload.get("message") or payload
        return payload


__all__ = [
    "JOB_SELECT",
    "Clock",
    "JobNotFoundError",
    "JobSource",
    "JobStatusSink",
    "JobStoreError",
    "PostgrestJobStore",
    "utc_now",
]
