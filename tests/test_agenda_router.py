from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from dealerops.config import Settings
from dealerops.routers import agenda as agenda_router
from dealerops.services.agenda import AgendaService
from dealerops.services.job_store import JobStoreError

from test_agenda_service import NOW, ROWS, FakeStore


class FailingStore(FakeStore):
    async def fetch_jobs(self):
        raise JobStoreError(503, "upstream unavailable")


def make_client(store=None, settings: Settings | None = None) -> TestClient:
    app = FastAPI()
    app.include_router(agenda_router.router)
    app.state.settings = settings or Settings(_env_file=None)
    if store is not None:
        app.state.agenda_service = AgendaService(store, store, clock=lambda: NOW)
    return TestClient(app)


def test_filter_evaluates_posted_jobs():
    client = make_client()

    response = client.post(
        "/api/agenda/filter",
        json={
            "jobs": [
                {
                    "id": "a",
                    "scheduled_start_time": "2025-12-31T04:30:00Z",
                    "scheduled_end_time": "2025-12-31T06:30:00Z",
                },
                {"id": "b", "scheduled_start_time": "2026-01-04T15:00:00Z"},
            ],
            "criteria": {"date_range": "today"},
            "now": "2025-12-31T12:00:00Z",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["job_ids"] == ["a"]
    assert body["days"][0]["key"] == "2025-12-30"
    assert body["days"][0]["items"][0]["schedule_label"] == "Tue, Dec 30 • 11:30 PM–1:30 AM ET"


def test_filter_with_custom_range_and_assignee():
    client = make_client()

    response = client.post(
        "/api/agenda/filter",
        json={
            "jobs": [
                {"id": "one", "delivery_coordinator_id": "dc-1", "scheduled_start_time": "2026-01-02T15:00:00Z"},
                {"id": "two", "delivery_coordinator_id": "dc-2", "scheduled_start_time": "2026-01-02T15:00:00Z"},
            ],
            "criteria": {
                "date_range": {"start": "2026-01-01T00:00:00Z", "end": "2026-01-03T00:00:00Z"},
                "assignee": "me",
                "assignee_id": "dc-1",
            },
            "now": "2025-12-31T12:00:00Z",
        },
    )

    assert response.status_code == 200
    assert response.json()["job_ids"] == ["one"]


def test_filter_rejects_invalid_now():
    client = make_client()

    response = client.post("/api/agenda/filter", json={"jobs": [], "now": "not-a-time"})

    assert response.status_code == 422


def test_filter_uses_request_now_over_invalid_criteria_now():
    client = make_client()

    response = client.post(
        "/api/agenda/filter",
        json={
            "jobs": [
                {"id": "today", "scheduled_start_time": "2025-12-31T15:00:00Z"},
                {"id": "later", "scheduled_start_time": "2026-03-02T15:00:00Z"},
            ],
            "criteria": {"date_range": "today", "now": "garbage"},
            "now": "2025-12-31T12:00:00Z",
        },
    )

    assert response.status_code == 200
    assert response.json()["job_ids"] == ["today"]


def test_filter_rejects_invalid_criteria_now_alone():
    client = make_client()

    response = client.post(
        "/api/agenda/filter",
        json={"jobs": [], "criteria": {"date_range": "today", "now": "garbage"}},
    )

    assert response.status_code == 422

def test_conflicts_endpoint():
    client = make_client()

    response = client.post(
        "/api/agenda/conflicts",
        json={
            "jobs": [
                {
                    "id": "a",
                    "job_status": "scheduled",
                    "vendor_id": "v-1",
                    "scheduled_start_time": "2026-01-14T14:00:00Z",
                    "scheduled_end_time": "2026-01-14T15:00:00Z",
                },
                {
                    "id": "b",
                    "job_status": "scheduled",
                    "vendor_id": "v-1",
                    "scheduled_start_time": "2026-01-14T15:10:00Z",
                    "scheduled_end_time": "2026-01-14T16:00:00Z",
                },
            ],
            "buffer_minutes": 30,
        },
    )

    assert response.status_code == 200
    assert response.json() == {"conflict_ids": ["a", "b"]}


def test_status_target_reopen():
    client = make_client()

    response = client.post(
        "/api/agenda/status-target",
        json={
            "job": {"id": "a", "job_status": "completed", "scheduled_start_time": "2026-01-14T14:00:00Z"},
            "action": "reopen",
            "now": "2026-01-15T12:00:00Z",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "quality_check"
    assert body["extra"] == {"completed_at": None}
    assert body["effective_status"] == "completed"


def test_status_target_uncomplete_before_start():
    client = make_client()

    response = client.post(
        "/api/agenda/status-target",
        json={
            "job": {"id": "a", "job_status": "completed", "scheduled_start_time": "2026-01-14T14:00:00Z"},
            "action": "uncomplete",
            "now": "2026-01-13T12:00:00Z",
        },
    )

    assert response.json()["status"] == "scheduled"


def test_status_target_requires_job_id():
    client = make_client()

    response = client.post(
        "/api/agenda/status-target",
        json={"job": {"job_status": "completed"}, "action": "complete"},
    )

    assert response.status_code == 422


def test_read_agenda_from_store():
    client = make_client(FakeStore(ROWS))

    response = client.get("/api/agenda", params={"range": "today", "q": "zzz"})
    assert response.status_code == 200
    assert response.json()["total"] == 0

    response = client.get("/api/agenda", params={"range": "today"})
    body = response.json()
    assert body["job_ids"] == ["a", "b", "c"]
    assert body["conflict_ids"] == ["a", "b"]
    assert body["generated_at"].startswith("2025-12-31T17:00:00")


def test_read_agenda_store_failure_is_bad_gateway():
    client = make_client(FailingStore(ROWS))

    response = client.get("/api/agenda")

    assert response.status_code == 502
    assert response.json()["detail"] == "upstream unavailable"


def test_store_routes_unavailable_without_store():
    client = make_client()

    response = client.get("/api/agenda")

    assert response.status_code == 503


def test_complete_and_undo_via_api():
    store = FakeStore(ROWS)
    client = make_client(store)

    response = client.post("/api/agenda/jobs/d/complete")
    assert response.status_code == 200
    receipt = response.json()
    assert receipt["status"] == "completed"
    assert receipt["extra"] == {"completed_at": "2025-12-31T17:00:00Z"}
    assert receipt["previous_status"] == "scheduled"

    response = client.post(
        "/api/agenda/jobs/d/undo-completion",
        json={"previous_status": receipt["previous_status"]},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "scheduled"


def test_reopen_unknown_job_is_not_found():
    client = make_client(FakeStore(ROWS))

    response = client.post("/api/agenda/jobs/zzz/reopen")

    assert response.status_code == 404


def test_settings_timezone_applies():
    settings = Settings(_env_file=None, SCHEDULE_TIMEZONE="UTC")
    client = make_client(settings=settings)

    response = client.post(
        "/api/agenda/filter",
        json={
            "jobs": [{"id": "a", "scheduled_start_time": "2026-01-01T02:00:00Z"}],
            "criteria": {"date_range": "today"},
            "now": "2026-01-01T12:00:00Z",
        },
    )

    assert response.json()["job_ids"] == ["a"]
