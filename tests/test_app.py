from fastapi.testclient import TestClient

from dealerops.app import create_app
from dealerops.config import Settings
from dealerops.services.agenda import AgendaService
from dealerops.services.job_store import PostgrestJobStore


def test_app_without_store_serves_pure_routes() -> None:
    app = create_app(Settings(_env_file=None))

    assert app.state.agenda_service is None
    with TestClient(app) as client:
        response = client.post(
            "/api/agenda/conflicts",
            json={"jobs": []},
        )
        assert response.status_code == 200
        assert response.json() == {"conflict_ids": []}

        assert client.get("/api/agenda").status_code == 503


def test_app_builds_store_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("POSTGREST_URL", "https://db.example.test/rest/v1")
    monkeypatch.setenv("CONFLICT_BUFFER_MINUTES", "15")

    app = create_app(Settings(_env_file=None))

    service = app.state.agenda_service
    assert isinstance(service, AgendaService)
    assert service.flags.conflict_buffer.total_seconds() == 15 * 60
    with TestClient(app):
        pass


def test_app_accepts_injected_store() -> None:
    store = PostgrestJobStore("https://db.example.test/rest/v1")

    app = create_app(Settings(_env_file=None), store=store)

    assert isinstance(app.state.agenda_service, AgendaService)
