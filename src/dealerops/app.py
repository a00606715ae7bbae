"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .logging_setup import configure_logging
from .routers.agenda import router as agenda_router
from .services.agenda import AgendaService
from .services.job_store import PostgrestJobStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[PostgrestJobStore] = None,
) -> FastAPI:
    settings = settings or get_settings()

    # Configure logging first thing
    configure_logging(settings.log_level, settings.log_dir)

    if store is None and settings.postgrest_url is not None:
        store = PostgrestJobStore.from_settings(settings)
    if store is None:
        logger.warning("POSTGREST_URL is not set; store-backed agenda routes are disabled")

    agenda_service = (
        AgendaService(store, store, settings.schedule_flags(), tz=settings.timezone)
        if store is not None
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            if store is not None:
                try:
                    await store.aclose()
                except Exception as exc:
                    logger.warning("Error closing job store client: %s", exc)

    app = FastAPI(
        title="Dealership Scheduling Agenda",
        version="0.1.0",
        description="Agenda, conflict and status rules for dealership service jobs.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.agenda_service = agenda_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agenda_router)

    return app


__all__ = ["create_app"]
