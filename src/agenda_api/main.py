from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .logging_config import setup_logging
from .persistence import AgendaPersistence, get_key_value_store
from .routers import agenda as agenda_router
from .routers import notifications as notifications_router
from .scheduler import ReminderScheduler
from .settings import Settings, get_settings
from .store import AgendaStore, Clock

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "agenda",
        "description": "Agenda items: CRUD, completion, postponement, list and calendar views.",
    },
    {
        "name": "notifications",
        "description": "Pending reminders raised by the polling scheduler and their resolution.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """
    Build the agenda application.

    The store is loaded synchronously here; the reminder loop runs for the lifetime of
    the application (started on startup, cancelled on shutdown) unless disabled in
    settings. Store, scheduler and clock are kept on app.state.
    """
    settings = settings or get_settings()
    clock = clock or datetime.now
    setup_logging(settings.log_level)

    persistence = AgendaPersistence(get_key_value_store(settings), key=settings.storage_key)
    store = AgendaStore(persistence, clock=clock)
    scheduler = ReminderScheduler(store, clock=clock, interval_seconds=settings.reminder_poll_interval_seconds)
    scheduler.attach()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.reminder_scheduler_enabled:
            await scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            scheduler.detach()

    app = FastAPI(
        title="Agenda Backend",
        description="Agenda items, calendar views and polling reminders for the logistics back office.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.clock = clock
    app.state.store = store
    app.state.scheduler = scheduler

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        logger.debug("Validation failed for {} {}", request.method, request.url.path)
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": _jsonable_errors(exc),
            },
        )

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {
            "message": "Healthy",
            "backend": settings.persistence_backend,
            "items": len(store),
            "reminders_running": scheduler.is_running,
        }

    app.include_router(agenda_router.router)
    app.include_router(notifications_router.router)
    logger.info("Agenda app created ({} backend, {} items)", settings.persistence_backend, len(store))
    return app


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors may carry the raised ValueError in ctx; render it as text."""
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


app = create_app()
