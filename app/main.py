from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router
from app.db.session import SessionLocal
from app.services.reconciliation_service import build_reconciliation_service
from app.services.scheduler import ReconciliationScheduler


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # The scheduler handle lives and dies with the app
        if settings.scheduler_enabled:
            app.state.scheduler.start()
        try:
            yield
        finally:
            app.state.scheduler.stop()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    reconciliation = build_reconciliation_service(settings)
    app.state.reconciliation = reconciliation
    app.state.scheduler = ReconciliationScheduler(
        reconciliation,
        session_factory=SessionLocal,
        interval_seconds=settings.cycle_interval_seconds,
    )

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
