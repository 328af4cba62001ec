# /app/core/deps.py
import uuid

from fastapi import Depends, HTTPException, Request

from app.core.config import Settings, get_settings
from app.core.errors import DependencyFailure, NotFound
from app.services.reconciliation_service import ReconciliationService
from app.services.scheduler import ReconciliationScheduler


def get_reconciliation(request: Request) -> ReconciliationService:
    return request.app.state.reconciliation


def get_scheduler(request: Request) -> ReconciliationScheduler:
    return request.app.state.scheduler


def require_debug_endpoints(settings: Settings = Depends(get_settings)) -> None:
    # Hidden entirely outside test environments
    if not settings.debug_endpoints_enabled:
        raise HTTPException(status_code=404, detail="Not Found")


def parse_uuid(raw: str, name: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be UUID.")


def http_error(e: ValueError) -> HTTPException:
    """
    NotFound -> 404, document/storage failure -> 503, every other
    domain rejection -> 409.
    """
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DependencyFailure):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=409, detail=str(e))
