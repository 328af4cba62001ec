# app/api/v1/reconciliation.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.config import Settings, get_settings
from app.core.deps import get_scheduler, http_error, parse_uuid
from app.schemas.reconciliation import CycleReportResponse, SchedulerStatusResponse
from app.services.scheduler import ReconciliationScheduler

router = APIRouter(prefix="/reconciliation")


@router.post("/run", response_model=CycleReportResponse)
def run_reconciliation(
    forceProjectId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    scheduler: ReconciliationScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
):
    """
    Operator-triggered cycle. Returns the same report as the periodic run.
    forceProjectId first moves that project's deadlines into the past
    (debug environments only).
    """
    force_id = None
    if forceProjectId:
        if not settings.debug_endpoints_enabled:
            raise HTTPException(status_code=404, detail="Not Found")
        force_id = parse_uuid(forceProjectId, "forceProjectId")

    try:
        report = scheduler.run_once(db, force_project_id=force_id)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return report.as_dict()


@router.get("/status", response_model=SchedulerStatusResponse)
def reconciliation_status(
    scheduler: ReconciliationScheduler = Depends(get_scheduler),
):
    return scheduler.status()
