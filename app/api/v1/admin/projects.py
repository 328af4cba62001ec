from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.deps import get_reconciliation, http_error, parse_uuid, require_debug_endpoints
from app.api.v1.projects import _lifecycle_resp
from app.schemas.lifecycle import (
    ForceDeadlinesResponse,
    ProjectCancelRequest,
    ProjectLifecycleResponse,
    ProjectVerifyRequest,
)
from app.services.notice_service import emit_all
from app.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/admin/projects", tags=["admin"])


@router.post("/{project_id}/verify", response_model=ProjectLifecycleResponse)
def verify_project(
    project_id: str,
    payload: ProjectVerifyRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    pid = parse_uuid(project_id, "projectId")
    try:
        project, t = svc.lifecycle.verify(
            db, project_id=pid, approve=payload.approve, reason=payload.reason
        )
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    emit_all(svc.emitter, db, t.notices)
    db.refresh(project)
    return _lifecycle_resp(project)


@router.post("/{project_id}/cancel", response_model=ProjectLifecycleResponse)
def cancel_project(
    project_id: str,
    payload: ProjectCancelRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    pid = parse_uuid(project_id, "projectId")
    try:
        project, t = svc.lifecycle.cancel(db, project_id=pid, reason=payload.reason)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    emit_all(svc.emitter, db, t.notices)
    db.refresh(project)
    return _lifecycle_resp(project)


@router.post(
    "/{project_id}/force-deadlines",
    response_model=ForceDeadlinesResponse,
    dependencies=[Depends(require_debug_endpoints)],
)
def force_project_deadlines(
    project_id: str,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    pid = parse_uuid(project_id, "projectId")
    try:
        moved = svc.lifecycle.force_deadlines(db, project_id=pid)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return {"projectId": str(pid), "moved": moved}
