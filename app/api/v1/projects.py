# app/api/v1/projects.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.deps import get_reconciliation, http_error, parse_uuid
from app.models.project import Project
from app.schemas.lifecycle import ProjectLifecycleResponse, Round2SelectionRequest
from app.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/projects")


def _iso(dt):
    return dt.isoformat() if dt else None


def _lifecycle_resp(p: Project) -> dict:
    return {
        "projectId": str(p.id),
        "status": p.status,
        "adminStatus": p.admin_status,
        "currentRound": p.current_round,
        "bidActive": bool(p.bid_active),
        "bidEndDate": _iso(p.bid_end_date),
        "round1": {
            "status": p.round1_status,
            "startDate": _iso(p.round1_start),
            "endDate": _iso(p.round1_end),
            "selectedBids": list(p.round1_selected_bids or []),
            "completed": bool(p.round1_completed),
        },
        "selectionDeadline": _iso(p.selection_deadline),
        "round2": {
            "status": p.round2_status,
            "startDate": _iso(p.round2_start),
            "endDate": _iso(p.round2_end),
            "selectedBids": list(p.round2_selected_bids or []),
            "completed": bool(p.round2_completed),
        },
        "round3": {
            "status": p.round3_status,
            "winningBid": str(p.round3_winning_bid_id) if p.round3_winning_bid_id else None,
            "completedAt": _iso(p.round3_completed_at),
        },
        "selectedBid": str(p.selected_bid_id) if p.selected_bid_id else None,
        "biddingCompleted": bool(p.bidding_completed),
        "contractApproved": bool(p.contract_approved),
        "isArchived": bool(p.is_archived),
        "completionCertificate": p.completion_certificate_json,
        "updatedAt": _iso(p.updated_at),
    }


# ─────────────────────────────────────────────
# LIFECYCLE VIEW
# ─────────────────────────────────────────────

@router.get("/{project_id}/lifecycle", response_model=ProjectLifecycleResponse)
def get_project_lifecycle(
    project_id: str,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    pid = parse_uuid(project_id, "projectId")
    try:
        project = svc.lifecycle.get_project(db, pid)
    except ValueError as e:
        raise http_error(e)
    return _lifecycle_resp(project)


# ─────────────────────────────────────────────
# OWNER: ROUND 2 SELECTION
# ─────────────────────────────────────────────

@router.post("/{project_id}/round2-selection", response_model=ProjectLifecycleResponse)
def record_round2_selection(
    project_id: str,
    payload: Round2SelectionRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    pid = parse_uuid(project_id, "projectId")
    bid_ids = [parse_uuid(b, "bidIds") for b in payload.bidIds]
    try:
        project = svc.lifecycle.record_round2_selection(db, project_id=pid, bid_ids=bid_ids)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    db.refresh(project)
    return _lifecycle_resp(project)
