# app/api/v1/contracts.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.deps import get_reconciliation, http_error, parse_uuid
from app.models.contract import Contract
from app.models.enums import Party
from app.schemas.contracts import (
    ContractApproveRequest,
    ContractRejectRequest,
    ContractResponse,
    SignedUploadRequest,
)
from app.services.notice_service import emit_all
from app.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/contracts")


def _iso(dt):
    return dt.isoformat() if dt else None


def _to_resp(c: Contract) -> dict:
    return {
        "contractId": str(c.id),
        "bidId": str(c.bid_id),
        "projectId": str(c.project_id),
        "customerId": str(c.customer_id),
        "sellerId": str(c.seller_id),
        "contractValue": str(c.contract_value),
        "status": c.status,
        "currentStep": c.current_step,
        "customerTemplate": c.customer_template_json,
        "sellerTemplate": c.seller_template_json,
        "customerSignedContract": c.customer_signed_json,
        "sellerSignedContract": c.seller_signed_json,
        "customerCertificate": c.customer_certificate_json,
        "sellerCertificate": c.seller_certificate_json,
        "finalCertificate": c.final_certificate_json,
        "terms": c.terms_json or {},
        "currentRejection": c.current_rejection_json,
        "rejectionHistory": list(c.rejection_history_json or []),
        "adminApproved": bool(c.admin_approved),
        "approvedBy": c.approved_by,
        "approvedAt": _iso(c.approved_at),
        "adminNotes": c.admin_notes,
        "createdAt": _iso(c.created_at),
        "updatedAt": _iso(c.updated_at),
    }


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract(
    contract_id: str,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    cid = parse_uuid(contract_id, "contractId")
    try:
        contract = svc.contracts.get_contract(db, cid)
    except ValueError as e:
        raise http_error(e)
    return _to_resp(contract)


# ─────────────────────────────────────────────
# SIGNED UPLOADS
# State moves on the next reconciliation cycle, not here.
# ─────────────────────────────────────────────

@router.post("/{contract_id}/uploads/{party}", response_model=ContractResponse)
def upload_signed_contract(
    contract_id: str,
    party: Party,
    payload: SignedUploadRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    cid = parse_uuid(contract_id, "contractId")
    try:
        contract = svc.contracts.record_upload(
            db,
            contract_id=cid,
            party=party,
            stored_file={"id": payload.id, "url": payload.url, "bytes": payload.bytes},
        )
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    db.refresh(contract)
    return _to_resp(contract)


# ─────────────────────────────────────────────
# ADMIN DECISIONS
# ─────────────────────────────────────────────

@router.post("/{contract_id}/approve", response_model=ContractResponse)
def approve_contract(
    contract_id: str,
    payload: ContractApproveRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    cid = parse_uuid(contract_id, "contractId")
    try:
        contract, t = svc.contracts.approve(
            db, contract_id=cid, approver_id=payload.approverId, notes=payload.notes
        )
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    emit_all(svc.emitter, db, t.notices)
    db.refresh(contract)
    return _to_resp(contract)


@router.post("/{contract_id}/reject", response_model=ContractResponse)
def reject_contract(
    contract_id: str,
    payload: ContractRejectRequest,
    db: Session = Depends(get_db),
    svc: ReconciliationService = Depends(get_reconciliation),
):
    cid = parse_uuid(contract_id, "contractId")
    try:
        contract, t = svc.contracts.reject(
            db,
            contract_id=cid,
            admin_id=payload.adminId,
            reason=payload.reason,
            party_required=payload.partyRequired,
            deadline_hours=payload.deadlineHours,
        )
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)

    emit_all(svc.emitter, db, t.notices)
    db.refresh(contract)
    return _to_resp(contract)
