# app/services/contract_workflow_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import InvalidTransition, NotFound, PreconditionNotMet
from app.models.bid import Bid
from app.models.contract import Contract
from app.models.enums import (
    BidStatus,
    ContractStatus,
    NoticeAudience,
    NoticeSeverity,
    OPEN_CONTRACT_STATUSES,
    Party,
    PartyRequired,
    ProjectStatus,
)
from app.models.project import Project
from app.services.document_service import DocumentGenerator, DocumentRole, generate_descriptor
from app.services.notice_service import broadcast, to_user
from app.services.transition import Transition

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


_AUDIENCE_BY_PARTY = {
    Party.customer: NoticeAudience.customer,
    Party.seller: NoticeAudience.seller,
}


class ContractWorkflowService:
    """
    Contract approval state machine.

    pending-customer -> pending-seller -> pending-admin -> completed
    pending-admin -> correcting -> pending-admin | rejected (deadline)

    Scheduler-driven steps (initialize, advance_intake, expire_correction)
    never commit; the reconciliation cycle owns the unit of work. The admin
    and upload operations are called from the API, which commits.
    """

    def __init__(self, settings: Settings, documents: DocumentGenerator):
        self.settings = settings
        self.documents = documents

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_contract(self, db: Session, contract_id: uuid.UUID) -> Contract:
        contract = db.get(Contract, contract_id)
        if not contract:
            raise NotFound("Contract not found.")
        return contract

    def get_for_bid(self, db: Session, bid_id: uuid.UUID) -> Optional[Contract]:
        return db.execute(
            select(Contract).where(Contract.bid_id == bid_id)
        ).scalar_one_or_none()

    def get_open_for_project(self, db: Session, project_id: uuid.UUID) -> Optional[Contract]:
        return db.execute(
            select(Contract).where(
                Contract.project_id == project_id,
                Contract.status.in_(OPEN_CONTRACT_STATUSES),
            )
        ).scalars().first()

    def list_for_intake(self, db: Session) -> List[Contract]:
        return db.execute(
            select(Contract)
            .where(
                Contract.status.in_(
                    [
                        ContractStatus.pending_customer.value,
                        ContractStatus.pending_seller.value,
                        ContractStatus.correcting.value,
                    ]
                )
            )
            .order_by(Contract.created_at)
        ).scalars().all()

    def list_correcting(self, db: Session) -> List[Contract]:
        return db.execute(
            select(Contract)
            .where(Contract.status == ContractStatus.correcting.value)
            .order_by(Contract.created_at)
        ).scalars().all()

    # ─────────────────────────────────────────────
    # DOCUMENTS
    # ─────────────────────────────────────────────

    def _generate(
        self,
        role: DocumentRole,
        project: Project,
        bid: Bid,
        now: datetime,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return generate_descriptor(
            self.documents, role, project=project, bid=bid, now=now, extra=extra
        )

    # ─────────────────────────────────────────────
    # INITIALIZATION (round-2 close)
    # ─────────────────────────────────────────────

    def initialize(
        self,
        db: Session,
        *,
        project: Project,
        bid: Bid,
        now: datetime,
    ) -> Tuple[Contract, Transition]:
        """
        Creates the contract for a winning bid, once.
        Returns the existing contract unchanged if one is already there.
        """
        existing = self.get_for_bid(db, bid.id)
        if existing:
            return existing, Transition()

        customer_template = self._generate(DocumentRole.customer_contract, project, bid, now)
        seller_template = self._generate(DocumentRole.seller_contract, project, bid, now)

        contract = Contract(
            bid_id=bid.id,
            project_id=project.id,
            customer_id=project.customer_id,
            seller_id=bid.seller_id,
            contract_value=bid.amount,
            status=ContractStatus.pending_customer.value,
            customer_template_json=customer_template,
            seller_template_json=seller_template,
            customer_signed_json={"uploadedBy": Party.customer.value},
            seller_signed_json={"uploadedBy": Party.seller.value},
            terms_json={
                "project": project.snapshot(),
                "bid": bid.snapshot(),
                "frozenAt": now.isoformat(),
            },
            rejection_history_json=[],
            created_at=now,
            updated_at=now,
        )
        db.add(contract)
        db.flush()

        title = project.title or "your project"
        t = Transition().count("contractsCreated")
        t.notify(
            to_user(
                bid.seller_id,
                NoticeAudience.seller,
                f"Contract created - {title}",
                "Your contract has been generated. Please wait for the customer to upload "
                "their signed copy before uploading yours.",
            ),
            to_user(
                project.customer_id,
                NoticeAudience.customer,
                f"Contract ready for signature - {title}",
                "Please download, sign and upload your contract first. The seller signs after you.",
                NoticeSeverity.success,
            ),
            broadcast(
                NoticeAudience.admin,
                f"New contract - {title}",
                f"Contract {contract.id} was created for bid {bid.id}.",
            ),
        )
        logger.info(
            "contract initialized",
            extra={"contract_id": str(contract.id), "bid_id": str(bid.id), "project_id": str(project.id)},
        )
        return contract, t

    # ─────────────────────────────────────────────
    # UPLOAD INTAKE
    # ─────────────────────────────────────────────

    def _required_parties(self, contract: Contract) -> set:
        if not contract.current_rejection_json:
            return set()
        raw = contract.current_rejection_json.get("partyRequired") or PartyRequired.none.value
        return PartyRequired(raw).parties()

    def record_upload(
        self,
        db: Session,
        *,
        contract_id: uuid.UUID,
        party: Party,
        stored_file: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Contract:
        """
        Writes a signed copy into the party's slot. State changes happen on
        the next reconciliation cycle.
        """
        now = now or _now()
        contract = self.get_contract(db, contract_id)

        if contract.status == ContractStatus.correcting.value:
            deadline = contract.rejection_deadline
            if deadline is not None and deadline <= now:
                raise InvalidTransition("The correction deadline has passed.")
            allowed = party in self._required_parties(contract)
        elif party is Party.customer:
            allowed = contract.status == ContractStatus.pending_customer.value
        else:
            # seller signs only after the customer
            allowed = (
                contract.status == ContractStatus.pending_seller.value
                and contract.has_signed_upload(Party.customer)
            )
        if not allowed:
            raise InvalidTransition(
                f"The {party.value} cannot upload while the contract is {contract.status}."
            )
        if not stored_file.get("url"):
            raise InvalidTransition("Signed upload requires a stored file url.")

        contract.set_signed_upload(party, {**stored_file, "uploadedAt": now.isoformat()})
        contract.updated_at = now
        return contract

    def resolve(self, contract: Contract, now: datetime) -> None:
        history = [dict(r) for r in (contract.rejection_history_json or [])]
        for record in reversed(history):
            if not record.get("resolved") and not record.get("expired"):
                record["resolved"] = True
                record["resolvedAt"] = now.isoformat()
                break
        contract.rejection_history_json = history
        contract.current_rejection_json = None
        contract.status = ContractStatus.pending_admin.value
        contract.updated_at = now

    def _uploaded_in_time(self, contract: Contract, required: set, now: datetime) -> bool:
        # past the deadline only uploads stamped before it count
        deadline = contract.rejection_deadline
        if deadline is None or deadline > now:
            return True
        for party in required:
            stamp = (contract.signed_upload(party) or {}).get("uploadedAt")
            if not stamp or datetime.fromisoformat(stamp) > deadline:
                return False
        return True

    def advance_intake(self, db: Session, *, contract: Contract, now: datetime) -> Transition:
        t = Transition()
        has_customer = contract.has_signed_upload(Party.customer)
        has_seller = contract.has_signed_upload(Party.seller)

        if contract.status == ContractStatus.pending_customer.value and has_customer:
            contract.status = ContractStatus.pending_seller.value
            contract.updated_at = now
            t.count("contractsToSeller")
            t.notify(
                to_user(
                    contract.seller_id,
                    NoticeAudience.seller,
                    "Customer signed the contract",
                    "The customer has uploaded their signed contract. Please upload yours.",
                )
            )

        if contract.status == ContractStatus.pending_seller.value and has_customer and has_seller:
            contract.status = ContractStatus.pending_admin.value
            contract.updated_at = now
            t.count("contractsToAdmin")
            t.notify(
                broadcast(
                    NoticeAudience.admin,
                    "Contract ready for review",
                    f"Both parties signed contract {contract.id}.",
                )
            )

        if contract.status == ContractStatus.correcting.value:
            required = self._required_parties(contract)
            if (
                has_customer
                and has_seller
                and all(contract.has_signed_upload(p) for p in required)
                and self._uploaded_in_time(contract, required, now)
            ):
                self.resolve(contract, now)
                t.count("correctionsResolved")
                t.notify(
                    broadcast(
                        NoticeAudience.admin,
                        "Contract corrections received",
                        f"Contract {contract.id} was re-uploaded and is back for review.",
                    )
                )

        if not t:
            raise PreconditionNotMet("No upload change to act on.")
        return t

    # ─────────────────────────────────────────────
    # ADMIN DECISIONS
    # ─────────────────────────────────────────────

    def _load_parties(self, db: Session, contract: Contract) -> Tuple[Project, Bid]:
        project = db.get(Project, contract.project_id)
        bid = db.get(Bid, contract.bid_id)
        if not project or not bid:
            raise NotFound("Contract references a missing project or bid.")
        return project, bid

    def approve(
        self,
        db: Session,
        *,
        contract_id: uuid.UUID,
        approver_id: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Contract, Transition]:
        now = now or _now()
        contract = self.get_contract(db, contract_id)
        if contract.status != ContractStatus.pending_admin.value:
            raise InvalidTransition(f"Only pending-admin contracts can be approved (is {contract.status}).")
        if not (contract.has_signed_upload(Party.customer) and contract.has_signed_upload(Party.seller)):
            raise InvalidTransition("Both signed contracts are required before approval.")

        project, bid = self._load_parties(db, contract)
        extra = {"approvedBy": approver_id, "approvedAt": now.isoformat(), "contractId": str(contract.id)}

        contract.customer_certificate_json = self._generate(
            DocumentRole.customer_certificate, project, bid, now, extra
        )
        contract.seller_certificate_json = self._generate(
            DocumentRole.seller_certificate, project, bid, now, extra
        )
        contract.final_certificate_json = self._generate(
            DocumentRole.final_certificate, project, bid, now, extra
        )

        contract.status = ContractStatus.completed.value
        contract.admin_approved = True
        contract.approved_by = approver_id
        contract.approved_at = now
        contract.admin_notes = notes
        contract.current_rejection_json = None
        contract.updated_at = now

        bid.status = BidStatus.completed.value
        bid.completed_at = now
        bid.updated_at = now

        project.contract_approved = True
        project.updated_at = now

        title = project.title or "your project"
        t = Transition().count("contractsCompleted").count("certificatesGenerated", 3)
        for party, user_id in ((Party.customer, contract.customer_id), (Party.seller, contract.seller_id)):
            t.notify(
                to_user(
                    user_id,
                    _AUDIENCE_BY_PARTY[party],
                    f"Contract approved - {title}",
                    "The contract has been approved. Your certificate is available for download.",
                    NoticeSeverity.success,
                )
            )
        logger.info("contract approved", extra={"contract_id": str(contract.id), "approver": approver_id})
        return contract, t

    def reject(
        self,
        db: Session,
        *,
        contract_id: uuid.UUID,
        admin_id: str,
        reason: str,
        party_required: PartyRequired,
        deadline_hours: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Contract, Transition]:
        now = now or _now()
        contract = self.get_contract(db, contract_id)
        if contract.status != ContractStatus.pending_admin.value:
            raise InvalidTransition(f"Only pending-admin contracts can be rejected (is {contract.status}).")

        hours = self.settings.correction_deadline_hours if deadline_hours is None else deadline_hours
        deadline = now + timedelta(hours=hours)
        record = {
            "rejectedAt": now.isoformat(),
            "rejectedBy": admin_id,
            "reason": reason,
            "partyRequired": party_required.value,
            "deadline": deadline.isoformat(),
        }

        contract.rejection_history_json = [
            *[dict(r) for r in (contract.rejection_history_json or [])],
            {**record, "resolved": False},
        ]
        contract.current_rejection_json = record
        for party in party_required.parties():
            contract.clear_signed_upload(party)
        contract.status = ContractStatus.correcting.value
        contract.updated_at = now

        t = Transition().count("contractsRejected")
        user_by_party = {Party.customer: contract.customer_id, Party.seller: contract.seller_id}
        for party in party_required.parties():
            t.notify(
                to_user(
                    user_by_party[party],
                    _AUDIENCE_BY_PARTY[party],
                    "Contract correction required",
                    f"Your signed contract was rejected: {reason}. "
                    f"Please upload a corrected copy before {deadline.isoformat()}.",
                    NoticeSeverity.warning,
                )
            )
        logger.info(
            "contract rejected",
            extra={"contract_id": str(contract.id), "party_required": party_required.value},
        )
        return contract, t

    # ─────────────────────────────────────────────
    # DEADLINES
    # ─────────────────────────────────────────────

    def expire_correction(self, db: Session, *, contract: Contract, now: datetime) -> Transition:
        if contract.status != ContractStatus.correcting.value:
            raise PreconditionNotMet("Contract is not in correction.")
        deadline = contract.rejection_deadline
        if deadline is None or deadline > now:
            raise PreconditionNotMet("Correction deadline not reached.")

        project, bid = self._load_parties(db, contract)

        history = [dict(r) for r in (contract.rejection_history_json or [])]
        for record in reversed(history):
            if not record.get("resolved") and not record.get("expired"):
                record["expired"] = True
                break
        contract.rejection_history_json = history
        contract.status = ContractStatus.rejected.value
        contract.rejected_at = now
        contract.updated_at = now

        bid.status = BidStatus.cancelled.value
        bid.is_active_in_round = False
        bid.cancelled_at = now
        bid.updated_at = now

        if project.selected_bid_id == bid.id:
            project.selected_bid_id = None
        project.status = ProjectStatus.failed.value
        project.bid_active = False
        project.failed_at = now
        project.updated_at = now

        title = project.title or "your project"
        t = Transition().count("contractsCancelled").count("bidsUpdated")
        t.notify(
            to_user(
                contract.customer_id,
                NoticeAudience.customer,
                f"Contract cancelled - {title}",
                "The correction deadline passed without a valid re-upload. "
                "The contract was rejected and the project marked as failed.",
                NoticeSeverity.danger,
            ),
            to_user(
                contract.seller_id,
                NoticeAudience.seller,
                f"Contract cancelled - {title}",
                "The correction deadline passed without a valid re-upload. Your bid was cancelled.",
                NoticeSeverity.danger,
            ),
        )
        logger.info(
            "contract correction expired",
            extra={"contract_id": str(contract.id), "project_id": str(project.id)},
        )
        return t

    def cancel(self, contract: Contract, now: datetime) -> None:
        contract.status = ContractStatus.cancelled.value
        contract.cancelled_at = now
        contract.updated_at = now

    def force_deadline(self, contract: Contract, now: datetime) -> bool:
        if contract.status != ContractStatus.correcting.value or not contract.current_rejection_json:
            return False
        contract.current_rejection_json = {
            **contract.current_rejection_json,
            "deadline": (now - timedelta(minutes=1)).isoformat(),
        }
        contract.updated_at = now
        return True
