# app/services/project_lifecycle_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import (
    InvalidTransition,
    NotFound,
    PreconditionNotMet,
    ValidationError,
)
from app.core.round_graph import CurrentRound
from app.core.round_phases import RoundActive, RoundAwarded, RoundCompleted, RoundPending
from app.models.bid import Bid
from app.models.enums import (
    AdminStatus,
    BidSelectionStatus,
    BidStatus,
    ContractStatus,
    NoticeAudience,
    NoticeSeverity,
    ProjectStatus,
    RoundStatus,
    TERMINAL_PROJECT_STATUSES,
)
from app.models.project import Project
from app.services.contract_workflow_service import ContractWorkflowService
from app.services.document_service import DocumentGenerator, DocumentRole, generate_descriptor
from app.services.notice_service import broadcast, to_user
from app.services.selection_service import (
    select_top_k_by_amount_desc,
    select_winner_by_amount_asc,
)
from app.services.transition import Transition

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────
# DRAFT COMPLETENESS
# ─────────────────────────────────────────────

REQUIRED_DRAFT_FIELDS: List[Tuple[str, Callable[[Project], Any]]] = [
    ("title", lambda p: p.title),
    ("description", lambda p: p.description),
    ("category", lambda p: p.category),
    ("requirements", lambda p: p.requirements),
    ("location.address", lambda p: (p.location_json or {}).get("address")),
    ("location.city", lambda p: (p.location_json or {}).get("city")),
    ("location.state", lambda p: (p.location_json or {}).get("state")),
    ("location.zipCode", lambda p: (p.location_json or {}).get("zipCode")),
    ("contact.phone", lambda p: (p.contact_json or {}).get("phone")),
    ("timeline.startDate", lambda p: p.timeline_start),
    ("timeline.endDate", lambda p: p.timeline_end),
    ("bidSettings.startingBid", lambda p: p.starting_bid),
    ("bidSettings.bidEndDate", lambda p: p.bid_end_date),
]


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_required_fields(project: Project) -> List[str]:
    return [name for name, read in REQUIRED_DRAFT_FIELDS if _blank(read(project))]


def _owner(project: Project, title: str, body: str, severity=NoticeSeverity.info):
    return to_user(project.customer_id, NoticeAudience.customer, title, body, severity)


def _seller(seller_id: uuid.UUID, title: str, body: str, severity=NoticeSeverity.info):
    return to_user(seller_id, NoticeAudience.seller, title, body, severity)


class ProjectLifecycleService:
    """
    Project state machine driven by the reconciliation cycle.

    drafted -> pending -> active (round 1 -> 1.5 -> 2 -> 3) -> awarded
    -> completed, with failed reachable from every round close and
    cancelled reachable administratively.

    Every scheduler transition re-checks its own guard and raises
    PreconditionNotMet when it no longer applies, so running a phase twice
    is a no-op. Transitions flush but never commit.
    """

    def __init__(
        self,
        settings: Settings,
        contracts: ContractWorkflowService,
        documents: DocumentGenerator,
    ):
        self.settings = settings
        self.contracts = contracts
        self.documents = documents

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_project(self, db: Session, project_id: uuid.UUID) -> Project:
        project = db.get(Project, project_id)
        if not project:
            raise NotFound("Project not found.")
        return project

    def _list(self, db: Session, *criteria) -> List[Project]:
        return db.execute(
            select(Project).where(*criteria).order_by(Project.created_at, Project.id)
        ).scalars().all()

    def list_stale_drafts(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.drafted.value,
            Project.created_at <= now - self.settings.auto_submit_grace,
        )

    def list_approved_pending(self, db: Session) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.pending.value,
            Project.admin_status == AdminStatus.approved.value,
        )

    def list_round1_due(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.active.value,
            Project.current_round == CurrentRound.ROUND_1.value,
            Project.round1_status == RoundStatus.active.value,
            Project.round1_end <= now,
        )

    def list_in_selection(self, db: Session) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.active.value,
            Project.current_round == CurrentRound.SELECTION.value,
        )

    def list_selection_expired(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.active.value,
            Project.current_round == CurrentRound.SELECTION.value,
            Project.selection_deadline <= now,
        )

    def list_round2_due(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.active.value,
            Project.current_round == CurrentRound.ROUND_2.value,
            Project.round2_status == RoundStatus.active.value,
            Project.round2_end <= now,
        )

    def list_completable(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status == ProjectStatus.awarded.value,
            Project.contract_approved.is_(True),
            Project.timeline_end <= now,
        )

    def list_archivable(self, db: Session, now: datetime) -> List[Project]:
        return self._list(
            db,
            Project.status.in_(TERMINAL_PROJECT_STATUSES),
            Project.is_archived.is_(False),
            Project.updated_at <= now - self.settings.archive_retention,
        )

    def list_bids(self, db: Session, project_id: uuid.UUID, *criteria) -> List[Bid]:
        return db.execute(
            select(Bid)
            .where(Bid.project_id == project_id, *criteria)
            .order_by(Bid.created_at, Bid.id)
        ).scalars().all()

    # ─────────────────────────────────────────────
    # HELPERS
    # ─────────────────────────────────────────────

    def _mark_lost(self, db: Session, project_id: uuid.UUID, now: datetime, *criteria) -> int:
        """Single filtered UPDATE for every bid matching criteria."""
        db.flush()
        result = db.execute(
            update(Bid)
            .where(Bid.project_id == project_id, *criteria)
            .values(
                selection_status=BidSelectionStatus.lost.value,
                status=BidStatus.lost.value,
                is_active_in_round=False,
                lost_at=now,
                updated_at=now,
            )
        )
        return result.rowcount or 0

    def _fail(self, project: Project, now: datetime) -> None:
        project.status = ProjectStatus.failed.value
        project.bid_active = False
        project.failed_at = now
        project.updated_at = now

    # ─────────────────────────────────────────────
    # PHASE 1: AUTO-SUBMIT
    # ─────────────────────────────────────────────

    def auto_submit(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if project.status != ProjectStatus.drafted.value:
            raise PreconditionNotMet("Project is not a draft.")
        if project.created_at > now - self.settings.auto_submit_grace:
            raise PreconditionNotMet("Draft is still inside its grace window.")

        missing = missing_required_fields(project)
        if missing:
            raise ValidationError(missing)

        project.status = ProjectStatus.pending.value
        project.admin_status = AdminStatus.pending.value
        project.submitted_at = now
        project.updated_at = now

        title = project.title
        return Transition().count("draftedToPending").notify(
            _owner(
                project,
                f"Project submitted - {title}",
                "Your draft was complete and has been submitted for admin review.",
            ),
            broadcast(
                NoticeAudience.admin,
                f"Project awaiting review - {title}",
                f"Project {project.id} was auto-submitted and needs verification.",
            ),
        )

    # ─────────────────────────────────────────────
    # PHASE 2: ACTIVATION
    # ─────────────────────────────────────────────

    def activate(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if project.status != ProjectStatus.pending.value:
            raise PreconditionNotMet("Project is not pending.")
        if project.admin_status != AdminStatus.approved.value:
            raise PreconditionNotMet("Project is not approved.")
        if project.bid_end_date is None:
            raise ValidationError(["bidSettings.bidEndDate"])

        project.set_round_phase(1, RoundActive(start=now, end=project.bid_end_date))
        project.advance_round(CurrentRound.ROUND_1)
        project.status = ProjectStatus.active.value
        project.bid_active = True
        project.activated_at = now
        project.updated_at = now

        title = project.title or "your project"
        return Transition().count("draftedToActive").notify(
            _owner(
                project,
                f"Project is live - {title}",
                "Your project was approved and round 1 bidding is now open.",
                NoticeSeverity.success,
            ),
            broadcast(
                NoticeAudience.seller,
                f"New project open for bids - {title}",
                f"Round 1 bidding is open until {project.bid_end_date.isoformat()}.",
            ),
        )

    # ─────────────────────────────────────────────
    # PHASE 3: ROUNDS
    # ─────────────────────────────────────────────

    def close_round1(self, db: Session, *, project: Project, now: datetime) -> Transition:
        phase = project.round_phase(1)
        if (
            project.status != ProjectStatus.active.value
            or project.round is not CurrentRound.ROUND_1
            or not isinstance(phase, RoundActive)
            or not phase.has_ended(now)
        ):
            raise PreconditionNotMet("Round 1 is not due to close.")

        candidates = self.list_bids(
            db, project.id, Bid.round == 1, Bid.status == BidStatus.submitted.value
        )
        shortlist = select_top_k_by_amount_desc(candidates, self.settings.round1_shortlist_size)
        title = project.title or "your project"
        t = Transition()

        if not shortlist:
            project.set_round_phase(1, RoundCompleted(start=phase.start, end=phase.end))
            self._fail(project, now)
            logger.info("round 1 closed without bids", extra={"project_id": str(project.id)})
            return t.count("round1Failed").notify(
                _owner(
                    project,
                    f"Bidding closed without bids - {title}",
                    "Round 1 ended and no bids were received. The project has been marked as failed.",
                    NoticeSeverity.danger,
                )
            )

        shortlist_ids = [b.id for b in shortlist]
        for bid in shortlist:
            bid.selection_status = BidSelectionStatus.selected_round1.value
            bid.status = BidStatus.selected.value
            bid.updated_at = now

        lost = self._mark_lost(
            db,
            project.id,
            now,
            Bid.round == 1,
            Bid.status == BidStatus.submitted.value,
            Bid.id.notin_(shortlist_ids),
        )

        project.set_round_phase(
            1,
            RoundCompleted(
                start=phase.start,
                end=phase.end,
                selected_ids=tuple(str(i) for i in shortlist_ids),
            ),
        )
        project.advance_round(CurrentRound.SELECTION)
        project.selection_deadline = now + self.settings.selection_window
        project.round2_selected_bids = []
        project.bid_active = False
        project.updated_at = now

        need = self.settings.round2_finalist_count
        t.count("round1Completed").count("bidsUpdated", len(shortlist) + lost)
        t.notify(
            _owner(
                project,
                f"Round 1 complete - {title}",
                f"{len(shortlist)} bids were shortlisted. Select exactly {need} of them for round 2 "
                f"before {project.selection_deadline.isoformat()}.",
                NoticeSeverity.success,
            )
        )
        for bid in shortlist:
            t.notify(
                _seller(
                    bid.seller_id,
                    f"Shortlisted - {title}",
                    "Your bid made the round 1 shortlist. The customer will pick the round 2 finalists.",
                    NoticeSeverity.success,
                )
            )
        logger.info(
            "round 1 closed",
            extra={"project_id": str(project.id), "shortlisted": len(shortlist), "lost": lost},
        )
        return t

    def resolve_selection(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if (
            project.status != ProjectStatus.active.value
            or project.round is not CurrentRound.SELECTION
        ):
            raise PreconditionNotMet("Project is not in the selection phase.")

        need = self.settings.round2_finalist_count
        picked = [str(x) for x in (project.round2_selected_bids or [])]
        if len(picked) != need or len(set(picked)) != need:
            raise PreconditionNotMet(f"Selection must name exactly {need} distinct bids.")
        try:
            picked_ids = [uuid.UUID(x) for x in picked]
        except ValueError:
            raise PreconditionNotMet("Selection contains an invalid bid id.")

        finalists = self.list_bids(
            db,
            project.id,
            Bid.id.in_(picked_ids),
            Bid.selection_status == BidSelectionStatus.selected_round1.value,
        )
        if len(finalists) != need:
            raise PreconditionNotMet("Selection must come from the round 1 shortlist.")

        waiting = self.list_bids(
            db,
            project.id,
            Bid.selection_status == BidSelectionStatus.selected_round1.value,
            Bid.id.notin_(picked_ids),
        )

        for bid in finalists:
            bid.round = 2
            bid.selection_status = BidSelectionStatus.selected_round2.value
            bid.status = BidStatus.selected.value
            bid.is_active_in_round = True
            bid.updated_at = now

        lost = self._mark_lost(
            db,
            project.id,
            now,
            Bid.selection_status == BidSelectionStatus.selected_round1.value,
            Bid.id.notin_(picked_ids),
        )

        end = now + self.settings.round2_window
        project.set_round_phase(2, RoundActive(start=now, end=end))
        project.round2_selected_bids = [str(b.id) for b in finalists]
        project.advance_round(CurrentRound.ROUND_2)
        project.bid_active = True
        project.updated_at = now

        title = project.title or "your project"
        t = Transition().count("round2Started").count("bidsUpdated", len(finalists) + lost)
        for bid in finalists:
            t.notify(
                _seller(
                    bid.seller_id,
                    f"Round 2 finalist - {title}",
                    f"Your bid was selected for round 2. The round closes at {end.isoformat()}.",
                    NoticeSeverity.success,
                )
            )
        t.notify(
            _owner(
                project,
                f"Round 2 started - {title}",
                f"Round 2 is open for your {need} finalists until {end.isoformat()}.",
            )
        )
        for bid in waiting:
            t.notify(
                _seller(
                    bid.seller_id,
                    f"Not selected - {title}",
                    "The customer picked other bids for round 2.",
                )
            )
        logger.info("round 2 opened", extra={"project_id": str(project.id)})
        return t

    def expire_selection(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if (
            project.status != ProjectStatus.active.value
            or project.round is not CurrentRound.SELECTION
            or project.selection_deadline is None
            or project.selection_deadline > now
        ):
            raise PreconditionNotMet("Selection deadline not reached.")

        lost = self._mark_lost(
            db,
            project.id,
            now,
            Bid.selection_status == BidSelectionStatus.selected_round1.value,
        )
        self._fail(project, now)

        title = project.title or "your project"
        logger.info("selection window expired", extra={"project_id": str(project.id)})
        return Transition().count("selectionsExpired").count("bidsUpdated", lost).notify(
            _owner(
                project,
                f"Selection window expired - {title}",
                "No valid round 2 selection was made in time. The project has been marked as failed.",
                NoticeSeverity.danger,
            )
        )

    def close_round2(self, db: Session, *, project: Project, now: datetime) -> Transition:
        phase = project.round_phase(2)
        if (
            project.status != ProjectStatus.active.value
            or project.round is not CurrentRound.ROUND_2
            or not isinstance(phase, RoundActive)
            or not phase.has_ended(now)
        ):
            raise PreconditionNotMet("Round 2 is not due to close.")

        finalists = self.list_bids(
            db,
            project.id,
            Bid.round == 2,
            Bid.selection_status == BidSelectionStatus.selected_round2.value,
        )
        winner = select_winner_by_amount_asc(finalists)
        title = project.title or "your project"
        t = Transition()

        if winner is None:
            project.set_round_phase(2, RoundCompleted(start=phase.start, end=phase.end))
            self._fail(project, now)
            logger.info("round 2 closed without bids", extra={"project_id": str(project.id)})
            return t.count("round2Failed").notify(
                _owner(
                    project,
                    f"Round 2 closed without bids - {title}",
                    "No finalist bids remained when round 2 ended. The project has been marked as failed.",
                    NoticeSeverity.danger,
                )
            )

        winner.selection_status = BidSelectionStatus.won.value
        winner.status = BidStatus.won.value
        winner.won_at = now
        winner.updated_at = now
        losers = [b for b in finalists if b.id != winner.id]

        lost = self._mark_lost(
            db,
            project.id,
            now,
            Bid.round == 2,
            Bid.selection_status == BidSelectionStatus.selected_round2.value,
            Bid.id != winner.id,
        )

        project.set_round_phase(
            2,
            RoundCompleted(
                start=phase.start,
                end=phase.end,
                selected_ids=tuple(str(b.id) for b in finalists),
            ),
        )
        project.award(RoundAwarded(winning_bid_id=str(winner.id), completed_at=now))
        project.advance_round(CurrentRound.AWARDED)
        project.selected_bid_id = winner.id
        project.status = ProjectStatus.awarded.value
        project.bidding_completed = True
        project.bid_active = False
        project.winner_selected_at = now
        project.updated_at = now

        t.count("winnersSelected").count("bidsUpdated", 1 + lost)
        t.notify(
            _seller(
                winner.seller_id,
                f"You won - {title}",
                f"Your bid of {winner.amount} won the project. The contract will be shared shortly.",
                NoticeSeverity.success,
            )
        )
        for bid in losers:
            t.notify(
                _seller(
                    bid.seller_id,
                    f"Round 2 result - {title}",
                    "Another finalist was selected for this project.",
                )
            )
        t.notify(
            _owner(
                project,
                f"Winner selected - {title}",
                f"The winning bid is {winner.amount}. Your contract is being prepared.",
                NoticeSeverity.success,
            )
        )

        _, contract_t = self.contracts.initialize(db, project=project, bid=winner, now=now)
        t.merge(contract_t)
        logger.info(
            "winner selected",
            extra={"project_id": str(project.id), "bid_id": str(winner.id)},
        )
        return t

    # ─────────────────────────────────────────────
    # PHASE 5: COMPLETION
    # ─────────────────────────────────────────────

    def complete(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if (
            project.status != ProjectStatus.awarded.value
            or not project.contract_approved
            or project.timeline_end is None
            or project.timeline_end > now
            or project.selected_bid_id is None
        ):
            raise PreconditionNotMet("Project is not ready to complete.")

        bid = db.get(Bid, project.selected_bid_id)
        contract = self.contracts.get_for_bid(db, project.selected_bid_id)
        if bid is None or contract is None or contract.status != ContractStatus.completed.value:
            raise PreconditionNotMet("Winning contract is not completed.")

        certificate = generate_descriptor(
            self.documents,
            DocumentRole.completion_certificate,
            project=project,
            bid=bid,
            now=now,
            extra={"contractId": str(contract.id), "completedAt": now.isoformat()},
        )

        project.completion_certificate_json = certificate
        project.status = ProjectStatus.completed.value
        project.completed_at = now
        project.updated_at = now

        t = Transition().count("projectsCompleted").count("certificatesGenerated")
        bid.certificate_json = certificate
        if bid.status != BidStatus.completed.value:
            bid.status = BidStatus.completed.value
            bid.completed_at = now
            t.count("bidsUpdated")
        bid.updated_at = now

        title = project.title or "your project"
        t.notify(
            _owner(
                project,
                f"Project completed - {title}",
                "Your project is complete. The completion certificate is available.",
                NoticeSeverity.success,
            ),
            _seller(
                bid.seller_id,
                f"Project completed - {title}",
                "The project is complete. Your completion certificate is available.",
                NoticeSeverity.success,
            ),
        )
        logger.info("project completed", extra={"project_id": str(project.id)})
        return t

    # ─────────────────────────────────────────────
    # PHASE 6: ARCHIVAL
    # ─────────────────────────────────────────────

    def archive(self, db: Session, *, project: Project, now: datetime) -> Transition:
        if (
            project.status not in TERMINAL_PROJECT_STATUSES
            or project.is_archived
            or project.updated_at > now - self.settings.archive_retention
        ):
            raise PreconditionNotMet("Project is not archivable.")

        project.is_archived = True
        project.archived_at = now
        return Transition().count("projectsArchived")

    # ─────────────────────────────────────────────
    # EXTERNAL OPERATIONS
    # ─────────────────────────────────────────────

    def record_round2_selection(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        bid_ids: Sequence[uuid.UUID],
        now: Optional[datetime] = None,
    ) -> Project:
        """
        Stores the owner's pick. The next cycle decides whether it is
        acceptable; nothing is validated here.
        """
        project = self.get_project(db, project_id)
        if (
            project.status != ProjectStatus.active.value
            or project.round is not CurrentRound.SELECTION
        ):
            raise InvalidTransition("Round 2 selection is only accepted during the selection phase.")

        project.round2_selected_bids = [str(b) for b in bid_ids]
        project.updated_at = now or _now()
        return project

    def verify(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        approve: bool,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Project, Transition]:
        now = now or _now()
        project = self.get_project(db, project_id)
        if project.status != ProjectStatus.pending.value:
            raise InvalidTransition(f"Only pending projects can be verified (is {project.status}).")

        title = project.title or "your project"
        t = Transition()
        if approve:
            project.admin_status = AdminStatus.approved.value
            project.admin_rejection_reason = None
            t.notify(
                _owner(
                    project,
                    f"Project approved - {title}",
                    "Your project was approved and will open for bidding shortly.",
                    NoticeSeverity.success,
                )
            )
        else:
            project.admin_status = AdminStatus.rejected.value
            project.admin_rejection_reason = reason
            t.notify(
                _owner(
                    project,
                    f"Project rejected - {title}",
                    f"Your project was not approved: {reason or 'no reason given'}.",
                    NoticeSeverity.warning,
                )
            )
        project.updated_at = now
        logger.info(
            "project verified",
            extra={"project_id": str(project.id), "admin_status": project.admin_status},
        )
        return project, t

    def cancel(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Project, Transition]:
        now = now or _now()
        project = self.get_project(db, project_id)
        if project.status in TERMINAL_PROJECT_STATUSES:
            raise InvalidTransition(f"Project is already {project.status}.")

        live = [BidStatus.submitted.value, BidStatus.selected.value, BidStatus.won.value]
        affected = self.list_bids(db, project.id, Bid.status.in_(live))
        db.flush()
        result = db.execute(
            update(Bid)
            .where(Bid.project_id == project.id, Bid.status.in_(live))
            .values(
                status=BidStatus.cancelled.value,
                is_active_in_round=False,
                cancelled_at=now,
                updated_at=now,
            )
        )

        contract = self.contracts.get_open_for_project(db, project.id)
        if contract:
            self.contracts.cancel(contract, now)

        project.status = ProjectStatus.cancelled.value
        project.bid_active = False
        project.cancelled_at = now
        project.updated_at = now

        title = project.title or "your project"
        t = Transition().count("bidsUpdated", result.rowcount or 0)
        t.notify(
            _owner(
                project,
                f"Project cancelled - {title}",
                f"The project was cancelled by an administrator. {reason or ''}".strip(),
                NoticeSeverity.warning,
            )
        )
        for bid in affected:
            t.notify(
                _seller(
                    bid.seller_id,
                    f"Project cancelled - {title}",
                    "The project you bid on was cancelled. Your bid is no longer active.",
                    NoticeSeverity.warning,
                )
            )
        logger.info("project cancelled", extra={"project_id": str(project.id)})
        return project, t

    def force_deadlines(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Debug only: moves every pending deadline of the project one minute
        into the past so the next cycle acts on it. Returns what was moved.
        """
        now = now or _now()
        past = now - timedelta(minutes=1)
        project = self.get_project(db, project_id)
        moved: List[str] = []

        round1 = project.round_phase(1)
        if isinstance(round1, RoundActive):
            project.set_round_phase(1, RoundActive(start=round1.start, end=past))
            project.bid_end_date = past
            moved.append("round1.endDate")
        elif isinstance(round1, RoundPending) and project.bid_end_date is not None:
            project.bid_end_date = past
            project.set_round_phase(1, RoundPending(planned_end=past))
            moved.append("bidSettings.bidEndDate")

        if project.round is CurrentRound.SELECTION and project.selection_deadline is not None:
            project.selection_deadline = past
            moved.append("selectionDeadline")

        round2 = project.round_phase(2)
        if isinstance(round2, RoundActive):
            project.set_round_phase(2, RoundActive(start=round2.start, end=past))
            moved.append("round2.endDate")

        contract = self.contracts.get_open_for_project(db, project.id)
        if contract and self.contracts.force_deadline(contract, now):
            moved.append("contract.correctionDeadline")

        if moved:
            project.updated_at = now
        logger.warning(
            "deadlines forced",
            extra={"project_id": str(project.id), "moved": moved},
        )
        return moved
