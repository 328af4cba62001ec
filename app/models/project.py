# /app/models/project.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import String, Text, Boolean, Numeric, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.round_graph import CurrentRound, can_advance
from app.core.round_phases import (
    RoundActive,
    RoundAwarded,
    RoundCompleted,
    RoundPending,
    RoundPhase,
)
from app.db.base import Base, JSONType
from app.db.types import UTCDateTime
from app.models.enums import AdminStatus, ProjectStatus, RoundStatus


def _now():
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {"address", "city", "state", "zipCode"} / {"phone", "email"}
    location_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    contact_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    timeline_start: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    timeline_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.drafted.value
    )
    admin_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AdminStatus.pending.value
    )
    admin_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ─────────── BID SETTINGS ───────────
    starting_bid: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    bid_end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    bid_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ─────────── BIDDING ROUNDS ───────────
    # Read and write these through round_phase()/set_round_phase(); the flat
    # columns are only the storage layout.
    current_round: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    round1_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RoundStatus.pending.value
    )
    round1_start: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    round1_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    round1_selected_bids: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    round1_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    selection_deadline: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    round2_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RoundStatus.pending.value
    )
    round2_start: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    round2_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    # During round 1.5 this holds the owner's pick (written by the customer UI).
    round2_selected_bids: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    round2_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    round3_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RoundStatus.pending.value
    )
    round3_winning_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    round3_completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    selected_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    bidding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contract_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    completion_certificate_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=True
    )

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ─────────── LIFECYCLE TIMESTAMPS ───────────
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    activated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    winner_selected_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    failed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("ix_projects_status_round", "status", "current_round"),
        Index("ix_projects_archive_scan", "status", "is_archived", "updated_at"),
    )

    # ─────────────────────────────────────────────
    # ROUND PHASES
    # ─────────────────────────────────────────────

    @property
    def round(self) -> Optional[CurrentRound]:
        return CurrentRound(self.current_round) if self.current_round else None

    def advance_round(self, target: CurrentRound) -> None:
        if not can_advance(self.round, target):
            raise ValueError(
                f"Round cannot move from {self.current_round} to {target.value}."
            )
        self.current_round = target.value

    def round_phase(self, n: int) -> RoundPhase:
        if n not in (1, 2):
            raise ValueError("Only rounds 1 and 2 have a bidding window.")
        status = getattr(self, f"round{n}_status")
        start = getattr(self, f"round{n}_start")
        end = getattr(self, f"round{n}_end")

        if status == RoundStatus.active.value:
            return RoundActive(start=start, end=end)
        if status == RoundStatus.completed.value:
            return RoundCompleted(
                start=start,
                end=end,
                selected_ids=tuple(getattr(self, f"round{n}_selected_bids") or ()),
            )
        return RoundPending(planned_end=end)

    def set_round_phase(self, n: int, phase: RoundPhase) -> None:
        if n not in (1, 2):
            raise ValueError("Only rounds 1 and 2 have a bidding window.")

        if isinstance(phase, RoundActive):
            setattr(self, f"round{n}_status", RoundStatus.active.value)
            setattr(self, f"round{n}_start", phase.start)
            setattr(self, f"round{n}_end", phase.end)
        elif isinstance(phase, RoundCompleted):
            setattr(self, f"round{n}_status", RoundStatus.completed.value)
            setattr(self, f"round{n}_start", phase.start)
            setattr(self, f"round{n}_end", phase.end)
            # new list object so the JSON column is flagged dirty
            setattr(self, f"round{n}_selected_bids", list(phase.selected_ids))
            setattr(self, f"round{n}_completed", True)
        else:
            setattr(self, f"round{n}_status", RoundStatus.pending.value)
            setattr(self, f"round{n}_start", None)
            setattr(self, f"round{n}_end", phase.planned_end)

    def award(self, awarded: RoundAwarded) -> None:
        self.round3_status = RoundStatus.completed.value
        self.round3_winning_bid_id = uuid.UUID(awarded.winning_bid_id)
        self.round3_completed_at = awarded.completed_at

    @property
    def awarded_round(self) -> Optional[RoundAwarded]:
        if self.round3_status != RoundStatus.completed.value or not self.round3_winning_bid_id:
            return None
        return RoundAwarded(
            winning_bid_id=str(self.round3_winning_bid_id),
            completed_at=self.round3_completed_at,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Frozen, JSON-safe copy used for contract terms and documents."""
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "requirements": self.requirements,
            "location": dict(self.location_json or {}),
            "customerId": str(self.customer_id),
            "startingBid": str(self.starting_bid) if self.starting_bid is not None else None,
            "timeline": {
                "startDate": self.timeline_start.isoformat() if self.timeline_start else None,
                "endDate": self.timeline_end.isoformat() if self.timeline_end else None,
            },
        }
