#app/models/bid.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    Numeric,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType
from app.db.types import UTCDateTime
from app.models.enums import BidSelectionStatus, BidStatus


def _now():
    return datetime.now(timezone.utc)


class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    proposal: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    round: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    selection_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=BidSelectionStatus.submitted.value
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=BidStatus.submitted.value
    )
    is_active_in_round: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    certificate_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # submission time; also the tie-break for equal amounts
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    won_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    lost_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("round IN (1, 2)", name="ck_bids_round_valid"),
        CheckConstraint("amount >= 0", name="ck_bids_amount_nonnegative"),
        # one live bid per seller and project
        Index(
            "uq_bids_project_seller_live",
            "project_id",
            "seller_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("ix_bids_project_round_selection", "project_id", "round", "selection_status"),
        Index("ix_bids_project_status_amount", "project_id", "status", "amount"),
    )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "projectId": str(self.project_id),
            "sellerId": str(self.seller_id),
            "customerId": str(self.customer_id),
            "amount": str(self.amount),
            "proposal": self.proposal,
            "round": self.round,
            "submittedAt": self.created_at.isoformat() if self.created_at else None,
        }
