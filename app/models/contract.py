#app/models/contract.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    String,
    Text,
    Boolean,
    Numeric,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType
from app.db.types import UTCDateTime
from app.models.enums import ContractStatus, Party


def _now():
    return datetime.now(timezone.utc)


_STEP_BY_STATUS = {
    ContractStatus.pending_customer.value: 1,
    ContractStatus.pending_seller.value: 2,
    ContractStatus.pending_admin.value: 3,
    ContractStatus.correcting.value: 3,
    ContractStatus.completed.value: 4,
}


class Contract(Base):
    """
    Sign-off record for one winning bid.

    Stored-file descriptors are dicts: {"id", "url", "bytes", "generatedAt"}
    for generated documents and {"id", "url", "bytes", "uploadedAt",
    "uploadedBy"} for signed uploads. A cleared upload keeps "uploadedBy"
    so the slot stays addressable by its party.
    """

    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    bid_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bids.id", ondelete="RESTRICT"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    contract_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ContractStatus.pending_customer.value
    )

    customer_template_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    seller_template_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    customer_signed_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    seller_signed_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    customer_certificate_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    seller_certificate_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    final_certificate_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # Frozen copy of project and bid at creation time
    terms_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    current_rejection_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    rejection_history_json: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    admin_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("bid_id", name="uq_contracts_bid"),
        Index("ix_contracts_status", "status"),
        Index("ix_contracts_project", "project_id"),
    )

    @property
    def current_step(self) -> int:
        return _STEP_BY_STATUS.get(self.status, 1)

    def signed_upload(self, party: Party) -> Optional[Dict[str, Any]]:
        return getattr(self, f"{party.value}_signed_json")

    def has_signed_upload(self, party: Party) -> bool:
        upload = self.signed_upload(party)
        return bool(upload and upload.get("url"))

    def set_signed_upload(self, party: Party, descriptor: Dict[str, Any]) -> None:
        setattr(self, f"{party.value}_signed_json", {**descriptor, "uploadedBy": party.value})

    def clear_signed_upload(self, party: Party) -> None:
        setattr(self, f"{party.value}_signed_json", {"uploadedBy": party.value})

    @property
    def rejection_deadline(self) -> Optional[datetime]:
        if not self.current_rejection_json:
            return None
        raw = self.current_rejection_json.get("deadline")
        return datetime.fromisoformat(raw) if raw else None
