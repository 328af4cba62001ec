#app/models/notice.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Text, Boolean, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.models.enums import NoticeSeverity


def _now():
    return datetime.now(timezone.utc)


class Notice(Base):
    __tablename__ = "notices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    audience: Mapped[str] = mapped_column(String(16), nullable=False)
    severity: Mapped[str] = mapped_column(
        String(16), nullable=False, default=NoticeSeverity.info.value
    )
    target_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)
    end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_now)

    __table_args__ = (
        Index("ix_notices_audience_active", "audience", "is_active"),
        Index("ix_notices_target_user", "target_user_id"),
    )
