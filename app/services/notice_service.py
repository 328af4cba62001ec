# app/services/notice_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from app.models.enums import NoticeAudience, NoticeSeverity
from app.models.notice import Notice

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NoticeDraft:
    """
    A notice produced by a transition. Transitions only return these; the
    reconciliation cycle emits them after the entity's changes are committed.
    """
    title: str
    body: str
    audience: NoticeAudience
    severity: NoticeSeverity = NoticeSeverity.info
    target_user_id: Optional[uuid.UUID] = None


def to_user(
    user_id: uuid.UUID,
    audience: NoticeAudience,
    title: str,
    body: str,
    severity: NoticeSeverity = NoticeSeverity.info,
) -> NoticeDraft:
    return NoticeDraft(
        title=title,
        body=body,
        audience=audience,
        severity=severity,
        target_user_id=user_id,
    )


def broadcast(
    audience: NoticeAudience,
    title: str,
    body: str,
    severity: NoticeSeverity = NoticeSeverity.info,
) -> NoticeDraft:
    return NoticeDraft(title=title, body=body, audience=audience, severity=severity)


class NoticeEmitter(Protocol):
    def emit(self, db: Session, notice: NoticeDraft) -> None:
        ...


class DbNoticeEmitter:
    """
    Persists notices as rows; the portal renders whatever is active.
    Delivery is at-least-once: a cycle that fails after emitting may emit
    the same notice again on retry.
    """

    def __init__(self, lifetime: timedelta = timedelta(days=7)):
        self.lifetime = lifetime

    def emit(self, db: Session, notice: NoticeDraft) -> None:
        start = _now()
        row = Notice(
            title=notice.title,
            body=notice.body,
            audience=notice.audience.value,
            severity=notice.severity.value,
            target_user_id=notice.target_user_id,
            is_active=True,
            start_date=start,
            end_date=start + self.lifetime,
        )
        db.add(row)
        db.commit()
        logger.debug(
            "notice emitted",
            extra={"title": notice.title, "audience": notice.audience.value},
        )


def emit_all(emitter: NoticeEmitter, db: Session, notices: Iterable[NoticeDraft]) -> Tuple[int, int]:
    """
    Emits after the caller has committed. A failing notice is logged and
    counted; it never undoes the transition that produced it.
    Returns (emitted, failed).
    """
    emitted = failed = 0
    for notice in notices:
        try:
            emitter.emit(db, notice)
            emitted += 1
        except Exception:
            db.rollback()
            failed += 1
            logger.exception(
                "notice emission failed",
                extra={"title": notice.title, "audience": notice.audience.value},
            )
    return emitted, failed
