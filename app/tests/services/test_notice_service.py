import uuid
from datetime import timedelta

from sqlalchemy import select

from app.models.enums import NoticeAudience, NoticeSeverity
from app.models.notice import Notice
from app.services.notice_service import DbNoticeEmitter, broadcast, emit_all, to_user
from app.tests.factories import RecordingEmitter


def test_db_emitter_stores_active_notice_with_lifetime(db):
    user_id = uuid.uuid4()
    emitter = DbNoticeEmitter(timedelta(days=7))

    emitter.emit(
        db,
        to_user(user_id, NoticeAudience.seller, "You won", "Congratulations.", NoticeSeverity.success),
    )

    row = db.execute(select(Notice)).scalar_one()
    assert row.title == "You won"
    assert row.audience == "seller"
    assert row.severity == "success"
    assert row.target_user_id == user_id
    assert row.is_active is True
    assert row.end_date - row.start_date == timedelta(days=7)


def test_broadcast_has_no_target():
    notice = broadcast(NoticeAudience.admin, "Review needed", "A project awaits review.")

    assert notice.target_user_id is None
    assert notice.severity is NoticeSeverity.info


class _FlakyEmitter(RecordingEmitter):
    def emit(self, db, notice):
        if notice.title == "boom":
            raise RuntimeError("store down")
        super().emit(db, notice)


def test_emit_all_counts_failures_and_keeps_going(db):
    emitter = _FlakyEmitter()
    notices = [
        broadcast(NoticeAudience.all, "one", "."),
        broadcast(NoticeAudience.all, "boom", "."),
        broadcast(NoticeAudience.all, "two", "."),
    ]

    emitted, failed = emit_all(emitter, db, notices)

    assert (emitted, failed) == (2, 1)
    assert emitter.titles() == ["one", "two"]
