from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.errors import InvalidTransition
from app.models.bid import Bid
from app.models.contract import Contract
from app.models.enums import (
    AdminStatus,
    BidSelectionStatus,
    BidStatus,
    ContractStatus,
    Party,
    PartyRequired,
    ProjectStatus,
)
from app.models.notice import Notice
from app.services.document_service import DocumentRole
from app.services.notice_service import DbNoticeEmitter
from app.services.reconciliation_service import CYCLE_COUNTERS, build_reconciliation_service
from app.tests.factories import (
    NOW,
    ROUND2_CLOSED,
    SIGNED_AT,
    TWELVE_BIDS,
    add_bids,
    bid_by_amount,
    create_active_project,
    create_draft,
    open_round2,
    to_pending_admin,
    upload,
)


def _bid_states(db, project_id):
    rows = db.execute(select(Bid).where(Bid.project_id == project_id)).scalars().all()
    return {b.id: (b.round, b.selection_status, b.status) for b in rows}


def test_every_counter_is_reported_even_when_idle(db, service):
    report = service.run_cycle(db, now=NOW)

    assert set(report.counters) == set(CYCLE_COUNTERS)
    assert all(v == 0 for v in report.counters.values())
    assert report.failures == []
    assert report.finished_at is not None

    out = report.as_dict()
    assert set(out) == {"startedAt", "finishedAt", "counters", "failures"}


def test_incomplete_draft_stays_drafted_across_cycles(db, service):
    p = create_draft(
        db,
        location_json={"address": "12 Elm Street", "state": "IL", "zipCode": "62701"},
    )

    for hours in (0, 2, 26):
        report = service.run_cycle(db, now=NOW + timedelta(hours=hours))
        assert report.counters["draftedToPending"] == 0
        assert report.counters["validationErrors"] == 0

    db.refresh(p)
    assert p.status == ProjectStatus.drafted.value


def test_draft_to_active_over_two_cycles(db, service, lifecycle):
    p = create_draft(db)

    first = service.run_cycle(db, now=NOW)
    assert first.counters["draftedToPending"] == 1

    lifecycle.verify(db, project_id=p.id, approve=True, now=NOW)
    db.commit()

    second = service.run_cycle(db, now=NOW + timedelta(minutes=2))
    db.refresh(p)
    assert second.counters["draftedToActive"] == 1
    assert p.status == ProjectStatus.active.value
    assert p.current_round == "1"


def test_round_one_scenario_through_the_cycle(db, service, emitter):
    p = create_active_project(db)
    bids = add_bids(db, p, TWELVE_BIDS)

    report = service.run_cycle(db, now=NOW)

    assert report.counters["round1Completed"] == 1
    assert report.counters["noticesEmitted"] == len(emitter.notices) == 11
    selected = {b.amount for b in bids if b.selection_status == BidSelectionStatus.selected_round1.value}
    lost = {b.amount for b in bids if b.selection_status == BidSelectionStatus.lost.value}
    assert selected == {Decimal(a) for a in range(300, 1300, 100)}
    assert lost == {Decimal(100), Decimal(200)}


def test_cycle_is_idempotent(db, service, emitter):
    p = create_active_project(db)
    add_bids(db, p, TWELVE_BIDS)

    service.run_cycle(db, now=NOW)
    states = _bid_states(db, p.id)
    emitted = len(emitter.notices)

    again = service.run_cycle(db, now=NOW)

    assert all(v == 0 for v in again.counters.values())
    assert _bid_states(db, p.id) == states
    assert len(emitter.notices) == emitted


def test_selection_and_round_two_scenario(db, service, lifecycle):
    p = create_active_project(db)
    bids = add_bids(db, p, TWELVE_BIDS)
    service.run_cycle(db, now=NOW)

    picks = [bid_by_amount(bids, a) for a in (1200, 900, 600)]
    lifecycle.record_round2_selection(db, project_id=p.id, bid_ids=[b.id for b in picks])
    db.commit()

    opened = service.run_cycle(db, now=NOW + timedelta(hours=1))
    assert opened.counters["round2Started"] == 1

    finalists = db.execute(
        select(Bid).where(
            Bid.project_id == p.id,
            Bid.selection_status == BidSelectionStatus.selected_round2.value,
        )
    ).scalars().all()
    assert {b.amount for b in finalists} == {Decimal(1200), Decimal(900), Decimal(600)}

    closed = service.run_cycle(db, now=ROUND2_CLOSED)
    db.refresh(p)

    winner = bid_by_amount(bids, 600)
    assert closed.counters["winnersSelected"] == 1
    assert closed.counters["contractsCreated"] == 1
    assert p.status == ProjectStatus.awarded.value
    assert p.selected_bid_id == winner.id

    contract = db.execute(select(Contract).where(Contract.bid_id == winner.id)).scalar_one()
    assert contract.status == ContractStatus.pending_customer.value


def test_wrong_selection_count_expires_after_deadline(db, service, lifecycle):
    p = create_active_project(db)
    bids = add_bids(db, p, TWELVE_BIDS)
    service.run_cycle(db, now=NOW)

    lifecycle.record_round2_selection(
        db, project_id=p.id, bid_ids=[bid_by_amount(bids, 1200).id, bid_by_amount(bids, 900).id]
    )
    db.commit()

    waiting = service.run_cycle(db, now=NOW + timedelta(hours=1))
    assert waiting.counters["round2Started"] == 0
    assert waiting.counters["validationErrors"] == 0

    expired = service.run_cycle(db, now=NOW + timedelta(hours=25))
    db.refresh(p)
    assert expired.counters["selectionsExpired"] == 1
    assert p.status == ProjectStatus.failed.value


def test_signatures_reach_admin_customer_first(db, service, lifecycle):
    p, bids, finalists = open_round2(db, lifecycle)
    winner = bid_by_amount(bids, 600)

    first = service.run_cycle(db, now=ROUND2_CLOSED)
    contract = lifecycle.contracts.get_for_bid(db, winner.id)
    assert first.counters["contractsCreated"] == 1

    upload(db, lifecycle.contracts, contract, Party.customer)
    second = service.run_cycle(db, now=SIGNED_AT)
    db.refresh(contract)
    assert second.counters["contractsToSeller"] == 1
    assert contract.status == ContractStatus.pending_seller.value

    upload(db, lifecycle.contracts, contract, Party.seller)
    third = service.run_cycle(db, now=SIGNED_AT)
    db.refresh(contract)
    assert third.counters["contractsToAdmin"] == 1
    assert contract.status == ContractStatus.pending_admin.value


def test_missed_correction_deadline_scenario(db, service, lifecycle, contracts):
    p, winner, contract = to_pending_admin(db, lifecycle)
    contracts.reject(
        db,
        contract_id=contract.id,
        admin_id="admin-1",
        reason="Signature page missing",
        party_required=PartyRequired.both,
        deadline_hours=1,
        now=SIGNED_AT,
    )
    db.commit()

    report = service.run_cycle(db, now=SIGNED_AT + timedelta(hours=2))
    db.refresh(contract)
    db.refresh(winner)
    db.refresh(p)

    assert report.counters["contractsCancelled"] == 1
    assert contract.status == ContractStatus.rejected.value
    assert winner.status == BidStatus.cancelled.value
    assert p.status == ProjectStatus.failed.value


def test_late_reupload_does_not_rescue_expired_correction(db, service, lifecycle, contracts):
    p, winner, contract = to_pending_admin(db, lifecycle)
    contracts.reject(
        db,
        contract_id=contract.id,
        admin_id="admin-1",
        reason="Signature page missing",
        party_required=PartyRequired.both,
        deadline_hours=1,
        now=SIGNED_AT,
    )
    db.commit()
    late = SIGNED_AT + timedelta(hours=2)

    with pytest.raises(InvalidTransition):
        upload(db, contracts, contract, Party.customer, now=late)
    db.rollback()

    # files landing in the slots after the deadline are not accepted either
    for party in (Party.customer, Party.seller):
        contract.set_signed_upload(
            party,
            {
                "id": f"{party.value}-late",
                "url": f"/uploads/{party.value}-late.pdf",
                "uploadedAt": late.isoformat(),
            },
        )
    db.commit()

    report = service.run_cycle(db, now=late + timedelta(minutes=1))
    db.refresh(contract)
    db.refresh(p)

    assert report.counters["correctionsResolved"] == 0
    assert report.counters["contractsCancelled"] == 1
    assert contract.status == ContractStatus.rejected.value
    assert p.status == ProjectStatus.failed.value


def test_full_lifecycle_to_archive(db, service, lifecycle, contracts, documents):
    p, winner, contract = to_pending_admin(db, lifecycle)
    contracts.approve(db, contract_id=contract.id, approver_id="admin-1", now=SIGNED_AT)
    db.commit()

    done_at = p.timeline_end + timedelta(hours=1)
    completed = service.run_cycle(db, now=done_at)
    db.refresh(p)
    assert completed.counters["projectsCompleted"] == 1
    assert completed.counters["certificatesGenerated"] == 1
    assert p.status == ProjectStatus.completed.value
    assert documents.roles()[-1] is DocumentRole.completion_certificate

    archived = service.run_cycle(db, now=p.updated_at + timedelta(days=31))
    db.refresh(p)
    assert archived.counters["projectsArchived"] == 1
    assert p.is_archived is True


def test_document_failure_is_isolated_and_retried(db, service, lifecycle, documents):
    broken, _, _ = open_round2(db, lifecycle)
    healthy = create_active_project(db)
    add_bids(db, healthy, [100, 200])
    documents.fail_roles = {DocumentRole.customer_contract}

    report = service.run_cycle(db, now=ROUND2_CLOSED)
    db.refresh(broken)
    db.refresh(healthy)

    assert report.counters["validationErrors"] == 1
    assert report.failures[0].phase == "close_round2"
    assert report.failures[0].entity_id == str(broken.id)
    # rolled back as a whole
    assert broken.status == ProjectStatus.active.value
    assert broken.current_round == "2"
    assert broken.selected_bid_id is None
    assert not any(s == BidStatus.won.value for _, _, s in _bid_states(db, broken.id).values())
    # other entities still progressed
    assert report.counters["round1Completed"] == 1
    assert healthy.current_round == "1.5"

    documents.fail_roles = set()
    retry = service.run_cycle(db, now=ROUND2_CLOSED + timedelta(minutes=2))
    db.refresh(broken)
    assert retry.counters["winnersSelected"] == 1
    assert broken.status == ProjectStatus.awarded.value


def test_notice_failures_are_counted_not_fatal(db, service, emitter):
    p = create_active_project(db)
    add_bids(db, p, [100, 200, 300])
    emitter.fail = True

    report = service.run_cycle(db, now=NOW)
    db.refresh(p)

    assert report.counters["round1Completed"] == 1
    assert report.counters["noticeFailures"] == 4
    assert report.counters["noticesEmitted"] == 0
    assert p.current_round == "1.5"


def test_current_round_never_moves_backwards(db, service, lifecycle):
    p = create_active_project(db)
    bids = add_bids(db, p, TWELVE_BIDS)
    seen = []

    for step, now in enumerate([NOW, NOW + timedelta(hours=1), ROUND2_CLOSED, SIGNED_AT]):
        if step == 1:
            lifecycle.record_round2_selection(
                db,
                project_id=p.id,
                bid_ids=[bid_by_amount(bids, a).id for a in (1200, 900, 600)],
            )
            db.commit()
        service.run_cycle(db, now=now)
        db.refresh(p)
        seen.append(float(p.current_round))

    assert seen == sorted(seen)
    assert seen[-1] == 3.0


def test_db_notice_emitter_persists_with_seven_day_window(db, settings, documents):
    service = build_reconciliation_service(
        settings, documents=documents, emitter=DbNoticeEmitter(settings.notice_lifetime)
    )
    p = create_draft(db, status=ProjectStatus.pending.value, admin_status=AdminStatus.approved.value)

    report = service.run_cycle(db, now=NOW)

    rows = db.execute(select(Notice)).scalars().all()
    assert report.counters["noticesEmitted"] == len(rows) == 2
    assert {r.target_user_id for r in rows} == {p.customer_id, None}
    for r in rows:
        assert r.is_active is True
        assert r.end_date - r.start_date == timedelta(days=7)
