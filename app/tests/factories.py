import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.core.round_graph import CurrentRound
from app.core.round_phases import RoundActive
from app.models.bid import Bid
from app.models.enums import AdminStatus, Party, ProjectStatus
from app.models.project import Project
from app.services.document_service import StoredFile

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────
# FAKE COLLABORATORS
# ─────────────────────────────────────────────

class RecordingEmitter:
    def __init__(self):
        self.notices = []
        self.fail = False

    def emit(self, db, notice):
        if self.fail:
            raise RuntimeError("notice store down")
        self.notices.append(notice)

    def titles(self):
        return [n.title for n in self.notices]


class RecordingDocuments:
    def __init__(self):
        self.requests = []
        self.fail_roles = set()

    def generate(self, request):
        if request.role in self.fail_roles:
            raise RuntimeError(f"renderer down for {request.role.value}")
        self.requests.append(request)
        n = len(self.requests)
        return StoredFile(
            id=f"doc-{n}",
            url=f"/documents/{request.role.value}/doc-{n}.json",
            byte_size=128,
        )

    def roles(self):
        return [r.role for r in self.requests]


# ─────────────────────────────────────────────
# FACTORIES
# ─────────────────────────────────────────────

def create_draft(db, **overrides) -> Project:
    """A complete draft, two days old."""
    fields = dict(
        customer_id=uuid.uuid4(),
        title="Kitchen Remodel",
        description="Replace cabinets and countertops.",
        category="construction",
        requirements="Licensed and insured.",
        location_json={
            "address": "12 Elm Street",
            "city": "Springfield",
            "state": "IL",
            "zipCode": "62701",
        },
        contact_json={"phone": "+1-555-0100"},
        timeline_start=NOW + timedelta(days=10),
        timeline_end=NOW + timedelta(days=40),
        starting_bid=Decimal("100.00"),
        bid_end_date=NOW + timedelta(days=3),
        status=ProjectStatus.drafted.value,
        created_at=NOW - timedelta(hours=48),
        updated_at=NOW - timedelta(hours=48),
    )
    fields.update(overrides)
    project = Project(**fields)
    db.add(project)
    db.commit()
    return project


def create_active_project(db, round1_end=None, **overrides) -> Project:
    """Approved project with round 1 open (closed by default at NOW - 1 minute)."""
    round1_end = round1_end or NOW - timedelta(minutes=1)
    project = create_draft(
        db,
        status=ProjectStatus.active.value,
        admin_status=AdminStatus.approved.value,
        bid_end_date=round1_end,
        bid_active=True,
        **overrides,
    )
    project.set_round_phase(1, RoundActive(start=NOW - timedelta(days=1), end=round1_end))
    project.advance_round(CurrentRound.ROUND_1)
    db.commit()
    return project


def add_bids(db, project, amounts, round=1):
    """One bid per amount, each from its own seller, submitted a second apart."""
    bids = []
    for i, amount in enumerate(amounts):
        bid = Bid(
            project_id=project.id,
            seller_id=uuid.uuid4(),
            customer_id=project.customer_id,
            amount=Decimal(str(amount)),
            round=round,
            created_at=NOW - timedelta(hours=6) + timedelta(seconds=i),
            updated_at=NOW - timedelta(hours=6) + timedelta(seconds=i),
        )
        db.add(bid)
        bids.append(bid)
    db.commit()
    return bids


def bid_by_amount(bids, amount):
    return next(b for b in bids if b.amount == Decimal(str(amount)))


# ─────────────────────────────────────────────
# LIFECYCLE SHORTCUTS
# ─────────────────────────────────────────────

TWELVE_BIDS = list(range(100, 1300, 100))
ROUND2_OPENED = NOW + timedelta(hours=1)
ROUND2_CLOSED = ROUND2_OPENED + timedelta(hours=24, minutes=1)
SIGNED_AT = ROUND2_CLOSED + timedelta(hours=1)


def shortlist(db, lifecycle, amounts=TWELVE_BIDS):
    """Active project whose round 1 has just been closed at NOW."""
    project = create_active_project(db)
    bids = add_bids(db, project, amounts)
    lifecycle.close_round1(db, project=project, now=NOW)
    db.commit()
    return project, bids


def open_round2(db, lifecycle, picks=(1200, 900, 600), amounts=TWELVE_BIDS):
    project, bids = shortlist(db, lifecycle, amounts)
    finalists = [bid_by_amount(bids, a) for a in picks]
    lifecycle.record_round2_selection(
        db, project_id=project.id, bid_ids=[b.id for b in finalists]
    )
    db.commit()
    lifecycle.resolve_selection(db, project=project, now=ROUND2_OPENED)
    db.commit()
    return project, bids, finalists


def award(db, lifecycle, **kwargs):
    project, bids, finalists = open_round2(db, lifecycle, **kwargs)
    lifecycle.close_round2(db, project=project, now=ROUND2_CLOSED)
    db.commit()
    winner = db.get(Bid, project.selected_bid_id)
    contract = lifecycle.contracts.get_for_bid(db, winner.id)
    return project, winner, contract


def upload(db, contracts, contract, party, now=SIGNED_AT):
    contracts.record_upload(
        db,
        contract_id=contract.id,
        party=party,
        stored_file={
            "id": f"{party.value}-signed",
            "url": f"/uploads/{party.value}-signed.pdf",
            "bytes": 2048,
        },
        now=now,
    )
    db.commit()


def to_pending_admin(db, lifecycle, now=SIGNED_AT):
    """Awarded project whose contract both parties have signed."""
    project, winner, contract = award(db, lifecycle)
    contracts = lifecycle.contracts

    upload(db, contracts, contract, Party.customer, now)
    contracts.advance_intake(db, contract=contract, now=now)
    db.commit()

    upload(db, contracts, contract, Party.seller, now)
    contracts.advance_intake(db, contract=contract, now=now)
    db.commit()
    return project, winner, contract
