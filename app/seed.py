import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.round_graph import CurrentRound
from app.core.round_phases import RoundActive
from app.db.session import SessionLocal
from app.models.bid import Bid
from app.models.enums import AdminStatus, ProjectStatus
from app.models.project import Project


def seed(bid_window_minutes: int = 5) -> uuid.UUID:
    """
    One active demo project with twelve round-1 bids (100 to 1200).
    Round 1 closes after bid_window_minutes, so a later reconciliation
    cycle picks it up.
    """
    db: Session = SessionLocal()
    now = datetime.now(timezone.utc)
    customer_id = uuid.uuid4()

    project = Project(
        customer_id=customer_id,
        title="Seed Project - Office Renovation",
        description="Full renovation of a two-floor office space.",
        category="construction",
        requirements="Licensed contractor, 2 year warranty.",
        location_json={
            "address": "1 Market Street",
            "city": "Springfield",
            "state": "IL",
            "zipCode": "62701",
        },
        contact_json={"phone": "+1-555-0100", "email": "owner@example.com"},
        timeline_start=now + timedelta(days=7),
        timeline_end=now + timedelta(days=60),
        status=ProjectStatus.active.value,
        admin_status=AdminStatus.approved.value,
        starting_bid=Decimal("100.00"),
        bid_end_date=now + timedelta(minutes=bid_window_minutes),
        bid_active=True,
        created_at=now - timedelta(days=2),
        submitted_at=now - timedelta(days=1),
        activated_at=now,
        updated_at=now,
    )
    project.set_round_phase(1, RoundActive(start=now, end=project.bid_end_date))
    project.advance_round(CurrentRound.ROUND_1)
    db.add(project)
    db.flush()

    for i in range(12):
        db.add(
            Bid(
                project_id=project.id,
                seller_id=uuid.uuid4(),
                customer_id=customer_id,
                amount=Decimal(100 * (i + 1)),
                proposal=f"Seed proposal #{i + 1}",
                created_at=now + timedelta(seconds=i),
                updated_at=now + timedelta(seconds=i),
            )
        )

    db.commit()
    project_id = project.id
    db.close()
    return project_id


if __name__ == "__main__":
    print(seed())
