import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.round_graph import CurrentRound, can_advance
from app.core.round_phases import RoundActive, RoundAwarded, RoundCompleted, RoundPending
from app.models.project import Project

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_round_graph_only_moves_forward():
    assert can_advance(None, CurrentRound.ROUND_1)
    assert can_advance(CurrentRound.ROUND_1, CurrentRound.SELECTION)
    assert can_advance(CurrentRound.SELECTION, CurrentRound.ROUND_2)
    assert can_advance(CurrentRound.ROUND_2, CurrentRound.AWARDED)

    assert not can_advance(CurrentRound.ROUND_1, CurrentRound.ROUND_2)
    assert not can_advance(CurrentRound.ROUND_2, CurrentRound.SELECTION)
    assert not can_advance(CurrentRound.AWARDED, CurrentRound.ROUND_1)


def test_ordinal_is_monotonic_along_the_graph():
    order = [CurrentRound.ROUND_1, CurrentRound.SELECTION, CurrentRound.ROUND_2, CurrentRound.AWARDED]
    assert [r.ordinal for r in order] == sorted(r.ordinal for r in order)


def test_project_rejects_backwards_round():
    p = Project(customer_id=uuid.uuid4())
    p.advance_round(CurrentRound.ROUND_1)
    p.advance_round(CurrentRound.SELECTION)

    with pytest.raises(ValueError):
        p.advance_round(CurrentRound.ROUND_1)
    assert p.round is CurrentRound.SELECTION


def test_round_phase_reads_back_what_was_written():
    p = Project(customer_id=uuid.uuid4())

    p.set_round_phase(1, RoundPending(planned_end=T0))
    assert p.round_phase(1) == RoundPending(planned_end=T0)

    active = RoundActive(start=T0, end=T0 + timedelta(hours=1))
    p.set_round_phase(1, active)
    assert p.round_phase(1) == active
    assert not active.has_ended(T0)
    assert active.has_ended(T0 + timedelta(hours=1))

    done = RoundCompleted(start=active.start, end=active.end, selected_ids=("a", "b"))
    p.set_round_phase(1, done)
    assert p.round_phase(1) == done
    assert p.round1_completed is True


def test_only_rounds_one_and_two_have_windows():
    p = Project(customer_id=uuid.uuid4())
    with pytest.raises(ValueError):
        p.round_phase(3)


def test_award_is_exposed_as_round_three():
    p = Project(customer_id=uuid.uuid4())
    assert p.awarded_round is None

    winner = str(uuid.uuid4())
    p.award(RoundAwarded(winning_bid_id=winner, completed_at=T0))

    assert p.awarded_round == RoundAwarded(winning_bid_id=winner, completed_at=T0)
