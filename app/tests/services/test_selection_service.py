from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from app.services.selection_service import (
    select_top_k_by_amount_desc,
    select_winner_by_amount_asc,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_bid(id, amount, offset_seconds=0):
    return SimpleNamespace(
        id=id,
        amount=Decimal(str(amount)),
        created_at=T0 + timedelta(seconds=offset_seconds),
    )


def test_top_k_keeps_highest_amounts():
    bids = [make_bid(f"b{a}", a, i) for i, a in enumerate(range(100, 1300, 100))]

    top = select_top_k_by_amount_desc(bids, 10)

    assert [b.amount for b in top] == [Decimal(a) for a in range(1200, 200, -100)]


def test_top_k_ties_go_to_earliest_submission():
    late = make_bid("late", 500, offset_seconds=10)
    early = make_bid("early", 500, offset_seconds=1)
    low = make_bid("low", 100)

    top = select_top_k_by_amount_desc([late, low, early], 1)

    assert [b.id for b in top] == ["early"]


def test_top_k_falls_back_to_id_on_identical_timestamps():
    a = make_bid("a", 300)
    b = make_bid("b", 300)

    assert select_top_k_by_amount_desc([b, a], 1)[0].id == "a"


def test_top_k_with_fewer_bids_than_k_returns_all():
    bids = [make_bid("x", 1), make_bid("y", 2)]
    assert len(select_top_k_by_amount_desc(bids, 10)) == 2


def test_top_k_zero_or_empty():
    assert select_top_k_by_amount_desc([], 10) == []
    assert select_top_k_by_amount_desc([make_bid("x", 1)], 0) == []


def test_selection_does_not_mutate_input():
    bids = [make_bid("a", 100), make_bid("b", 300), make_bid("c", 200)]
    before = list(bids)

    select_top_k_by_amount_desc(bids, 2)
    select_winner_by_amount_asc(bids)

    assert bids == before


def test_winner_is_lowest_amount():
    bids = [make_bid("b1200", 1200), make_bid("b900", 900), make_bid("b600", 600)]
    assert select_winner_by_amount_asc(bids).id == "b600"


def test_winner_tie_goes_to_earliest_submission():
    bids = [
        make_bid("later", 600, offset_seconds=30),
        make_bid("earlier", 600, offset_seconds=5),
        make_bid("pricier", 900),
    ]
    assert select_winner_by_amount_asc(bids).id == "earlier"


def test_winner_of_nothing_is_none():
    assert select_winner_by_amount_asc([]) is None
