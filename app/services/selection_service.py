# app/services/selection_service.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Sequence


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _submitted_at(bid: Any) -> datetime:
    return getattr(bid, "created_at", None) or _EPOCH


def _amount(bid: Any) -> Decimal:
    return Decimal(str(bid.amount))


def select_top_k_by_amount_desc(bids: Sequence[Any], k: int) -> List[Any]:
    """
    Round-1 shortlist: the k highest amounts.

    Equal amounts go to the earlier submission, then to the smaller id so
    the result never depends on input order. The input is not mutated.
    """
    if k <= 0:
        return []
    ranked = sorted(
        bids,
        key=lambda b: (-_amount(b), _submitted_at(b), str(b.id)),
    )
    return ranked[:k]


def select_winner_by_amount_asc(bids: Sequence[Any]) -> Optional[Any]:
    """
    Round-2 winner: the lowest amount among the finalists.

    Round 1 ranks highest-first while the final round picks the cheapest
    finalist; both orderings are business rules and stay as they are.
    """
    if not bids:
        return None
    return min(
        bids,
        key=lambda b: (_amount(b), _submitted_at(b), str(b.id)),
    )
