# app/core/round_phases.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class RoundPending:
    # Round 1 may already know its planned end (bid end date) before it opens.
    planned_end: Optional[datetime] = None


@dataclass(frozen=True)
class RoundActive:
    start: datetime
    end: datetime

    def has_ended(self, now: datetime) -> bool:
        return self.end <= now


@dataclass(frozen=True)
class RoundCompleted:
    start: Optional[datetime]
    end: Optional[datetime]
    selected_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RoundAwarded:
    """Round 3: the winner is fixed."""
    winning_bid_id: str
    completed_at: datetime


RoundPhase = Union[RoundPending, RoundActive, RoundCompleted]
