# app/core/round_graph.py
from __future__ import annotations

from enum import Enum


class CurrentRound(str, Enum):
    ROUND_1 = "1"
    SELECTION = "1.5"
    ROUND_2 = "2"
    AWARDED = "3"

    @property
    def ordinal(self) -> float:
        return float(self.value)


# One bidding cycle only moves forward. There is no way back to 1.5 or 2
# once round 3 has been reached.
ALLOWED_ROUND_TRANSITIONS = {
    None: {CurrentRound.ROUND_1},

    CurrentRound.ROUND_1: {
        CurrentRound.SELECTION,
    },

    CurrentRound.SELECTION: {
        CurrentRound.ROUND_2,
    },

    CurrentRound.ROUND_2: {
        CurrentRound.AWARDED,
    },

    CurrentRound.AWARDED: set(),
}


def can_advance(current: CurrentRound | None, target: CurrentRound) -> bool:
    return target in ALLOWED_ROUND_TRANSITIONS[current]
