# app/services/transition.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import List

from app.services.notice_service import NoticeDraft


@dataclass
class Transition:
    """
    Outcome of one entity transition: counters for the cycle report and
    the notices to emit once the change is committed.
    """
    counters: Counter = field(default_factory=Counter)
    notices: List[NoticeDraft] = field(default_factory=list)

    def count(self, key: str, n: int = 1) -> "Transition":
        if n:
            self.counters[key] += n
        return self

    def notify(self, *notices: NoticeDraft) -> "Transition":
        self.notices.extend(notices)
        return self

    def merge(self, other: "Transition") -> "Transition":
        self.counters.update(other.counters)
        self.notices.extend(other.notices)
        return self

    def __bool__(self) -> bool:
        return bool(self.counters) or bool(self.notices)
