from __future__ import annotations

from typing import Dict, List, Optional
from pydantic import BaseModel


class CycleFailureResponse(BaseModel):
    phase: str
    entityId: str
    error: str


class CycleReportResponse(BaseModel):
    startedAt: str
    finishedAt: Optional[str] = None
    counters: Dict[str, int]
    failures: List[CycleFailureResponse] = []


class SchedulerStatusResponse(BaseModel):
    running: bool
    intervalSeconds: float
    lastError: Optional[str] = None
    lastReport: Optional[CycleReportResponse] = None
