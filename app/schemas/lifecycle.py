from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field


class RoundWindow(BaseModel):
    status: str
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    selectedBids: List[str] = []
    completed: bool = False


class AwardedRound(BaseModel):
    status: str
    winningBid: Optional[str] = None
    completedAt: Optional[str] = None


class ProjectLifecycleResponse(BaseModel):
    projectId: str
    status: str
    adminStatus: str
    currentRound: Optional[str] = None
    bidActive: bool
    bidEndDate: Optional[str] = None
    round1: RoundWindow
    selectionDeadline: Optional[str] = None
    round2: RoundWindow
    round3: AwardedRound
    selectedBid: Optional[str] = None
    biddingCompleted: bool
    contractApproved: bool
    isArchived: bool
    completionCertificate: Optional[dict] = None
    updatedAt: Optional[str] = None


class Round2SelectionRequest(BaseModel):
    """
    The owner's pick of finalists. Stored as given; the next reconciliation
    cycle decides whether it is acceptable.
    """
    bidIds: List[str] = Field(..., min_length=1)


class ProjectVerifyRequest(BaseModel):
    approve: bool
    reason: Optional[str] = None


class ProjectCancelRequest(BaseModel):
    reason: Optional[str] = None


class ForceDeadlinesResponse(BaseModel):
    projectId: str
    moved: List[str]
