from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from app.models.enums import PartyRequired


class ContractResponse(BaseModel):
    contractId: str
    bidId: str
    projectId: str
    customerId: str
    sellerId: str
    contractValue: str
    status: str
    currentStep: int

    customerTemplate: Optional[Dict[str, Any]] = None
    sellerTemplate: Optional[Dict[str, Any]] = None
    customerSignedContract: Optional[Dict[str, Any]] = None
    sellerSignedContract: Optional[Dict[str, Any]] = None
    customerCertificate: Optional[Dict[str, Any]] = None
    sellerCertificate: Optional[Dict[str, Any]] = None
    finalCertificate: Optional[Dict[str, Any]] = None

    terms: Dict[str, Any] = {}
    currentRejection: Optional[Dict[str, Any]] = None
    rejectionHistory: List[Dict[str, Any]] = []

    adminApproved: bool
    approvedBy: Optional[str] = None
    approvedAt: Optional[str] = None
    adminNotes: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class SignedUploadRequest(BaseModel):
    """Descriptor of a file already stored by the upload service."""
    id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    bytes: int = Field(0, ge=0)


class ContractApproveRequest(BaseModel):
    approverId: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ContractRejectRequest(BaseModel):
    adminId: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    partyRequired: PartyRequired = PartyRequired.both
    deadlineHours: Optional[float] = Field(None, gt=0)
