# app/services/document_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from app.core.errors import DependencyFailure
from app.core.hashing import canonical_dumps, sha256_hex

logger = logging.getLogger(__name__)


class DocumentRole(str, Enum):
    customer_contract = "customer_contract"
    seller_contract = "seller_contract"
    customer_certificate = "customer_certificate"
    seller_certificate = "seller_certificate"
    final_certificate = "final_certificate"
    completion_certificate = "completion_certificate"


@dataclass(frozen=True)
class DocumentRequest:
    role: DocumentRole
    bid: Dict[str, Any]
    project: Dict[str, Any]
    customer_id: str
    seller_id: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredFile:
    id: str
    url: str
    byte_size: int

    def descriptor(self, generated_at: datetime) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "bytes": self.byte_size,
            "generatedAt": generated_at.isoformat(),
        }


class DocumentGenerator(Protocol):
    def generate(self, request: DocumentRequest) -> StoredFile:
        ...


# ─────────────────────────────────────────────
# RENDERERS (one per role)
# ─────────────────────────────────────────────

def _parties(req: DocumentRequest) -> Dict[str, Any]:
    return {"customerId": req.customer_id, "sellerId": req.seller_id}


def _contract_body(req: DocumentRequest, signer: str) -> Dict[str, Any]:
    return {
        "kind": "service_contract",
        "signer": signer,
        "parties": _parties(req),
        "project": req.project,
        "bid": req.bid,
        "contractValue": req.bid.get("amount"),
        "instructions": f"Sign and upload this contract as the {signer}.",
    }


def _certificate_body(req: DocumentRequest, holder: str) -> Dict[str, Any]:
    return {
        "kind": "contract_certificate",
        "holder": holder,
        "parties": _parties(req),
        "projectTitle": req.project.get("title"),
        "projectId": req.project.get("id"),
        "bidId": req.bid.get("id"),
        "contractValue": req.bid.get("amount"),
        **req.extra,
    }


def _completion_body(req: DocumentRequest) -> Dict[str, Any]:
    return {
        "kind": "completion_certificate",
        "parties": _parties(req),
        "projectTitle": req.project.get("title"),
        "projectId": req.project.get("id"),
        "bidId": req.bid.get("id"),
        "timeline": req.project.get("timeline"),
        **req.extra,
    }


RENDERERS: Dict[DocumentRole, Callable[[DocumentRequest], Dict[str, Any]]] = {
    DocumentRole.customer_contract: lambda r: _contract_body(r, "customer"),
    DocumentRole.seller_contract: lambda r: _contract_body(r, "seller"),
    DocumentRole.customer_certificate: lambda r: _certificate_body(r, "customer"),
    DocumentRole.seller_certificate: lambda r: _certificate_body(r, "seller"),
    DocumentRole.final_certificate: lambda r: _certificate_body(r, "all"),
    DocumentRole.completion_certificate: _completion_body,
}


class LocalDocumentGenerator:
    """
    Renders documents as canonical JSON and stores them on local disk.

    The file id is the content hash, so regenerating the same request
    rewrites the same file and returns the same descriptor.
    """

    def __init__(self, storage_dir: str, public_base_url: str):
        self.storage_dir = Path(storage_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def generate(self, request: DocumentRequest) -> StoredFile:
        body = canonical_dumps({"role": request.role.value, **RENDERERS[request.role](request)})
        raw = body.encode("utf-8")
        file_id = sha256_hex(body)
        filename = f"{request.role.value}_{file_id[:16]}.json"

        try:
            target_dir = self.storage_dir / request.role.value
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / filename).write_bytes(raw)
        except OSError as e:
            raise DependencyFailure(f"Document storage failed for {request.role.value}: {e}") from e

        logger.info(
            "document generated",
            extra={"role": request.role.value, "bid_id": request.bid.get("id"), "file_id": file_id},
        )
        return StoredFile(
            id=file_id,
            url=f"{self.public_base_url}/{request.role.value}/{filename}",
            byte_size=len(raw),
        )


def generate_descriptor(
    documents: DocumentGenerator,
    role: DocumentRole,
    *,
    project: Any,
    bid: Any,
    now: datetime,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Requests one document for (project, bid) and returns the descriptor to
    store on the entity. Any generator failure surfaces as DependencyFailure.
    """
    request = DocumentRequest(
        role=role,
        bid=bid.snapshot(),
        project=project.snapshot(),
        customer_id=str(project.customer_id),
        seller_id=str(bid.seller_id),
        extra=extra or {},
    )
    try:
        stored = documents.generate(request)
    except DependencyFailure:
        raise
    except Exception as e:
        raise DependencyFailure(f"Document generation failed for {role.value}: {e}") from e
    return stored.descriptor(now)
