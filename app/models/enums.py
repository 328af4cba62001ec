#app/models/enums.py
from __future__ import annotations
from enum import Enum


class ProjectStatus(str, Enum):
    drafted = "drafted"
    pending = "pending"
    active = "active"
    failed = "failed"
    awarded = "awarded"
    completed = "completed"
    cancelled = "cancelled"


TERMINAL_PROJECT_STATUSES = {
    ProjectStatus.failed.value,
    ProjectStatus.completed.value,
    ProjectStatus.cancelled.value,
}


class AdminStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class RoundStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"


class BidSelectionStatus(str, Enum):
    submitted = "submitted"
    selected_round1 = "selected-round1"
    selected_round2 = "selected-round2"
    won = "won"
    lost = "lost"


class BidStatus(str, Enum):
    submitted = "submitted"
    selected = "selected"
    won = "won"
    lost = "lost"
    cancelled = "cancelled"
    completed = "completed"


class ContractStatus(str, Enum):
    pending_customer = "pending-customer"
    pending_seller = "pending-seller"
    pending_admin = "pending-admin"
    correcting = "correcting"
    completed = "completed"
    rejected = "rejected"
    cancelled = "cancelled"


OPEN_CONTRACT_STATUSES = {
    ContractStatus.pending_customer.value,
    ContractStatus.pending_seller.value,
    ContractStatus.pending_admin.value,
    ContractStatus.correcting.value,
}


class Party(str, Enum):
    customer = "customer"
    seller = "seller"


class PartyRequired(str, Enum):
    customer = "customer"
    seller = "seller"
    both = "both"
    none = "none"

    def parties(self) -> set[Party]:
        if self is PartyRequired.both:
            return {Party.customer, Party.seller}
        if self is PartyRequired.none:
            return set()
        return {Party(self.value)}


class NoticeAudience(str, Enum):
    all = "all"
    customer = "customer"
    seller = "seller"
    admin = "admin"


class NoticeSeverity(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    danger = "danger"
