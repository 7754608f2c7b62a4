"""
Commission model for the Affilimart application.

A service (or its template) carries a CommissionStructure. When a booking is
confirmed the structure is applied to the booking total and produces a
CommissionSplit with one entry per payee role.
"""

from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Optional, Dict, Any

from affilimart.errors import InvalidTransitionError
from affilimart.models.admin import AdminChain
from affilimart.models.base import now_iso, pick_fields

ROLES = ("affiliate", "dsa", "ssa", "nsa")


class CommissionStatus(Enum):
    """Payout status of a single commission entry."""
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


_PAYOUT_TRANSITIONS = {
    CommissionStatus.PENDING: {CommissionStatus.PROCESSING},
    CommissionStatus.PROCESSING: {CommissionStatus.PAID, CommissionStatus.FAILED},
    CommissionStatus.FAILED: {CommissionStatus.PROCESSING},
    CommissionStatus.PAID: set(),
}


@dataclass(frozen=True)
class CommissionStructure:
    """
    Commission rules for a service.

    Attributes:
        affiliate_commission: Affiliate's share
        dsa_commission: District sales associate's share
        ssa_commission: State sales associate's share
        nsa_commission: National sales associate's share
        is_percentage: Shares are percentages of the total when True,
            flat amounts otherwise
    """
    affiliate_commission: float
    dsa_commission: float = 0.0
    ssa_commission: float = 0.0
    nsa_commission: float = 0.0
    is_percentage: bool = True

    def rate_for(self, role: str) -> float:
        return getattr(self, f"{role}_commission")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionStructure":
        return cls(**pick_fields(cls, data))


@dataclass
class CommissionEntry:
    """Amount owed to one role and where its payout stands."""
    amount: float
    status: CommissionStatus = CommissionStatus.PENDING
    paid_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = CommissionStatus(self.status)

    def transition(self, new_status: CommissionStatus) -> None:
        """Move the payout to ``new_status``, stamping ``paid_at`` on payment."""
        if new_status not in _PAYOUT_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move commission from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        if new_status == CommissionStatus.PAID:
            self.paid_at = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "status": self.status.value, "paid_at": self.paid_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionEntry":
        return cls(**pick_fields(cls, data))


@dataclass
class CommissionSplit:
    """Commission entries for the affiliate and the regional admins."""
    affiliate: Optional[CommissionEntry] = None
    dsa: Optional[CommissionEntry] = None
    ssa: Optional[CommissionEntry] = None
    nsa: Optional[CommissionEntry] = None

    def entry(self, role: str) -> Optional[CommissionEntry]:
        if role not in ROLES:
            raise KeyError(role)
        return getattr(self, role)

    def without_absent_roles(self, chain: AdminChain, has_affiliate: bool) -> "CommissionSplit":
        """Drop entries for roles that have nobody to pay."""
        return replace(
            self,
            affiliate=self.affiliate if has_affiliate else None,
            dsa=self.dsa if chain.has("dsa") else None,
            ssa=self.ssa if chain.has("ssa") else None,
            nsa=self.nsa if chain.has("nsa") else None,
        )

    def total(self) -> float:
        return sum(entry.amount for entry in (self.entry(role) for role in ROLES) if entry)

    def to_dict(self) -> Dict[str, Any]:
        return {role: (self.entry(role).to_dict() if self.entry(role) else None) for role in ROLES}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CommissionSplit":
        data = data or {}
        return cls(**{
            role: CommissionEntry.from_dict(data[role]) if data.get(role) else None
            for role in ROLES
        })
