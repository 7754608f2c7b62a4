"""Regional admin entities for the Affilimart application."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4

from affilimart.models.base import now_iso, pick_fields


class AdminRole(Enum):
    """Admin roles, from the platform owner down to district associates."""
    SUPER_ADMIN = "super_admin"
    NSA = "nsa"
    SSA = "ssa"
    DSA = "dsa"


@dataclass
class Admin:
    """
    Represents an administrator in the regional hierarchy.

    Attributes:
        id: Unique identifier for the admin
        name: Admin's display name
        email: Login email, unique across admins
        phone: Phone number, unique across admins
        password: Hashed password
        role: Position in the hierarchy
        district: District covered (DSA only)
        state: State covered (SSA and DSA)
        country: Country covered (NSA, SSA and DSA)
        commission_rate: Informational commission rate for the admin
        created_by: ID of the admin who created this one
        is_active: Inactive admins are never resolved for a region
        created_at: When the admin was created, used to break ties
        updated_at: When the admin was last updated
        last_login: Time of the last successful login
    """
    name: str
    email: str
    phone: str
    password: str
    role: AdminRole
    district: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    commission_rate: float = 0.0
    created_by: Optional[str] = None
    is_active: bool = True
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_login: Optional[str] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.created_at is None:
            self.created_at = now_iso()
        if self.updated_at is None:
            self.updated_at = self.created_at
        if isinstance(self.role, str):
            self.role = AdminRole(self.role)

    @property
    def is_super_admin(self) -> bool:
        return self.role == AdminRole.SUPER_ADMIN

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Admin":
        return cls(**pick_fields(cls, data))


@dataclass(frozen=True)
class AdminChain:
    """
    Snapshot of the regional admins responsible for a booking or lead.

    Bound once when the record is created and never re-resolved.
    """
    dsa_id: Optional[str] = None
    ssa_id: Optional[str] = None
    nsa_id: Optional[str] = None

    def has(self, role: str) -> bool:
        """Check whether the chain has an admin for ``dsa``, ``ssa`` or ``nsa``."""
        return getattr(self, f"{role}_id", None) is not None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AdminChain":
        return cls(**pick_fields(cls, data))
