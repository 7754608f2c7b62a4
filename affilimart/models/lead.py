"""Lead entity for the Affilimart application."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any
from uuid import uuid4

from affilimart.errors import InvalidTransitionError, ValidationError
from affilimart.models.admin import AdminChain
from affilimart.models.base import AuthorRef, now_iso, pick_fields
from affilimart.models.booking import Note
from affilimart.models.identifiers import generate_lead_id
from affilimart.models.user import Address


class LeadType(Enum):
    LOAN = "loan"
    INSURANCE = "insurance"
    REAL_ESTATE = "real_estate"


class LeadStatus(Enum):
    """Sales pipeline stages of a lead."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"

    @property
    def is_closed(self) -> bool:
        return self in (LeadStatus.CLOSED_WON, LeadStatus.CLOSED_LOST)


class LeadSource(Enum):
    QR_SCAN = "qr_scan"
    WEBSITE = "website"
    REFERRAL = "referral"
    DIRECT = "direct"
    OTHER = "other"


class LeadPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


COMMUNICATION_TYPES = ("call", "email", "message", "meeting", "other")
DIRECTIONS = ("inbound", "outbound")


@dataclass
class CustomerInfo:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Address = field(default_factory=Address)


@dataclass
class Communication:
    """
    A logged interaction with the lead's customer.

    Attributes:
        type: call, email, message, meeting or other
        direction: inbound or outbound
        content: Summary of the interaction
        conducted_by: User or admin who held the interaction
        timestamp: When it happened
        follow_up_date: When to get back to the customer
        outcome: Free-form result
    """
    type: str
    direction: str
    content: str
    conducted_by: AuthorRef
    timestamp: Optional[str] = None
    follow_up_date: Optional[str] = None
    outcome: Optional[str] = None

    def __post_init__(self):
        if self.type not in COMMUNICATION_TYPES:
            raise ValidationError(f"Communication type must be one of {', '.join(COMMUNICATION_TYPES)}")
        if self.direction not in DIRECTIONS:
            raise ValidationError(f"Direction must be one of {', '.join(DIRECTIONS)}")
        if self.timestamp is None:
            self.timestamp = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["conducted_by"] = self.conducted_by.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Communication":
        values = pick_fields(cls, data)
        values["conducted_by"] = AuthorRef.from_dict(values["conducted_by"])
        return cls(**values)


@dataclass
class Lead:
    """
    A sales lead for a loan, insurance or real estate product.

    ``details`` holds the type specific questionnaire (loan amount and tenure,
    cover amount, property budget and so on) as submitted.
    """
    lead_id: str
    user_id: str
    type: LeadType
    customer_info: CustomerInfo
    admin_chain: AdminChain = field(default_factory=AdminChain)
    affiliate_id: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    details: Dict[str, Any] = field(default_factory=dict)
    source: LeadSource = LeadSource.QR_SCAN
    priority: LeadPriority = LeadPriority.MEDIUM
    assigned_to: Optional[str] = None
    communications: List[Communication] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    expected_closure_date: Optional[str] = None
    closed_at: Optional[str] = None
    closure_reason: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        if self.id is None:
            self.id = str(uuid4())
        if self.created_at is None:
            self.created_at = now_iso()
        if self.updated_at is None:
            self.updated_at = self.created_at
        if isinstance(self.type, str):
            self.type = LeadType(self.type)
        if isinstance(self.status, str):
            self.status = LeadStatus(self.status)
        if isinstance(self.source, str):
            self.source = LeadSource(self.source)
        if isinstance(self.priority, str):
            self.priority = LeadPriority(self.priority)

    @classmethod
    def create(cls, user_id: str, lead_type: LeadType, customer_info: CustomerInfo,
               admin_chain: AdminChain, affiliate_id: Optional[str] = None,
               details: Optional[Dict[str, Any]] = None,
               source: LeadSource = LeadSource.QR_SCAN,
               priority: LeadPriority = LeadPriority.MEDIUM) -> "Lead":
        return cls(
            lead_id=generate_lead_id(lead_type.value),
            user_id=user_id,
            type=lead_type,
            customer_info=customer_info,
            admin_chain=admin_chain,
            affiliate_id=affiliate_id,
            details=dict(details or {}),
            source=source,
            priority=priority,
        )

    def update_status(self, status: LeadStatus, reason: Optional[str] = None) -> None:
        """Move the lead through the pipeline; closed leads stay closed."""
        if self.status.is_closed:
            raise InvalidTransitionError(f"Lead {self.lead_id} is already {self.status.value}")
        self.status = status
        now = now_iso()
        if status.is_closed:
            self.closed_at = now
            self.closure_reason = reason
        self.updated_at = now

    def log_communication(self, communication: Communication) -> None:
        self.communications.append(communication)
        if self.status == LeadStatus.NEW and communication.direction == "outbound":
            self.status = LeadStatus.CONTACTED
        self.updated_at = now_iso()

    def add_note(self, author: AuthorRef, content: str) -> Note:
        if not content or not content.strip():
            raise ValidationError("Note content is required")
        note = Note(content=content.strip(), created_by=author)
        self.notes.append(note)
        self.updated_at = now_iso()
        return note

    def to_dict(self) -> Dict[str, Any]:
        info = self.customer_info
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "user_id": self.user_id,
            "type": self.type.value,
            "affiliate_id": self.affiliate_id,
            "admin_chain": self.admin_chain.to_dict(),
            "status": self.status.value,
            "customer_info": {
                "name": info.name,
                "email": info.email,
                "phone": info.phone,
                "address": info.address.to_dict(),
            },
            "details": dict(self.details),
            "source": self.source.value,
            "priority": self.priority.value,
            "assigned_to": self.assigned_to,
            "communications": [c.to_dict() for c in self.communications],
            "notes": [n.to_dict() for n in self.notes],
            "expected_closure_date": self.expected_closure_date,
            "closed_at": self.closed_at,
            "closure_reason": self.closure_reason,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lead":
        values = pick_fields(cls, data)
        info = values["customer_info"]
        values["customer_info"] = CustomerInfo(
            name=info["name"],
            email=info.get("email"),
            phone=info.get("phone"),
            address=Address.from_dict(info.get("address")),
        )
        values["admin_chain"] = AdminChain.from_dict(values.get("admin_chain"))
        values["communications"] = [Communication.from_dict(c) for c in values.get("communications") or []]
        values["notes"] = [Note.from_dict(n) for n in values.get("notes") or []]
        return cls(**values)
