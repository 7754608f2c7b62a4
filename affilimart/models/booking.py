"""Booking entity for the Affilimart application."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any
from uuid import uuid4

from affilimart.errors import InvalidTransitionError, NotFoundError, ValidationError
from affilimart.models.admin import AdminChain
from affilimart.models.base import AuthorRef, now_iso, pick_fields, round_currency
from affilimart.models.commission import CommissionSplit, CommissionStructure
from affilimart.models.identifiers import generate_booking_id


class BookingStatus(Enum):
    """Possible statuses for a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED},
    BookingStatus.COMPLETED: {BookingStatus.REFUNDED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.REFUNDED: set(),
}


class PaymentType(Enum):
    TOKEN = "token"
    FULL = "full"
    PARTIAL = "partial"
    REFUND = "refund"


class PaymentStatus(Enum):
    """Possible statuses for a payment."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

CANCELLED_BY = ("user", "service_provider", "admin", "system")


@dataclass
class Payment:
    """
    A payment made against a booking.

    Attributes:
        amount: Payment amount
        type: Token, full, partial or refund payment
        status: Current status of the payment
        payment_id: Unique identifier for the payment
        payment_method: Free-form method name, e.g. "card" or "upi"
        transaction_id: External payment processor transaction ID
        paid_at: When the payment completed
    """
    amount: float
    type: PaymentType = PaymentType.FULL
    status: PaymentStatus = PaymentStatus.PENDING
    payment_id: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[str] = None

    def __post_init__(self):
        if self.payment_id is None:
            self.payment_id = str(uuid4())
        if isinstance(self.type, str):
            self.type = PaymentType(self.type)
        if isinstance(self.status, str):
            self.status = PaymentStatus(self.status)
        if self.amount < 0:
            raise ValidationError("Payment amount cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "type": self.type.value,
            "amount": self.amount,
            "status": self.status.value,
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "paid_at": self.paid_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Payment":
        return cls(**pick_fields(cls, data))


@dataclass
class AdditionalCharge:
    name: str
    amount: float


@dataclass
class BookingPricing:
    """
    Price breakdown of a booking.

    ``total_amount`` is a cached value. It is not kept in sync when the other
    fields change; call ``recompute_total`` after editing them.
    """
    base_price: float
    discount_amount: float = 0.0
    additional_charges: List[AdditionalCharge] = field(default_factory=list)
    tax_amount: float = 0.0
    total_amount: float = 0.0

    def recompute_total(self) -> float:
        total = self.base_price - self.discount_amount
        total += sum(charge.amount for charge in self.additional_charges)
        total += self.tax_amount
        self.total_amount = round_currency(total)
        return self.total_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_price": self.base_price,
            "discount_amount": self.discount_amount,
            "additional_charges": [{"name": c.name, "amount": c.amount} for c in self.additional_charges],
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingPricing":
        values = pick_fields(cls, data)
        values["additional_charges"] = [
            AdditionalCharge(**pick_fields(AdditionalCharge, c)) for c in values.get("additional_charges") or []
        ]
        return cls(**values)


@dataclass
class BookingDetails:
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    number_of_people: Optional[int] = None
    special_requests: Optional[str] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CancellationDetails:
    cancelled_at: str
    cancelled_by: str
    reason: Optional[str] = None
    refund_amount: float = 0.0
    refund_status: Optional[str] = None


@dataclass
class Rating:
    score: int
    review: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Note:
    content: str
    created_by: AuthorRef
    created_at: Optional[str] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "created_by": self.created_by.to_dict(), "created_at": self.created_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            content=data["content"],
            created_by=AuthorRef.from_dict(data["created_by"]),
            created_at=data.get("created_at"),
        )


@dataclass
class Booking:
    """
    Represents a booking of a service.

    Attributes:
        booking_id: Human readable unique reference, e.g. BK4821930042
        user_id: Customer who booked
        service_id: Booked service
        service_provider_id: Provider delivering the service
        affiliate_id: Affiliate who referred the customer, if any
        admin_chain: Regional admins bound when the booking was created
        details: Date, time slot and customer supplied fields
        pricing: Price breakdown
        commission_structure: Commission rules copied from the service
        commissions: Split computed at confirmation time
        payments: Payments made against the booking
        status: Current status of the booking
    """
    booking_id: str
    user_id: str
    service_id: str
    service_provider_id: str
    details: BookingDetails
    pricing: BookingPricing
    commission_structure: CommissionStructure
    admin_chain: AdminChain = field(default_factory=AdminChain)
    affiliate_id: Optional[str] = None
    commissions: Optional[CommissionSplit] = None
    payments: List[Payment] = field(default_factory=list)
    status: BookingStatus = BookingStatus.PENDING
    cancellation_details: Optional[CancellationDetails] = None
    rating: Optional[Rating] = None
    notes: List[Note] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.created_at is None:
            self.created_at = now_iso()
        if self.updated_at is None:
            self.updated_at = self.created_at
        if isinstance(self.status, str):
            self.status = BookingStatus(self.status)

    @classmethod
    def create(cls, user_id: str, service_id: str, service_provider_id: str,
               details: BookingDetails, pricing: BookingPricing,
               commission_structure: CommissionStructure, admin_chain: AdminChain,
               affiliate_id: Optional[str] = None) -> "Booking":
        """Build a new pending booking with a fresh reference and computed total."""
        pricing.recompute_total()
        return cls(
            booking_id=generate_booking_id(),
            user_id=user_id,
            service_id=service_id,
            service_provider_id=service_provider_id,
            details=details,
            pricing=pricing,
            commission_structure=commission_structure,
            admin_chain=admin_chain,
            affiliate_id=affiliate_id,
        )

    def _transition(self, new_status: BookingStatus) -> None:
        if new_status not in _BOOKING_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move booking {self.booking_id} from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        self.updated_at = now_iso()

    def recompute_total(self) -> float:
        """Recompute the cached total from the pricing inputs."""
        total = self.pricing.recompute_total()
        self.updated_at = now_iso()
        return total

    @property
    def amount_paid(self) -> float:
        """Sum of completed payments."""
        return round_currency(sum(
            payment.amount for payment in self.payments if payment.status == PaymentStatus.COMPLETED
        ))

    @property
    def balance_due(self) -> float:
        return max(0.0, round_currency(self.pricing.total_amount - self.amount_paid))

    def is_fully_paid(self) -> bool:
        return self.amount_paid >= round_currency(self.pricing.total_amount)

    def confirm(self, commissions: CommissionSplit) -> None:
        """Confirm the booking and attach its commission split."""
        self._transition(BookingStatus.CONFIRMED)
        self.commissions = commissions

    def complete(self) -> None:
        self._transition(BookingStatus.COMPLETED)

    def cancel(self, cancelled_by: str, reason: Optional[str] = None, refund_amount: float = 0.0) -> None:
        """Cancel the booking, recording who cancelled and any refund owed."""
        if cancelled_by not in CANCELLED_BY:
            raise ValidationError(f"cancelled_by must be one of {', '.join(CANCELLED_BY)}")
        if refund_amount < 0:
            raise ValidationError("Refund amount cannot be negative")
        self._transition(BookingStatus.CANCELLED)
        self.cancellation_details = CancellationDetails(
            cancelled_at=now_iso(),
            cancelled_by=cancelled_by,
            reason=reason,
            refund_amount=refund_amount,
            refund_status="pending" if refund_amount > 0 else None,
        )

    def refund(self) -> None:
        self._transition(BookingStatus.REFUNDED)

    def find_payment(self, payment_id: str) -> Payment:
        for payment in self.payments:
            if payment.payment_id == payment_id:
                return payment
        raise NotFoundError(f"Payment {payment_id} not found on booking {self.booking_id}")

    def record_payment(self, payment: Payment) -> None:
        if self.status in (BookingStatus.CANCELLED, BookingStatus.REFUNDED):
            raise ValidationError(f"Cannot take payments on a {self.status.value} booking")
        if payment.status == PaymentStatus.COMPLETED and payment.paid_at is None:
            payment.paid_at = now_iso()
        self.payments.append(payment)
        self.updated_at = now_iso()

    def update_payment_status(self, payment_id: str, status: PaymentStatus) -> Payment:
        payment = self.find_payment(payment_id)
        if status not in _PAYMENT_TRANSITIONS[payment.status]:
            raise InvalidTransitionError(
                f"Cannot move payment from {payment.status.value} to {status.value}"
            )
        payment.status = status
        if status == PaymentStatus.COMPLETED:
            payment.paid_at = now_iso()
        self.updated_at = now_iso()
        return payment

    def add_note(self, author: AuthorRef, content: str) -> Note:
        if not content or not content.strip():
            raise ValidationError("Note content is required")
        note = Note(content=content.strip(), created_by=author)
        self.notes.append(note)
        self.updated_at = now_iso()
        return note

    def rate(self, score: int, review: Optional[str] = None) -> None:
        if self.status != BookingStatus.COMPLETED:
            raise ValidationError("Only completed bookings can be rated")
        if not 1 <= score <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        self.rating = Rating(score=score, review=review, created_at=now_iso())
        self.updated_at = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        details = self.details
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "service_id": self.service_id,
            "service_provider_id": self.service_provider_id,
            "affiliate_id": self.affiliate_id,
            "admin_chain": self.admin_chain.to_dict(),
            "details": {
                "date": details.date,
                "start_time": details.start_time,
                "end_time": details.end_time,
                "number_of_people": details.number_of_people,
                "special_requests": details.special_requests,
                "custom_fields": dict(details.custom_fields),
            },
            "pricing": self.pricing.to_dict(),
            "commission_structure": self.commission_structure.to_dict(),
            "commissions": self.commissions.to_dict() if self.commissions else None,
            "payments": [payment.to_dict() for payment in self.payments],
            "status": self.status.value,
            "cancellation_details": vars(self.cancellation_details).copy() if self.cancellation_details else None,
            "rating": vars(self.rating).copy() if self.rating else None,
            "notes": [note.to_dict() for note in self.notes],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        values = pick_fields(cls, data)
        values["details"] = BookingDetails(**pick_fields(BookingDetails, values["details"]))
        values["pricing"] = BookingPricing.from_dict(values["pricing"])
        values["commission_structure"] = CommissionStructure.from_dict(values["commission_structure"])
        values["admin_chain"] = AdminChain.from_dict(values.get("admin_chain"))
        if values.get("commissions"):
            values["commissions"] = CommissionSplit.from_dict(values["commissions"])
        values["payments"] = [Payment.from_dict(p) for p in values.get("payments") or []]
        if values.get("cancellation_details"):
            values["cancellation_details"] = CancellationDetails(
                **pick_fields(CancellationDetails, values["cancellation_details"])
            )
        if values.get("rating"):
            values["rating"] = Rating(**pick_fields(Rating, values["rating"]))
        values["notes"] = [Note.from_dict(n) for n in values.get("notes") or []]
        return cls(**values)
