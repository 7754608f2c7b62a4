"""Catalog entities: categories, templates and the services built from them."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any
from uuid import uuid4

from affilimart.errors import InvalidTransitionError, ValidationError
from affilimart.models.base import now_iso, pick_fields
from affilimart.models.commission import CommissionStructure
from affilimart.models.pricing import PricingRule


class TemplateType(Enum):
    A = "A"
    B = "B"
    C = "C"


class ServiceStatus(Enum):
    """Moderation statuses of a listed service."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    INACTIVE = "inactive"


_SERVICE_TRANSITIONS = {
    ServiceStatus.DRAFT: {ServiceStatus.PENDING_APPROVAL},
    ServiceStatus.PENDING_APPROVAL: {ServiceStatus.APPROVED, ServiceStatus.REJECTED},
    ServiceStatus.APPROVED: {ServiceStatus.INACTIVE},
    ServiceStatus.REJECTED: {ServiceStatus.PENDING_APPROVAL},
    ServiceStatus.INACTIVE: {ServiceStatus.PENDING_APPROVAL},
}

FIELD_TYPES = ("text", "number", "date", "time", "select", "checkbox")


@dataclass
class Category:
    name: str
    description: str
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

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(**pick_fields(cls, data))


@dataclass
class BookingField:
    """A custom field customers fill in when booking a service."""
    name: str
    label: str
    type: str = "text"
    is_required: bool = False
    options: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.type not in FIELD_TYPES:
            raise ValidationError(f"Booking field type must be one of {', '.join(FIELD_TYPES)}")


@dataclass
class Template:
    """
    Listing template created by an admin.

    Services are created from a template and inherit its default commission
    structure and booking fields unless they override them.
    """
    name: str
    type: TemplateType
    category_id: str
    default_commission_structure: CommissionStructure
    created_by: str
    default_booking_fields: List[BookingField] = field(default_factory=list)
    is_active: bool = True
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
            self.type = TemplateType(self.type)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        values = pick_fields(cls, data)
        values["default_commission_structure"] = CommissionStructure.from_dict(
            values["default_commission_structure"]
        )
        values["default_booking_fields"] = [
            BookingField(**pick_fields(BookingField, f)) for f in values.get("default_booking_fields") or []
        ]
        return cls(**values)


@dataclass
class ServiceLocation:
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class Service:
    """
    A bookable service listed by a service provider.

    Attributes:
        id: Unique identifier for the service
        title: Listing title
        template_id: Template the listing was built from
        service_provider_id: Owner of the listing
        category_id: Category of the listing
        base_price: Price before discounts and adjustments
        discount_percentage: Standard discount, 0 to 100
        is_dynamic_pricing: Whether dynamic_pricing_rules are applied
        dynamic_pricing_rules: Ordered conditional adjustments
        commission_structure: Commission rules; the template default
            applies when None
        booking_fields: Custom fields asked at booking time
        location: Where the service is delivered
        status: Moderation status; only approved services are bookable
        total_bookings: Number of bookings made
    """
    title: str
    template_id: str
    service_provider_id: str
    category_id: str
    base_price: float
    discount_percentage: float = 0.0
    is_dynamic_pricing: bool = False
    dynamic_pricing_rules: List[PricingRule] = field(default_factory=list)
    commission_structure: Optional[CommissionStructure] = None
    booking_fields: List[BookingField] = field(default_factory=list)
    location: ServiceLocation = field(default_factory=ServiceLocation)
    status: ServiceStatus = ServiceStatus.DRAFT
    approved_by: Optional[str] = None
    approval_date: Optional[str] = None
    rejection_reason: Optional[str] = None
    total_bookings: int = 0
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
        if isinstance(self.status, str):
            self.status = ServiceStatus(self.status)

    @property
    def is_bookable(self) -> bool:
        return self.status == ServiceStatus.APPROVED

    def effective_commission_structure(self, template: Optional[Template]) -> CommissionStructure:
        """The service's own structure, else the template default."""
        if self.commission_structure is not None:
            return self.commission_structure
        if template is None:
            raise ValidationError(f"Service {self.id} has no commission structure and no template")
        return template.default_commission_structure

    def transition(self, new_status: ServiceStatus) -> None:
        if new_status not in _SERVICE_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move service from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        self.updated_at = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Service":
        values = pick_fields(cls, data)
        values["dynamic_pricing_rules"] = [
            PricingRule.from_dict(rule) for rule in values.get("dynamic_pricing_rules") or []
        ]
        if values.get("commission_structure") is not None:
            values["commission_structure"] = CommissionStructure.from_dict(values["commission_structure"])
        values["booking_fields"] = [
            BookingField(**pick_fields(BookingField, f)) for f in values.get("booking_fields") or []
        ]
        values["location"] = ServiceLocation(**pick_fields(ServiceLocation, values.get("location")))
        return cls(**values)
