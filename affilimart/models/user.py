from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple
from uuid import uuid4

from affilimart.models.base import now_iso, pick_fields


class UserRole(Enum):
    """Roles a marketplace user can register with."""
    CUSTOMER = "customer"
    AFFILIATE = "affiliate"
    SERVICE_PROVIDER = "service_provider"


@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None

    def region(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Get the (district, state, country) used to find regional admins."""
        return self.district, self.state, self.country

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Address":
        return cls(**pick_fields(cls, data))


@dataclass
class BankDetails:
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    account_holder_name: Optional[str] = None
    bank_name: Optional[str] = None


@dataclass
class AffiliateInfo:
    """
    Affiliate specific attributes.

    Attributes:
        partner_id: Public partner code printed on marketing material
        qr_code: URL of the hosted referral QR image
        total_earnings: Commissions paid out over the affiliate's lifetime
        available_balance: Paid commissions not yet withdrawn
        bank_details: Payout account
    """
    partner_id: Optional[str] = None
    qr_code: Optional[str] = None
    total_earnings: float = 0.0
    available_balance: float = 0.0
    bank_details: BankDetails = field(default_factory=BankDetails)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AffiliateInfo":
        values = pick_fields(cls, data)
        values["bank_details"] = BankDetails(**pick_fields(BankDetails, values.get("bank_details")))
        return cls(**values)


@dataclass
class ServiceProviderInfo:
    business_name: Optional[str] = None
    business_description: Optional[str] = None
    service_categories: List[str] = field(default_factory=list)
    rating_average: float = 0.0
    rating_count: int = 0
    is_verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ServiceProviderInfo":
        return cls(**pick_fields(cls, data))


@dataclass
class User:
    """
    Represents a user of the marketplace.

    Attributes:
        id: Unique identifier for the user
        name: User's full name
        email: User's email address, unique
        phone: User's phone number, unique
        password: Hashed password
        role: Customer, affiliate or service provider
        address: Postal address, also used to find regional admins
        is_active: Whether the account is active
        affiliate_info: Affiliate attributes (for affiliates)
        service_provider_info: Business attributes (for service providers)
        created_at: When the account was created
        updated_at: When the account was last updated
    """
    name: str
    email: str
    phone: str
    password: str
    role: UserRole = UserRole.CUSTOMER
    address: Address = field(default_factory=Address)
    is_active: bool = True
    profile_image: Optional[str] = None
    affiliate_info: Optional[AffiliateInfo] = None
    service_provider_info: Optional[ServiceProviderInfo] = None
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
        if isinstance(self.role, str):
            self.role = UserRole(self.role)
        if self.role == UserRole.AFFILIATE and self.affiliate_info is None:
            self.affiliate_info = AffiliateInfo()
        if self.role == UserRole.SERVICE_PROVIDER and self.service_provider_info is None:
            self.service_provider_info = ServiceProviderInfo()

    @property
    def is_affiliate(self) -> bool:
        return self.role == UserRole.AFFILIATE

    @property
    def is_service_provider(self) -> bool:
        return self.role == UserRole.SERVICE_PROVIDER

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialized user without the password hash."""
        data = self.to_dict()
        del data["password"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        values = pick_fields(cls, data)
        values.setdefault("password", "")
        values["address"] = Address.from_dict(values.get("address"))
        if values.get("affiliate_info") is not None:
            values["affiliate_info"] = AffiliateInfo.from_dict(values["affiliate_info"])
        if values.get("service_provider_info") is not None:
            values["service_provider_info"] = ServiceProviderInfo.from_dict(values["service_provider_info"])
        return cls(**values)
