"""Entity models for the Affilimart application."""
from affilimart.models.admin import Admin, AdminChain, AdminRole
from affilimart.models.base import AuthorRef
from affilimart.models.booking import Booking, BookingStatus, Payment, PaymentStatus, PaymentType
from affilimart.models.catalog import Category, Service, ServiceStatus, Template
from affilimart.models.commission import CommissionEntry, CommissionSplit, CommissionStatus, CommissionStructure
from affilimart.models.lead import Lead, LeadStatus, LeadType
from affilimart.models.pricing import PricingCondition, PricingContext, PricingRule
from affilimart.models.user import Address, User, UserRole


__all__ = [
    'Admin',
    'AdminChain',
    'AdminRole',
    'AuthorRef',
    'Booking',
    'BookingStatus',
    'Payment',
    'PaymentStatus',
    'PaymentType',
    'Category',
    'Service',
    'ServiceStatus',
    'Template',
    'CommissionEntry',
    'CommissionSplit',
    'CommissionStatus',
    'CommissionStructure',
    'Lead',
    'LeadStatus',
    'LeadType',
    'PricingCondition',
    'PricingContext',
    'PricingRule',
    'Address',
    'User',
    'UserRole',
]
