"""Catalog service for Affilimart application."""

import logging
from typing import Dict, Any, Optional, List

import requests

from affilimart import config
from affilimart.errors import (
    AuthError,
    UpstreamError,
    ValidationError,
    raise_for_store_status,
)
from affilimart.models.admin import AdminRole
from affilimart.models.base import now_iso
from affilimart.models.catalog import (
    BookingField,
    Category,
    Service,
    ServiceLocation,
    ServiceStatus,
    Template,
)
from affilimart.models.commission import CommissionStructure
from affilimart.models.pricing import PricingContext, PricingRule
from affilimart.models.user import UserRole
from affilimart.services import pricing_engine
from affilimart.services.auth_service import AuthService
from affilimart.services.region_directory import can_access_region

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL


class CatalogService:
    """Service for categories, templates and listed services."""

    @staticmethod
    def _fetch(collection: str, record_id: str, what: str) -> Dict[str, Any]:
        try:
            response = requests.get(f"{BASE_URL}/{collection}/{record_id}")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load {what.lower()}: {str(e)}")
        raise_for_store_status(response, f"{what} with ID {record_id}")
        return response.json()

    @staticmethod
    def _save(collection: str, record: Dict[str, Any], what: str, create: bool = False) -> Dict[str, Any]:
        try:
            if create:
                response = requests.post(f"{BASE_URL}/{collection}", json=record)
            else:
                response = requests.put(f"{BASE_URL}/{collection}/{record['id']}", json=record)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to save {what.lower()}: {str(e)}")
        raise_for_store_status(response, what)
        return response.json()

    @staticmethod
    def create_category(token: str, name: str, description: str) -> Dict[str, Any]:
        """
        Create a category (super admin only).

        Raises:
            ValidationError: If name or description is missing
            ConflictError: If the category name is taken
        """
        AuthService.get_current_admin(token, [AdminRole.SUPER_ADMIN.value])
        if not name or not description:
            raise ValidationError("Category name and description are required")

        category = Category(name=name.strip(), description=description.strip())
        return CatalogService._save("categories", category.to_dict(), "Category", create=True)

    @staticmethod
    def list_categories() -> List[Dict[str, Any]]:
        try:
            response = requests.get(f"{BASE_URL}/categories")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to list categories: {str(e)}")
        if response.status_code == 404:
            return []
        raise_for_store_status(response, "Categories")
        return sorted(response.json(), key=lambda c: c.get("name", ""))

    @staticmethod
    def create_template(token: str, name: str, template_type: str, category_id: str,
                        default_commission_structure: Dict[str, Any],
                        default_booking_fields: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Create a listing template (super admin only).

        Args:
            token: JWT token for authentication
            name: Template name
            template_type: "A", "B" or "C"
            category_id: Category the template belongs to
            default_commission_structure: Commission fields applied to services
                that do not set their own
            default_booking_fields: Custom booking fields offered by default

        Returns:
            Dict: The saved template
        """
        admin = AuthService.get_current_admin(token, [AdminRole.SUPER_ADMIN.value])
        if not name:
            raise ValidationError("Template name is required")
        CatalogService._fetch("categories", category_id, "Category")

        try:
            template = Template(
                name=name.strip(),
                type=template_type,
                category_id=category_id,
                default_commission_structure=CommissionStructure.from_dict(default_commission_structure),
                default_booking_fields=[BookingField(**f) for f in default_booking_fields or []],
                created_by=admin.id,
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid template: {str(e)}")

        return CatalogService._save("templates", template.to_dict(), "Template", create=True)

    @staticmethod
    def get_template(template_id: str) -> Template:
        return Template.from_dict(CatalogService._fetch("templates", template_id, "Template"))

    @staticmethod
    def get_service(service_id: str) -> Service:
        return Service.from_dict(CatalogService._fetch("services", service_id, "Service"))

    @staticmethod
    def create_service(token: str, title: str, template_id: str, base_price: float,
                       discount_percentage: float = 0.0, is_dynamic_pricing: bool = False,
                       dynamic_pricing_rules: Optional[List[Dict[str, Any]]] = None,
                       commission_structure: Optional[Dict[str, Any]] = None,
                       booking_fields: Optional[List[Dict[str, Any]]] = None,
                       location: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        List a new service as a draft (service providers only).

        The category comes from the template. Booking fields default to the
        template's; the commission structure is left unset so the template
        default applies unless one is given.

        Raises:
            ValidationError: If pricing inputs are out of range or the template is inactive
            NotFoundError: If the template does not exist
        """
        principal = AuthService.require_role(token, [UserRole.SERVICE_PROVIDER.value])
        if not title:
            raise ValidationError("Service title is required")
        if base_price is None or base_price < 0:
            raise ValidationError("Base price cannot be negative")
        if not 0 <= discount_percentage <= 100:
            raise ValidationError("Discount percentage must be between 0 and 100")

        template = CatalogService.get_template(template_id)
        if not template.is_active:
            raise ValidationError(f"Template {template_id} is not active")

        try:
            service = Service(
                title=title.strip(),
                template_id=template.id,
                service_provider_id=principal["id"],
                category_id=template.category_id,
                base_price=float(base_price),
                discount_percentage=float(discount_percentage),
                is_dynamic_pricing=is_dynamic_pricing,
                dynamic_pricing_rules=[PricingRule(**rule) for rule in dynamic_pricing_rules or []],
                commission_structure=(
                    CommissionStructure.from_dict(commission_structure) if commission_structure else None
                ),
                booking_fields=(
                    [BookingField(**f) for f in booking_fields] if booking_fields
                    else list(template.default_booking_fields)
                ),
                location=ServiceLocation(**(location or {})),
            )
        except TypeError as e:
            raise ValidationError(f"Invalid service: {str(e)}")

        logger.info(f"Service provider {principal['id']} listed service {service.id}")
        return CatalogService._save("services", service.to_dict(), "Service", create=True)

    @staticmethod
    def submit_service(token: str, service_id: str) -> Dict[str, Any]:
        """Send a draft, rejected or inactive service for approval (owner only)."""
        principal = AuthService.require_role(token, [UserRole.SERVICE_PROVIDER.value])
        service = CatalogService.get_service(service_id)
        if service.service_provider_id != principal["id"]:
            raise AuthError("You can only submit your own services", status_code=403)

        service.transition(ServiceStatus.PENDING_APPROVAL)
        return CatalogService._save("services", service.to_dict(), "Service")

    @staticmethod
    def review_service(token: str, service_id: str, approve: bool, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        Approve or reject a service awaiting approval.

        Regional admins may only review services located in their territory.

        Raises:
            AuthError: If the service lies outside the admin's region
            InvalidTransitionError: If the service is not awaiting approval
        """
        admin = AuthService.get_current_admin(token)
        service = CatalogService.get_service(service_id)
        location = service.location

        if not can_access_region(admin, "district", location.district, location.state, location.country):
            raise AuthError("Access to this region is denied", status_code=403)

        if approve:
            service.transition(ServiceStatus.APPROVED)
            service.approved_by = admin.id
            service.approval_date = now_iso()
            service.rejection_reason = None
        else:
            if not reason:
                raise ValidationError("A rejection reason is required")
            service.transition(ServiceStatus.REJECTED)
            service.rejection_reason = reason

        logger.info(f"Admin {admin.id} set service {service.id} to {service.status.value}")
        return CatalogService._save("services", service.to_dict(), "Service")

    @staticmethod
    def quote_price(service_id: str, date: Optional[str] = None, group_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Quote the final price of a service for a booking date and group size.

        Returns:
            Dict: base price, discount and final price
        """
        service = CatalogService.get_service(service_id)
        price = pricing_engine.price_service(service, PricingContext(date=date, group_size=group_size))
        return {
            "service_id": service.id,
            "title": service.title,
            "base_price": service.base_price,
            "discount_percentage": service.discount_percentage,
            "final_price": price,
        }
