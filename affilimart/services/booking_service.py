"""Booking service for Affilimart application."""

import logging
from typing import Dict, Any, Optional, List

import requests

from affilimart import config
from affilimart.errors import (
    AuthError,
    ConflictError,
    MarketplaceError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    raise_for_store_status,
)
from affilimart.models.admin import AdminRole
from affilimart.models.base import AuthorRef, round_currency
from affilimart.models.booking import (
    AdditionalCharge,
    Booking,
    BookingDetails,
    BookingPricing,
    BookingStatus,
    Payment,
    PaymentStatus,
)
from affilimart.models.commission import ROLES, CommissionStatus
from affilimart.models.identifiers import generate_booking_id
from affilimart.models.pricing import PricingContext
from affilimart.models.user import UserRole
from affilimart.services import commission_engine, pricing_engine
from affilimart.services.auth_service import ADMIN_KIND, AuthService
from affilimart.services.catalog_service import CatalogService
from affilimart.services.region_directory import RegionDirectory

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

# Attempts at inserting a booking before giving up on reference collisions
MAX_ID_ATTEMPTS = 3

# Affiliate fields credited when an affiliate commission is paid
EARNINGS_FIELDS = ("affiliate_info.total_earnings", "affiliate_info.available_balance")

CUSTOMER = "customer"
PROVIDER = "provider"
ADMIN = "admin"


class BookingService:
    """Service for handling booking operations."""

    @staticmethod
    def _find(booking_id: str) -> Booking:
        try:
            response = requests.get(f"{BASE_URL}/bookings/query", params={"booking_id": booking_id})
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load booking: {str(e)}")
        raise_for_store_status(response, f"Booking {booking_id}")

        matches = response.json()
        if not matches:
            raise NotFoundError(f"Booking {booking_id} not found")
        return Booking.from_dict(matches[0])

    @staticmethod
    def _save(booking: Booking) -> Dict[str, Any]:
        try:
            response = requests.put(f"{BASE_URL}/bookings/{booking.id}", json=booking.to_dict())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to save booking: {str(e)}")
        raise_for_store_status(response, f"Booking {booking.booking_id}")
        return response.json()

    @staticmethod
    def _authorize(principal: Dict[str, Any], booking: Booking, parties: List[str]) -> str:
        """
        Check that the caller is one of the allowed parties to a booking.

        Regional admins only reach bookings in their own admin chain.

        Returns:
            str: The party the caller acts as
        """
        if principal["kind"] == ADMIN_KIND:
            if ADMIN in parties:
                chain_ids = {booking.admin_chain.dsa_id, booking.admin_chain.ssa_id, booking.admin_chain.nsa_id}
                if principal["role"] == AdminRole.SUPER_ADMIN.value or principal["id"] in chain_ids:
                    return ADMIN
        elif CUSTOMER in parties and principal["id"] == booking.user_id:
            return CUSTOMER
        elif PROVIDER in parties and principal["id"] == booking.service_provider_id:
            return PROVIDER
        raise AuthError(f"You are not allowed to do this on booking {booking.booking_id}", status_code=403)

    @staticmethod
    def _load_for(token: str, booking_id: str, parties: List[str]):
        principal = AuthService.verify_token(token)
        booking = BookingService._find(booking_id)
        party = BookingService._authorize(principal, booking, parties)
        return principal, booking, party

    @staticmethod
    def _validate_affiliate(affiliate_id: str, customer_id: str) -> None:
        if affiliate_id == customer_id:
            raise ValidationError("Customers cannot refer themselves")
        try:
            response = requests.get(f"{BASE_URL}/users/{affiliate_id}")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load affiliate: {str(e)}")
        if response.status_code == 404:
            raise ValidationError(f"Unknown affiliate {affiliate_id}")
        raise_for_store_status(response, "Affiliate")
        if response.json().get("role") != UserRole.AFFILIATE.value:
            raise ValidationError(f"User {affiliate_id} is not an affiliate")

    @staticmethod
    def _insert(booking: Booking) -> Dict[str, Any]:
        """Insert a new booking, drawing a new reference if the store reports a clash."""
        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            try:
                response = requests.post(f"{BASE_URL}/bookings", json=booking.to_dict())
                raise_for_store_status(response, "Booking")
                return response.json()
            except ConflictError:
                logger.warning(f"Booking reference {booking.booking_id} taken (attempt {attempt})")
                booking.booking_id = generate_booking_id()
            except requests.RequestException as e:
                raise UpstreamError(f"Failed to create booking: {str(e)}")
        raise ConflictError("Could not allocate a unique booking reference")

    @staticmethod
    def create_booking(token: str, service_id: str, booking_date: str,
                       number_of_people: Optional[int] = None,
                       affiliate_id: Optional[str] = None,
                       start_time: Optional[str] = None, end_time: Optional[str] = None,
                       special_requests: Optional[str] = None,
                       custom_fields: Optional[Dict[str, Any]] = None,
                       additional_charges: Optional[List[Dict[str, Any]]] = None,
                       tax_amount: float = 0.0) -> Dict[str, Any]:
        """
        Create a pending booking for an approved service.

        The price is computed from the service's pricing rules for the booking
        date and group size. The regional admin chain is bound from the
        customer's address and the commission structure is copied from the
        service (or its template) so later edits do not affect this booking.

        Args:
            token: JWT token for authentication
            service_id: Service to book
            booking_date: ISO date of the booking
            number_of_people: Group size
            affiliate_id: Referring affiliate, if any
            start_time: Time slot start, HH:MM
            end_time: Time slot end, HH:MM
            special_requests: Free-form request
            custom_fields: Answers to the service's booking fields
            additional_charges: Extra charges, each {"name", "amount"}
            tax_amount: Tax added to the total

        Returns:
            Dict: The saved booking

        Raises:
            ValidationError: If the service is not bookable or input is invalid
            UpstreamError: If the store fails; nothing is left half written
        """
        user = AuthService.get_current_user(token)
        service = CatalogService.get_service(service_id)

        if not service.is_bookable:
            raise ValidationError(f"Service {service_id} is not available for booking")
        if not booking_date:
            raise ValidationError("Booking date is required")
        if number_of_people is not None and number_of_people < 1:
            raise ValidationError("Number of people must be at least 1")
        if tax_amount < 0:
            raise ValidationError("Tax amount cannot be negative")

        custom_fields = dict(custom_fields or {})
        missing = [f.label or f.name for f in service.booking_fields
                   if f.is_required and custom_fields.get(f.name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing booking fields: {', '.join(missing)}")

        if affiliate_id:
            BookingService._validate_affiliate(affiliate_id, user.id)

        final_price = pricing_engine.price_service(
            service, PricingContext(date=booking_date, group_size=number_of_people)
        )
        charges = [AdditionalCharge(name=c["name"], amount=float(c["amount"])) for c in additional_charges or []]
        if any(charge.amount < 0 for charge in charges):
            raise ValidationError("Additional charges cannot be negative")

        if final_price <= service.base_price:
            discount_amount = round_currency(service.base_price - final_price)
        else:
            discount_amount = 0.0
            charges.insert(0, AdditionalCharge(
                name="dynamic_pricing", amount=round_currency(final_price - service.base_price)
            ))

        template = None if service.commission_structure else CatalogService.get_template(service.template_id)
        structure = service.effective_commission_structure(template)

        booking = Booking.create(
            user_id=user.id,
            service_id=service.id,
            service_provider_id=service.service_provider_id,
            details=BookingDetails(
                date=booking_date,
                start_time=start_time,
                end_time=end_time,
                number_of_people=number_of_people,
                special_requests=special_requests,
                custom_fields=custom_fields,
            ),
            pricing=BookingPricing(
                base_price=service.base_price,
                discount_amount=discount_amount,
                additional_charges=charges,
                tax_amount=float(tax_amount),
            ),
            commission_structure=structure,
            admin_chain=RegionDirectory.admin_chain_for(user.address),
            affiliate_id=affiliate_id,
        )

        saved = BookingService._insert(booking)

        try:
            response = requests.post(
                f"{BASE_URL}/services/{service.id}/increment",
                json={"field": "total_bookings", "amount": 1},
            )
            raise_for_store_status(response, "Service")
        except (requests.RequestException, UpstreamError, NotFoundError) as e:
            logger.error(f"Rolling back booking {booking.booking_id}: {str(e)}")
            try:
                requests.delete(f"{BASE_URL}/bookings/{booking.id}")
            except requests.RequestException:
                logger.exception(f"Rollback of booking {booking.booking_id} failed")
            raise UpstreamError(f"Failed to create booking: {str(e)}")

        logger.info(f"Booking {booking.booking_id} created for service {service.id}")
        return saved

    @staticmethod
    def get_booking(token: str, booking_id: str) -> Booking:
        """Load a booking visible to the caller."""
        _, booking, _ = BookingService._load_for(token, booking_id, [CUSTOMER, PROVIDER, ADMIN])
        return booking

    @staticmethod
    def list_bookings(token: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List the caller's bookings, newest first.

        Customers see bookings they made, service providers bookings of their
        services, regional admins bookings in their chain and the super admin
        every booking.
        """
        principal = AuthService.verify_token(token)
        role = principal["role"]

        if principal["kind"] == ADMIN_KIND:
            if role == AdminRole.SUPER_ADMIN.value:
                params = {}
            else:
                params = {f"admin_chain.{role}_id": principal["id"]}
        elif role == UserRole.SERVICE_PROVIDER.value:
            params = {"service_provider_id": principal["id"]}
        else:
            params = {"user_id": principal["id"]}
        if status:
            try:
                params["status"] = BookingStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown booking status: {status}")

        try:
            response = requests.get(f"{BASE_URL}/bookings/query", params=params)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to list bookings: {str(e)}")
        if response.status_code == 404:
            return []
        raise_for_store_status(response, "Bookings")
        return sorted(response.json(), key=lambda b: b.get("created_at", ""), reverse=True)

    @staticmethod
    def confirm_booking(token: str, booking_id: str) -> Dict[str, Any]:
        """
        Confirm a pending booking and compute its commission split.

        Roles with no payee (no referring affiliate, or no admin for that
        level in the chain) get no commission entry.
        """
        _, booking, _ = BookingService._load_for(token, booking_id, [PROVIDER, ADMIN])

        commissions = commission_engine.split(booking.pricing.total_amount, booking.commission_structure)
        booking.confirm(commissions.without_absent_roles(booking.admin_chain, booking.affiliate_id is not None))

        logger.info(f"Booking {booking_id} confirmed, commissions {booking.commissions.total():.2f}")
        return BookingService._save(booking)

    @staticmethod
    def complete_booking(token: str, booking_id: str) -> Dict[str, Any]:
        _, booking, _ = BookingService._load_for(token, booking_id, [PROVIDER, ADMIN])
        booking.complete()
        return BookingService._save(booking)

    @staticmethod
    def cancel_booking(token: str, booking_id: str, reason: Optional[str] = None,
                       refund_amount: float = 0.0) -> Dict[str, Any]:
        """
        Cancel a pending or confirmed booking.

        Raises:
            ValidationError: If the refund exceeds what was paid
        """
        _, booking, party = BookingService._load_for(token, booking_id, [CUSTOMER, PROVIDER, ADMIN])
        if refund_amount > booking.amount_paid:
            raise ValidationError(f"Refund cannot exceed the amount paid ({booking.amount_paid:.2f})")

        cancelled_by = {CUSTOMER: "user", PROVIDER: "service_provider", ADMIN: "admin"}[party]
        booking.cancel(cancelled_by, reason, refund_amount)
        return BookingService._save(booking)

    @staticmethod
    def refund_booking(token: str, booking_id: str) -> Dict[str, Any]:
        """Refund a confirmed or completed booking; completed payments are marked refunded."""
        _, booking, _ = BookingService._load_for(token, booking_id, [ADMIN])
        booking.refund()
        for payment in booking.payments:
            if payment.status == PaymentStatus.COMPLETED:
                booking.update_payment_status(payment.payment_id, PaymentStatus.REFUNDED)
        return BookingService._save(booking)

    @staticmethod
    def update_pricing(token: str, booking_id: str, discount_amount: Optional[float] = None,
                       tax_amount: Optional[float] = None,
                       additional_charges: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Edit the pricing inputs of a pending booking and recompute its total.

        Raises:
            ValidationError: If an amount is negative or the new total would be negative
        """
        _, booking, _ = BookingService._load_for(token, booking_id, [PROVIDER, ADMIN])
        if booking.status != BookingStatus.PENDING:
            raise ValidationError("Only pending bookings can be repriced")

        if discount_amount is not None:
            if discount_amount < 0:
                raise ValidationError("Discount amount cannot be negative")
            booking.pricing.discount_amount = float(discount_amount)
        if tax_amount is not None:
            if tax_amount < 0:
                raise ValidationError("Tax amount cannot be negative")
            booking.pricing.tax_amount = float(tax_amount)
        if additional_charges is not None:
            charges = [AdditionalCharge(name=c["name"], amount=float(c["amount"])) for c in additional_charges]
            if any(charge.amount < 0 for charge in charges):
                raise ValidationError("Additional charges cannot be negative")
            booking.pricing.additional_charges = charges

        if booking.recompute_total() < 0:
            raise ValidationError("Discount cannot exceed the price plus charges and tax")
        return BookingService._save(booking)

    @staticmethod
    def record_payment(token: str, booking_id: str, amount: float, payment_type: str = "full",
                       payment_method: Optional[str] = None, transaction_id: Optional[str] = None,
                       status: str = PaymentStatus.PENDING.value) -> Dict[str, Any]:
        """
        Record a payment made against a booking.

        Returns:
            Dict: The saved booking with ``fully_paid`` and ``balance_due``
        """
        _, booking, _ = BookingService._load_for(token, booking_id, [CUSTOMER, ADMIN])
        try:
            payment = Payment(
                amount=float(amount),
                type=payment_type,
                status=status,
                payment_method=payment_method,
                transaction_id=transaction_id,
            )
        except ValueError as e:
            raise ValidationError(f"Invalid payment: {str(e)}")

        booking.record_payment(payment)
        saved = BookingService._save(booking)
        saved["fully_paid"] = booking.is_fully_paid()
        saved["balance_due"] = booking.balance_due
        return saved

    @staticmethod
    def update_payment_status(token: str, booking_id: str, payment_id: str, status: str) -> Dict[str, Any]:
        _, booking, _ = BookingService._load_for(token, booking_id, [PROVIDER, ADMIN])
        try:
            new_status = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payment status: {status}")
        booking.update_payment_status(payment_id, new_status)
        saved = BookingService._save(booking)
        saved["fully_paid"] = booking.is_fully_paid()
        saved["balance_due"] = booking.balance_due
        return saved

    @staticmethod
    def update_commission_status(token: str, booking_id: str, role: str, status: str) -> Dict[str, Any]:
        """
        Move one commission entry along its payout lifecycle (admins only).

        When the affiliate's commission is paid, it is credited to the
        affiliate's earnings and available balance.

        Raises:
            ValidationError: If the booking has no commission for ``role``
        """
        _, booking, _ = BookingService._load_for(token, booking_id, [ADMIN])
        if role not in ROLES:
            raise ValidationError(f"Role must be one of {', '.join(ROLES)}")
        if booking.commissions is None or booking.commissions.entry(role) is None:
            raise ValidationError(f"Booking {booking_id} has no {role} commission")

        try:
            new_status = CommissionStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown commission status: {status}")

        entry = booking.commissions.entry(role)
        entry.transition(new_status)

        # A stored paid entry always has its credit applied.
        credited = role == "affiliate" and entry.status == CommissionStatus.PAID
        if credited:
            BookingService._credit_affiliate(booking.affiliate_id, entry.amount)

        try:
            return BookingService._save(booking)
        except MarketplaceError:
            if credited:
                logger.error(f"Saving booking {booking_id} failed, reversing affiliate credit")
                try:
                    BookingService._credit_affiliate(booking.affiliate_id, -entry.amount)
                except UpstreamError:
                    logger.exception(f"Reversing the credit for booking {booking_id} failed")
            raise

    @staticmethod
    def _credit_affiliate(affiliate_id: str, amount: float) -> None:
        """
        Add ``amount`` to the affiliate's earnings and available balance.

        Either both fields change or neither does: if the second increment
        fails the first one is reversed.

        Raises:
            UpstreamError: If the store refuses either increment
        """
        applied = []
        try:
            for field in EARNINGS_FIELDS:
                response = requests.post(
                    f"{BASE_URL}/users/{affiliate_id}/increment",
                    json={"field": field, "amount": amount},
                )
                raise_for_store_status(response, "Affiliate")
                applied.append(field)
        except (requests.RequestException, MarketplaceError) as e:
            for field in applied:
                try:
                    response = requests.post(
                        f"{BASE_URL}/users/{affiliate_id}/increment",
                        json={"field": field, "amount": -amount},
                    )
                    if not response.ok:
                        logger.error(f"Reversing {field} for affiliate {affiliate_id} returned {response.status_code}")
                except requests.RequestException:
                    logger.exception(f"Reversing {field} for affiliate {affiliate_id} failed")
            raise UpstreamError(f"Failed to credit affiliate earnings: {str(e)}")

    @staticmethod
    def add_note(token: str, booking_id: str, content: str) -> Dict[str, Any]:
        principal, booking, _ = BookingService._load_for(token, booking_id, [CUSTOMER, PROVIDER, ADMIN])
        booking.add_note(AuthorRef(kind=principal["kind"], id=principal["id"]), content)
        return BookingService._save(booking)

    @staticmethod
    def rate_booking(token: str, booking_id: str, score: int, review: Optional[str] = None) -> Dict[str, Any]:
        _, booking, _ = BookingService._load_for(token, booking_id, [CUSTOMER])
        booking.rate(score, review)
        return BookingService._save(booking)
