"""Tests for booking operations against the document store."""

import json
import re

import pytest
import requests
import responses
from responses import matchers
from unittest.mock import patch

from affilimart.errors import AuthError, ConflictError, UpstreamError, ValidationError
from affilimart.models.admin import AdminChain
from affilimart.models.booking import Booking, BookingDetails, BookingPricing, BookingStatus
from affilimart.models.catalog import BookingField, Service, ServiceStatus, Template
from affilimart.models.commission import CommissionSplit, CommissionStatus, CommissionStructure
from affilimart.models.pricing import PricingRule
from affilimart.models.user import Address, User
from affilimart.services.booking_service import BookingService

# Constants for testing
TEST_BASE_URL = "http://localhost:3000"
TEST_TOKEN = "test-token"
CUSTOMER_ID = "customer-1"
PROVIDER_ID = "provider-1"
AFFILIATE_ID = "affiliate-1"
SERVICE_ID = "service-1"
TEMPLATE_ID = "template-1"
SATURDAY = "2024-06-08"

CUSTOMER = {"id": CUSTOMER_ID, "role": "customer", "kind": "user"}
PROVIDER = {"id": PROVIDER_ID, "role": "service_provider", "kind": "user"}
SUPER_ADMIN = {"id": "admin-0", "role": "super_admin", "kind": "admin"}


@pytest.fixture
def customer():
    """Fixture for the booking customer."""
    return User(
        id=CUSTOMER_ID,
        name="Asha",
        email="asha@example.com",
        phone="9000000001",
        password="",
        address=Address(district="Bengaluru Urban", state="Karnataka", country="India"),
    )


@pytest.fixture
def service_data():
    """Fixture for an approved service with weekend pricing and no own commission."""
    return Service(
        id=SERVICE_ID,
        title="Sunset cruise",
        template_id=TEMPLATE_ID,
        service_provider_id=PROVIDER_ID,
        category_id="category-1",
        base_price=100,
        discount_percentage=10,
        is_dynamic_pricing=True,
        dynamic_pricing_rules=[PricingRule(condition="weekend", adjustment=20, is_percentage=True)],
        booking_fields=[BookingField(name="pickup_point", label="Pickup point", is_required=True)],
        status=ServiceStatus.APPROVED,
    ).to_dict()


@pytest.fixture
def template_data():
    return Template(
        id=TEMPLATE_ID,
        name="Experiences",
        type="A",
        category_id="category-1",
        default_commission_structure=CommissionStructure(affiliate_commission=10, dsa_commission=2),
        created_by="admin-0",
    ).to_dict()


def _booking(status=BookingStatus.PENDING, affiliate_id=AFFILIATE_ID, chain=None, commissions=None):
    booking = Booking.create(
        user_id=CUSTOMER_ID,
        service_id=SERVICE_ID,
        service_provider_id=PROVIDER_ID,
        details=BookingDetails(date=SATURDAY),
        pricing=BookingPricing(base_price=200),
        commission_structure=CommissionStructure(
            affiliate_commission=10, dsa_commission=3, ssa_commission=2, nsa_commission=1
        ),
        admin_chain=chain or AdminChain(dsa_id="dsa-1"),
        affiliate_id=affiliate_id,
    )
    booking.status = status
    booking.commissions = commissions
    return booking


def _echo(request):
    return (201 if request.method == "POST" else 200), {}, request.body


def _expect_lookup(booking):
    responses.add(
        responses.GET,
        f"{TEST_BASE_URL}/bookings/query",
        json=[booking.to_dict()],
        status=200,
        match=[matchers.query_param_matcher({"booking_id": booking.booking_id})],
    )
    responses.add_callback(responses.PUT, f"{TEST_BASE_URL}/bookings/{booking.id}", callback=_echo)


class TestCreateBooking:
    """Test class for creating bookings."""

    def _stub_catalog(self, service_data, template_data):
        responses.add(responses.GET, f"{TEST_BASE_URL}/services/{SERVICE_ID}", json=service_data, status=200)
        responses.add(responses.GET, f"{TEST_BASE_URL}/templates/{TEMPLATE_ID}", json=template_data, status=200)

    @responses.activate
    @patch('affilimart.services.region_directory.RegionDirectory.admin_chain_for')
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_create_booking(self, mock_current_user, mock_chain, customer, service_data, template_data):
        """Test a weekend booking referred by an affiliate."""
        mock_current_user.return_value = customer
        mock_chain.return_value = AdminChain(dsa_id="dsa-1", nsa_id="nsa-1")
        self._stub_catalog(service_data, template_data)
        responses.add(
            responses.GET,
            f"{TEST_BASE_URL}/users/{AFFILIATE_ID}",
            json={"id": AFFILIATE_ID, "role": "affiliate"},
            status=200,
        )
        responses.add_callback(responses.POST, f"{TEST_BASE_URL}/bookings", callback=_echo)
        responses.add(
            responses.POST,
            f"{TEST_BASE_URL}/services/{SERVICE_ID}/increment",
            json={},
            status=200,
            match=[matchers.json_params_matcher({"field": "total_bookings", "amount": 1})],
        )

        result = BookingService.create_booking(
            TEST_TOKEN, SERVICE_ID, SATURDAY,
            number_of_people=2,
            affiliate_id=AFFILIATE_ID,
            custom_fields={"pickup_point": "Jetty 3"},
            additional_charges=[{"name": "Life jacket", "amount": 5}],
            tax_amount=10,
        )

        # 100 - 10% = 90, weekend +20% = 108
        assert result["status"] == "pending"
        assert result["pricing"]["base_price"] == 100
        assert result["pricing"]["total_amount"] == 123.0
        assert result["pricing"]["additional_charges"][0] == {"name": "dynamic_pricing", "amount": 8.0}
        assert result["commission_structure"]["affiliate_commission"] == 10
        assert result["admin_chain"] == {"dsa_id": "dsa-1", "ssa_id": None, "nsa_id": "nsa-1"}
        assert result["affiliate_id"] == AFFILIATE_ID
        assert result["commissions"] is None
        assert result["booking_id"].startswith("BK")

    @responses.activate
    @patch('affilimart.services.region_directory.RegionDirectory.admin_chain_for')
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_weekday_discount(self, mock_current_user, mock_chain, customer, service_data, template_data):
        mock_current_user.return_value = customer
        mock_chain.return_value = AdminChain()
        self._stub_catalog(service_data, template_data)
        responses.add_callback(responses.POST, f"{TEST_BASE_URL}/bookings", callback=_echo)
        responses.add(responses.POST, f"{TEST_BASE_URL}/services/{SERVICE_ID}/increment", json={}, status=200)

        result = BookingService.create_booking(
            TEST_TOKEN, SERVICE_ID, "2024-06-10", custom_fields={"pickup_point": "Jetty 1"}
        )

        assert result["pricing"]["discount_amount"] == 10.0
        assert result["pricing"]["total_amount"] == 90.0

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_service_not_approved(self, mock_current_user, customer, service_data):
        mock_current_user.return_value = customer
        service_data["status"] = "draft"
        responses.add(responses.GET, f"{TEST_BASE_URL}/services/{SERVICE_ID}", json=service_data, status=200)

        with pytest.raises(ValidationError) as excinfo:
            BookingService.create_booking(TEST_TOKEN, SERVICE_ID, SATURDAY)

        assert "not available" in str(excinfo.value)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_required_field_missing(self, mock_current_user, customer, service_data):
        mock_current_user.return_value = customer
        responses.add(responses.GET, f"{TEST_BASE_URL}/services/{SERVICE_ID}", json=service_data, status=200)

        with pytest.raises(ValidationError) as excinfo:
            BookingService.create_booking(TEST_TOKEN, SERVICE_ID, SATURDAY)

        assert "Pickup point" in str(excinfo.value)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_self_referral_rejected(self, mock_current_user, customer, service_data):
        mock_current_user.return_value = customer
        responses.add(responses.GET, f"{TEST_BASE_URL}/services/{SERVICE_ID}", json=service_data, status=200)

        with pytest.raises(ValidationError):
            BookingService.create_booking(
                TEST_TOKEN, SERVICE_ID, SATURDAY, affiliate_id=CUSTOMER_ID,
                custom_fields={"pickup_point": "Jetty 3"},
            )

    @responses.activate
    @patch('affilimart.services.region_directory.RegionDirectory.admin_chain_for')
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_reference_clash_is_retried(self, mock_current_user, mock_chain, customer, service_data, template_data):
        """A booking reference already taken in the store is replaced and retried."""
        mock_current_user.return_value = customer
        mock_chain.return_value = AdminChain()
        self._stub_catalog(service_data, template_data)
        responses.add(responses.POST, f"{TEST_BASE_URL}/bookings", json={"error": "Duplicate booking_id"}, status=409)
        responses.add_callback(responses.POST, f"{TEST_BASE_URL}/bookings", callback=_echo)
        responses.add(responses.POST, f"{TEST_BASE_URL}/services/{SERVICE_ID}/increment", json={}, status=200)

        result = BookingService.create_booking(
            TEST_TOKEN, SERVICE_ID, SATURDAY, custom_fields={"pickup_point": "Jetty 3"}
        )

        posts = [c for c in responses.calls if c.request.method == "POST" and c.request.url.endswith("/bookings")]
        assert len(posts) == 2
        first_id = json.loads(posts[0].request.body)["booking_id"]
        assert result["booking_id"] != first_id

    @responses.activate
    @patch('affilimart.services.region_directory.RegionDirectory.admin_chain_for')
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_gives_up_after_repeated_clashes(self, mock_current_user, mock_chain, customer, service_data,
                                             template_data):
        mock_current_user.return_value = customer
        mock_chain.return_value = AdminChain()
        self._stub_catalog(service_data, template_data)
        responses.add(responses.POST, f"{TEST_BASE_URL}/bookings", json={"error": "Duplicate booking_id"}, status=409)

        with pytest.raises(ConflictError):
            BookingService.create_booking(
                TEST_TOKEN, SERVICE_ID, SATURDAY, custom_fields={"pickup_point": "Jetty 3"}
            )

    @responses.activate
    @patch('affilimart.services.region_directory.RegionDirectory.admin_chain_for')
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    def test_counter_failure_rolls_back(self, mock_current_user, mock_chain, customer, service_data, template_data):
        """If the booking counter cannot be updated the new booking is removed."""
        mock_current_user.return_value = customer
        mock_chain.return_value = AdminChain()
        self._stub_catalog(service_data, template_data)
        responses.add_callback(responses.POST, f"{TEST_BASE_URL}/bookings", callback=_echo)
        responses.add(
            responses.POST,
            f"{TEST_BASE_URL}/services/{SERVICE_ID}/increment",
            body=requests.ConnectionError("store went away"),
        )
        responses.add(responses.DELETE, re.compile(f"{TEST_BASE_URL}/bookings/.+"), json={}, status=200)

        with pytest.raises(UpstreamError):
            BookingService.create_booking(
                TEST_TOKEN, SERVICE_ID, SATURDAY, custom_fields={"pickup_point": "Jetty 3"}
            )

        assert any(c.request.method == "DELETE" for c in responses.calls)


class TestConfirmBooking:
    """Test class for confirming bookings and computing commissions."""

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_confirm_computes_split(self, mock_verify_token):
        mock_verify_token.return_value = PROVIDER
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.confirm_booking(TEST_TOKEN, booking.booking_id)

        assert result["status"] == "confirmed"
        assert result["commissions"]["affiliate"]["amount"] == 20.0
        assert result["commissions"]["dsa"]["amount"] == 6.0
        assert result["commissions"]["ssa"] is None
        assert result["commissions"]["nsa"] is None

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_no_affiliate_no_affiliate_commission(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        booking = _booking(affiliate_id=None, chain=AdminChain(dsa_id="d", ssa_id="s", nsa_id="n"))
        _expect_lookup(booking)

        result = BookingService.confirm_booking(TEST_TOKEN, booking.booking_id)

        assert result["commissions"]["affiliate"] is None
        assert result["commissions"]["nsa"]["amount"] == 2.0

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_customer_cannot_confirm(self, mock_verify_token):
        mock_verify_token.return_value = CUSTOMER
        booking = _booking()
        _expect_lookup(booking)

        with pytest.raises(AuthError) as excinfo:
            BookingService.confirm_booking(TEST_TOKEN, booking.booking_id)

        assert excinfo.value.status_code == 403

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_admin_outside_chain(self, mock_verify_token):
        mock_verify_token.return_value = {"id": "dsa-other", "role": "dsa", "kind": "admin"}
        booking = _booking()
        _expect_lookup(booking)

        with pytest.raises(AuthError):
            BookingService.confirm_booking(TEST_TOKEN, booking.booking_id)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_admin_in_chain(self, mock_verify_token):
        mock_verify_token.return_value = {"id": "dsa-1", "role": "dsa", "kind": "admin"}
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.confirm_booking(TEST_TOKEN, booking.booking_id)

        assert result["status"] == "confirmed"


class TestBookingUpdates:
    """Test class for cancellations, payments and commission payouts."""

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_customer_cancels(self, mock_verify_token):
        mock_verify_token.return_value = CUSTOMER
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.cancel_booking(TEST_TOKEN, booking.booking_id, "Rain")

        assert result["status"] == "cancelled"
        assert result["cancellation_details"]["cancelled_by"] == "user"
        assert result["cancellation_details"]["reason"] == "Rain"

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_refund_cannot_exceed_payments(self, mock_verify_token):
        mock_verify_token.return_value = PROVIDER
        booking = _booking()
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.cancel_booking(TEST_TOKEN, booking.booking_id, refund_amount=50)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_record_payment_reports_paid_in_full(self, mock_verify_token):
        mock_verify_token.return_value = CUSTOMER
        booking = _booking()
        booking.pricing.recompute_total()
        _expect_lookup(booking)

        result = BookingService.record_payment(TEST_TOKEN, booking.booking_id, 200, status="completed")

        assert result["fully_paid"] is True
        assert result["balance_due"] == 0.0
        assert result["payments"][0]["status"] == "completed"
        assert result["payments"][0]["paid_at"] is not None

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_partial_payment_leaves_balance(self, mock_verify_token):
        mock_verify_token.return_value = CUSTOMER
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.record_payment(TEST_TOKEN, booking.booking_id, 60, payment_type="partial",
                                               status="completed")

        assert result["fully_paid"] is False
        assert result["balance_due"] == 140.0

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_affiliate_credited_when_paid(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        commissions = CommissionSplit.from_dict({"affiliate": {"amount": 20.0, "status": "processing"}})
        booking = _booking(status=BookingStatus.CONFIRMED, commissions=commissions)
        _expect_lookup(booking)
        for field in ("affiliate_info.total_earnings", "affiliate_info.available_balance"):
            responses.add(
                responses.POST,
                f"{TEST_BASE_URL}/users/{AFFILIATE_ID}/increment",
                json={},
                status=200,
                match=[matchers.json_params_matcher({"field": field, "amount": 20.0})],
            )

        result = BookingService.update_commission_status(
            TEST_TOKEN, booking.booking_id, "affiliate", CommissionStatus.PAID.value
        )

        assert result["commissions"]["affiliate"]["status"] == "paid"
        increments = [c for c in responses.calls if c.request.url.endswith("/increment")]
        assert len(increments) == 2

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_missing_commission_role(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        booking = _booking(status=BookingStatus.CONFIRMED, commissions=CommissionSplit())
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.update_commission_status(TEST_TOKEN, booking.booking_id, "nsa", "processing")

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_note_records_author_kind(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.add_note(TEST_TOKEN, booking.booking_id, "Customer asked for a window seat")

        assert result["notes"][0]["created_by"] == {"kind": "admin", "id": "admin-0"}


def _expect_increment(field, amount, status=200):
    responses.add(
        responses.POST,
        f"{TEST_BASE_URL}/users/{AFFILIATE_ID}/increment",
        json={} if status == 200 else {"error": "store unavailable"},
        status=status,
        match=[matchers.json_params_matcher({"field": field, "amount": amount})],
    )


class TestAffiliatePayout:
    """Test class for crediting affiliate earnings when a commission is paid."""

    def _processing_booking(self):
        commissions = CommissionSplit.from_dict({"affiliate": {"amount": 20.0, "status": "processing"}})
        return _booking(status=BookingStatus.CONFIRMED, commissions=commissions)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_failed_credit_keeps_commission_unpaid(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        booking = self._processing_booking()
        responses.add(responses.GET, f"{TEST_BASE_URL}/bookings/query", json=[booking.to_dict()], status=200)
        _expect_increment("affiliate_info.total_earnings", 20.0)
        _expect_increment("affiliate_info.available_balance", 20.0, status=500)
        _expect_increment("affiliate_info.total_earnings", -20.0)

        with pytest.raises(UpstreamError):
            BookingService.update_commission_status(TEST_TOKEN, booking.booking_id, "affiliate", "paid")

        assert not any(call.request.method == "PUT" for call in responses.calls)
        reversal = json.loads(responses.calls[-1].request.body)
        assert reversal == {"field": "affiliate_info.total_earnings", "amount": -20.0}

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_failed_save_reverses_credit(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        booking = self._processing_booking()
        responses.add(responses.GET, f"{TEST_BASE_URL}/bookings/query", json=[booking.to_dict()], status=200)
        responses.add(responses.PUT, f"{TEST_BASE_URL}/bookings/{booking.id}", json={"error": "disk full"}, status=500)
        for amount in (20.0, -20.0):
            _expect_increment("affiliate_info.total_earnings", amount)
            _expect_increment("affiliate_info.available_balance", amount)

        with pytest.raises(UpstreamError):
            BookingService.update_commission_status(TEST_TOKEN, booking.booking_id, "affiliate", "paid")

        increments = [json.loads(c.request.body)["amount"] for c in responses.calls
                      if c.request.url.endswith("/increment")]
        assert increments == [20.0, 20.0, -20.0, -20.0]

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_processing_does_not_credit(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        commissions = CommissionSplit.from_dict({"affiliate": {"amount": 20.0, "status": "pending"}})
        booking = _booking(status=BookingStatus.CONFIRMED, commissions=commissions)
        _expect_lookup(booking)

        result = BookingService.update_commission_status(TEST_TOKEN, booking.booking_id, "affiliate", "processing")

        assert result["commissions"]["affiliate"]["status"] == "processing"
        assert not any(c.request.url.endswith("/increment") for c in responses.calls)


class TestRepricing:
    """Test class for BookingService.update_pricing."""

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_reprice(self, mock_verify_token):
        mock_verify_token.return_value = PROVIDER
        booking = _booking()
        _expect_lookup(booking)

        result = BookingService.update_pricing(
            TEST_TOKEN, booking.booking_id, discount_amount=20, tax_amount=9,
            additional_charges=[{"name": "pickup", "amount": 11}],
        )

        assert result["pricing"]["total_amount"] == 200.0

    @pytest.mark.parametrize("changes", [
        {"discount_amount": 500},
        {"additional_charges": [{"name": "goodwill", "amount": -50}]},
        {"discount_amount": 500, "additional_charges": [{"name": "goodwill", "amount": -50}]},
        {"tax_amount": -1},
    ])
    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_rejects_negative_money(self, mock_verify_token, changes):
        mock_verify_token.return_value = PROVIDER
        booking = _booking()
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.update_pricing(TEST_TOKEN, booking.booking_id, **changes)

        assert not any(call.request.method == "PUT" for call in responses.calls)

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_confirmed_booking_cannot_be_repriced(self, mock_verify_token):
        mock_verify_token.return_value = PROVIDER
        booking = _booking(status=BookingStatus.CONFIRMED)
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.update_pricing(TEST_TOKEN, booking.booking_id, tax_amount=5)


class TestUnknownStatus:
    """Test class for status strings outside the known values."""

    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_list_bookings(self, mock_verify_token):
        mock_verify_token.return_value = CUSTOMER

        with pytest.raises(ValidationError):
            BookingService.list_bookings(TEST_TOKEN, status="shipped")

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_payment_status(self, mock_verify_token):
        mock_verify_token.return_value = PROVIDER
        booking = _booking()
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.update_payment_status(TEST_TOKEN, booking.booking_id, "payment-1", "bounced")

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    def test_commission_status(self, mock_verify_token):
        mock_verify_token.return_value = SUPER_ADMIN
        commissions = CommissionSplit.from_dict({"affiliate": {"amount": 20.0, "status": "pending"}})
        booking = _booking(status=BookingStatus.CONFIRMED, commissions=commissions)
        _expect_lookup(booking)

        with pytest.raises(ValidationError):
            BookingService.update_commission_status(TEST_TOKEN, booking.booking_id, "affiliate", "settled")
