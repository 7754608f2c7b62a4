"""Tests for the affiliate earnings statement."""

import pytest
import responses
from responses import matchers
from unittest.mock import patch

from affilimart.errors import ValidationError
from affilimart.models.user import AffiliateInfo, User, UserRole
from affilimart.services.affiliate_service import AffiliateService

# Constants for testing
TEST_BASE_URL = "http://localhost:3000"
TEST_TOKEN = "test-token"
AFFILIATE_ID = "affiliate-1"


def _booking(booking_id, status, created_at, amount=None, payout="pending"):
    return {
        "id": f"id-{booking_id}",
        "booking_id": booking_id,
        "service_id": "service-1",
        "affiliate_id": AFFILIATE_ID,
        "status": status,
        "created_at": created_at,
        "commissions": {"affiliate": {"amount": amount, "status": payout, "paid_at": None}} if amount else None,
    }


@pytest.fixture
def affiliate():
    return User(
        id=AFFILIATE_ID,
        name="Kiran",
        email="kiran@example.com",
        phone="9000000004",
        password="hashed",
        role=UserRole.AFFILIATE,
        affiliate_info=AffiliateInfo(partner_id="INKE1234", total_earnings=15.0, available_balance=15.0),
    )


@pytest.fixture
def bookings():
    """Fixture for bookings referred by the affiliate."""
    return [
        _booking("BK0000010001", "completed", "2024-05-01T10:00:00", 15.0, "paid"),
        _booking("BK0000020002", "confirmed", "2024-06-01T10:00:00", 10.0),
        _booking("BK0000030003", "pending", "2024-06-02T10:00:00"),
        _booking("BK0000040004", "cancelled", "2024-06-03T10:00:00"),
        _booking("BK0000050005", "confirmed", "2024-06-04T10:00:00", 5.5, "processing"),
    ]


class TestEarnings:
    """Test class for AffiliateService.get_earnings."""

    def _stub(self, bookings):
        responses.add(
            responses.GET,
            f"{TEST_BASE_URL}/bookings/query",
            json=bookings,
            status=200,
            match=[matchers.query_param_matcher({"affiliate_id": AFFILIATE_ID})],
        )

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    @patch('affilimart.services.auth_service.AuthService.require_role')
    def test_only_confirmed_and_completed_newest_first(self, mock_require_role, mock_current_user,
                                                       affiliate, bookings):
        mock_current_user.return_value = affiliate
        self._stub(bookings)

        result = AffiliateService.get_earnings(TEST_TOKEN)

        assert [e["booking_id"] for e in result["earnings"]] == ["BK0000050005", "BK0000020002", "BK0000010001"]
        assert result["total_earnings"] == 30.5
        assert result["by_status"] == {"paid": 15.0, "pending": 10.0, "processing": 5.5}
        assert result["balance"]["available_balance"] == 15.0
        assert result["total"] == 3

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    @patch('affilimart.services.auth_service.AuthService.require_role')
    def test_pagination_keeps_totals(self, mock_require_role, mock_current_user, affiliate, bookings):
        mock_current_user.return_value = affiliate
        self._stub(bookings)

        result = AffiliateService.get_earnings(TEST_TOKEN, page=2, limit=2)

        assert [e["booking_id"] for e in result["earnings"]] == ["BK0000010001"]
        assert result["pages"] == 2
        assert result["total_earnings"] == 30.5

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    @patch('affilimart.services.auth_service.AuthService.require_role')
    def test_date_range(self, mock_require_role, mock_current_user, affiliate, bookings):
        mock_current_user.return_value = affiliate
        self._stub(bookings)

        result = AffiliateService.get_earnings(TEST_TOKEN, start_date="2024-06-01", end_date="2024-06-01")

        assert [e["booking_id"] for e in result["earnings"]] == ["BK0000020002"]
        assert result["total_earnings"] == 10.0

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_user')
    @patch('affilimart.services.auth_service.AuthService.require_role')
    def test_no_bookings_yet(self, mock_require_role, mock_current_user, affiliate):
        mock_current_user.return_value = affiliate
        responses.add(responses.GET, f"{TEST_BASE_URL}/bookings/query", json={"error": "not found"}, status=404)

        result = AffiliateService.get_earnings(TEST_TOKEN)

        assert result["earnings"] == []
        assert result["total_earnings"] == 0.0
        assert result["pages"] == 0

    def test_bad_page(self):
        with pytest.raises(ValidationError):
            AffiliateService.get_earnings(TEST_TOKEN, page=0)
