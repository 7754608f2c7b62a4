"""Tests for commission and lead conversion reports."""

import pytest
import responses
from responses import matchers
from unittest.mock import patch

from affilimart.models.admin import Admin, AdminRole
from affilimart.services.report_service import ReportService

# Constants for testing
TEST_BASE_URL = "http://localhost:3000"
TEST_TOKEN = "test-token"


def _admin(admin_id, role):
    return Admin(id=admin_id, name=admin_id, email=f"{admin_id}@example.com", phone=admin_id,
                 password="hashed", role=role, state="Karnataka", country="India")


def _entry(amount, status="pending"):
    return {"amount": amount, "status": status, "paid_at": None}


@pytest.fixture
def bookings():
    return [
        {"id": "b1", "commissions": {"affiliate": _entry(10.0, "paid"), "ssa": _entry(2.5)}},
        {"id": "b2", "commissions": {"affiliate": _entry(5.0), "ssa": _entry(1.25, "approved")}},
        {"id": "b3", "commissions": None},
    ]


class TestCommissionReport:
    """Test class for ReportService.commission_report."""

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_admin')
    def test_regional_admin_sees_own_role(self, mock_current_admin, bookings):
        mock_current_admin.return_value = _admin("ssa-1", AdminRole.SSA)
        responses.add(
            responses.GET,
            f"{TEST_BASE_URL}/bookings/query",
            json=bookings,
            status=200,
            match=[matchers.query_param_matcher({"admin_chain.ssa_id": "ssa-1"})],
        )

        result = ReportService.commission_report(TEST_TOKEN)

        assert result == {
            "bookings": 2,
            "roles": {"ssa": {"total": 3.75, "by_status": {"pending": 2.5, "approved": 1.25}}},
        }

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_admin')
    def test_super_admin_sees_every_role(self, mock_current_admin, bookings):
        mock_current_admin.return_value = _admin("root", AdminRole.SUPER_ADMIN)
        responses.add(responses.GET, f"{TEST_BASE_URL}/bookings/query", json=bookings, status=200)

        result = ReportService.commission_report(TEST_TOKEN)

        roles = result["roles"]
        assert roles["affiliate"] == {"total": 15.0, "by_status": {"paid": 10.0, "pending": 5.0}}
        assert roles["dsa"] == {"total": 0.0, "by_status": {}}
        assert roles["ssa"]["total"] == 3.75
        assert "?" not in responses.calls[0].request.url

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_admin')
    def test_no_bookings(self, mock_current_admin):
        mock_current_admin.return_value = _admin("ssa-1", AdminRole.SSA)
        responses.add(responses.GET, f"{TEST_BASE_URL}/bookings/query", json={"error": "not found"}, status=404)

        result = ReportService.commission_report(TEST_TOKEN)

        assert result == {"bookings": 0, "roles": {"ssa": {"total": 0.0, "by_status": {}}}}


class TestLeadConversionReport:
    """Test class for ReportService.lead_conversion_report."""

    @responses.activate
    @patch('affilimart.services.auth_service.AuthService.get_current_admin')
    def test_win_rate_per_type(self, mock_current_admin):
        mock_current_admin.return_value = _admin("root", AdminRole.SUPER_ADMIN)
        leads = [
            {"type": "loan", "status": "closed_won"},
            {"type": "loan", "status": "closed_won"},
            {"type": "loan", "status": "closed_lost"},
            {"type": "loan", "status": "new"},
            {"type": "insurance", "status": "contacted"},
        ]
        responses.add(responses.GET, f"{TEST_BASE_URL}/leads/query", json=leads, status=200)

        result = ReportService.lead_conversion_report(TEST_TOKEN)

        assert result["loan"]["total"] == 4
        assert result["loan"]["win_rate"] == 0.6667
        assert result["loan"]["by_status"] == {"closed_won": 2, "closed_lost": 1, "new": 1}
        assert result["insurance"]["win_rate"] is None
