"""Tests for the command line interface."""

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from affilimart.cli_module.cli import cli
from affilimart.errors import AuthError, NotFoundError, ValidationError

TEST_TOKEN = "test-token"
AFFILIATE = {"id": "affiliate-1", "role": "affiliate", "kind": "user"}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def signed_in():
    """Patch the stored token everywhere the commands read it."""
    with patch('affilimart.cli_module.utils.get_token', return_value=TEST_TOKEN), \
            patch('affilimart.cli_module.commands.affiliate_commands.get_token', return_value=TEST_TOKEN), \
            patch('affilimart.cli_module.commands.catalog_commands.get_token', return_value=TEST_TOKEN):
        yield


class TestAuthCommands:
    """Test class for the auth command group."""

    @patch('affilimart.cli_module.commands.auth_commands.save_token')
    @patch('affilimart.services.auth_service.AuthService.login')
    def test_login_saves_token(self, mock_login, mock_save_token, runner):
        mock_login.return_value = {"user": {"name": "Meera", "role": "service_provider"}, "token": TEST_TOKEN}

        result = runner.invoke(cli, ["auth", "login", "--email", "meera@example.com", "--password", "secret123"])

        assert result.exit_code == 0
        assert "Welcome back, Meera!" in result.output
        assert "service provider" in result.output
        mock_save_token.assert_called_once_with(TEST_TOKEN)

    @patch('affilimart.cli_module.commands.auth_commands.save_token')
    @patch('affilimart.services.auth_service.AuthService.login')
    def test_login_failure(self, mock_login, mock_save_token, runner):
        mock_login.side_effect = AuthError("Invalid email or password")

        result = runner.invoke(cli, ["auth", "login", "--email", "meera@example.com", "--password", "wrong"])

        assert "Invalid email or password" in result.output
        mock_save_token.assert_not_called()

    @patch('affilimart.cli_module.commands.auth_commands.clear_token', return_value=False)
    def test_logout_when_signed_out(self, mock_clear_token, runner):
        result = runner.invoke(cli, ["auth", "logout"])

        assert "You were not logged in." in result.output


class TestAffiliateCommands:
    """Test class for the affiliate command group."""

    @patch('affilimart.cli_module.commands.affiliate_commands.save_token')
    @patch('affilimart.services.affiliate_service.AffiliateService.login_affiliate')
    def test_login_saves_token(self, mock_login, mock_save_token, runner):
        mock_login.return_value = {
            "user": {"name": "Ravi", "affiliate_info": {"partner_id": "AFF-1A2B3C"}},
            "token": TEST_TOKEN,
        }

        result = runner.invoke(cli, ["affiliate", "login", "--email", "ravi@example.com", "--password", "secret123"])

        assert result.exit_code == 0
        assert "Welcome back, Ravi!" in result.output
        assert "Partner ID: AFF-1A2B3C" in result.output
        mock_login.assert_called_once_with("ravi@example.com", "secret123")
        mock_save_token.assert_called_once_with(TEST_TOKEN)

    @patch('affilimart.cli_module.commands.affiliate_commands.save_token')
    @patch('affilimart.services.affiliate_service.AffiliateService.login_affiliate')
    def test_login_rejects_non_affiliate(self, mock_login, mock_save_token, runner):
        mock_login.side_effect = AuthError("This account is not an affiliate")

        result = runner.invoke(cli, ["affiliate", "login", "--email", "meera@example.com", "--password", "secret123"])

        assert "Error during login" in result.output
        mock_save_token.assert_not_called()

    def test_requires_sign_in(self, runner):
        with patch('affilimart.cli_module.utils.get_token', return_value=None):
            result = runner.invoke(cli, ["affiliate", "qr"])

        assert "not signed in" in result.output

    @patch('affilimart.services.auth_service.AuthService.require_role', return_value=AFFILIATE)
    @patch('affilimart.services.affiliate_service.AffiliateService.get_qr')
    def test_qr_not_generated(self, mock_get_qr, mock_require_role, runner, signed_in):
        mock_get_qr.side_effect = NotFoundError("QR code not generated yet")

        result = runner.invoke(cli, ["affiliate", "qr"])

        assert "QR code not generated yet" in result.output
        assert "qr-generate" in result.output

    @patch('affilimart.services.auth_service.AuthService.require_role', return_value=AFFILIATE)
    @patch('affilimart.services.affiliate_service.AffiliateService.generate_qr')
    def test_qr_generate(self, mock_generate_qr, mock_require_role, runner, signed_in):
        mock_generate_qr.return_value = {"qr_code": "https://img/qr.png", "referral_link": "http://x/lead-form?ref=a"}

        result = runner.invoke(cli, ["affiliate", "qr-generate"])

        assert result.exit_code == 0
        assert "https://img/qr.png" in result.output
        mock_generate_qr.assert_called_once_with(TEST_TOKEN)


class TestCatalogCommands:
    """Test class for the catalog command group."""

    @patch('affilimart.services.catalog_service.CatalogService.quote_price')
    def test_quote(self, mock_quote, runner):
        mock_quote.return_value = {
            "service_id": "service-1",
            "title": "City walk",
            "base_price": 100.0,
            "discount_percentage": 10.0,
            "final_price": 108.0,
        }

        result = runner.invoke(cli, ["catalog", "quote", "service-1", "--date", "2024-06-08", "--people", "2"])

        assert result.exit_code == 0
        assert "108.00" in result.output
        mock_quote.assert_called_once_with("service-1", "2024-06-08", 2)

    @patch('affilimart.services.catalog_service.CatalogService.quote_price')
    def test_quote_invalid_date(self, mock_quote, runner):
        mock_quote.side_effect = ValidationError("Invalid booking date: soon")

        result = runner.invoke(cli, ["catalog", "quote", "service-1", "--date", "soon"])

        assert "Invalid booking date" in result.output


class TestBookingCommands:
    """Test class for the booking command group."""

    @patch('affilimart.services.booking_service.BookingService.record_payment')
    @patch('affilimart.services.auth_service.AuthService.verify_token')
    @patch('affilimart.cli_module.commands.booking_commands.get_token', return_value=TEST_TOKEN)
    @patch('affilimart.cli_module.utils.get_token', return_value=TEST_TOKEN)
    def test_pay_shows_balance_due(self, _utils_token, _booking_token, mock_verify_token, mock_pay, runner):
        mock_verify_token.return_value = {"id": "customer-1", "role": "customer", "kind": "user"}
        mock_pay.return_value = {"fully_paid": False, "balance_due": 140.0}

        result = runner.invoke(cli, ["booking", "pay", "BK-1", "--amount", "60", "--type", "partial"])

        assert result.exit_code == 0
        assert "Fully paid: no" in result.output
        assert "Balance due: 140.00" in result.output
        mock_pay.assert_called_once_with(TEST_TOKEN, "BK-1", 60.0, "partial", None, None, "pending")
