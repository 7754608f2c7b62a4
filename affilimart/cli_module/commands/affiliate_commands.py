"""Affiliate commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.user import UserRole
from affilimart.services.affiliate_service import AffiliateService
from affilimart.cli_module.utils import (
    address_options,
    collect_address,
    format_date,
    format_money,
    get_token,
    require_role,
    save_token,
)


@click.group(name="affiliate")
def affiliate_group():
    """Affiliate commands."""
    pass


@affiliate_group.command()
@click.option("--name", prompt=True, help="Your full name")
@click.option("--email", prompt=True, help="Your email address")
@click.option("--phone", prompt=True, help="Your phone number")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Your password")
@address_options
def register(name, email, phone, password, **kwargs):
    """Register as an affiliate partner."""
    try:
        result = AffiliateService.register_affiliate(name, email, phone, password, collect_address(kwargs))
        save_token(result["token"])
        click.echo(f"Affiliate {name} registered successfully!")
        click.echo(f"Partner ID: {result['user']['affiliate_info']['partner_id']}")
        click.echo("You are now logged in.")
    except MarketplaceError as e:
        click.echo(f"Error during registration: {str(e)}", err=True)


@affiliate_group.command()
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, help="Your password")
def login(email, password):
    """Log in as an affiliate."""
    try:
        result = AffiliateService.login_affiliate(email, password)
        save_token(result["token"])
        click.echo(f"Welcome back, {result['user']['name']}!")
        click.echo(f"Partner ID: {result['user']['affiliate_info']['partner_id']}")
    except MarketplaceError as e:
        click.echo(f"Error during login: {str(e)}", err=True)


@affiliate_group.command(name="qr")
@require_role([UserRole.AFFILIATE.value])
def show_qr():
    """Show your referral QR code."""
    try:
        result = AffiliateService.get_qr(get_token())
        click.echo(f"QR code: {result['qr_code']}")
        click.echo(f"Referral link: {result['referral_link']}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        click.echo("Use 'affilimart affiliate qr-generate' to create one.")


@affiliate_group.command(name="qr-generate")
@require_role([UserRole.AFFILIATE.value])
def generate_qr():
    """Generate your referral QR code."""
    try:
        result = AffiliateService.generate_qr(get_token())
        click.echo("QR code ready!")
        click.echo(f"QR code: {result['qr_code']}")
        click.echo(f"Referral link: {result['referral_link']}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@affiliate_group.command()
@click.option("--from", "start_date", help="Earliest booking date (YYYY-MM-DD)")
@click.option("--to", "end_date", help="Latest booking date (YYYY-MM-DD)")
@click.option("--page", default=1, help="Page number")
@click.option("--limit", default=10, help="Results per page")
@require_role([UserRole.AFFILIATE.value])
def earnings(start_date, end_date, page, limit):
    """Show your commission earnings."""
    try:
        result = AffiliateService.get_earnings(get_token(), start_date, end_date, page, limit)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not result["earnings"]:
        click.echo("No earnings found.")
    else:
        table = [
            [e["booking_id"], e["booking_status"], format_money(e["amount"]), e["status"], format_date(e["created_at"])]
            for e in result["earnings"]
        ]
        click.echo(tabulate(table, headers=["Booking", "Booking Status", "Commission", "Payout", "Date"],
                            tablefmt="pretty"))
        click.echo(f"Page {result['page']} of {result['pages']} ({result['total']} bookings)")

    click.echo(f"\nTotal commission: {format_money(result['total_earnings'])}")
    for status, amount in sorted(result["by_status"].items()):
        click.echo(f"  {status}: {format_money(amount)}")
    click.echo(f"Available balance: {format_money(result['balance']['available_balance'])}")
