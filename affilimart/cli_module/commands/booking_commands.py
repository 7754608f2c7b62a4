"""Booking commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.admin import AdminRole
from affilimart.models.booking import BookingStatus, PaymentStatus, PaymentType
from affilimart.models.commission import ROLES, CommissionStatus
from affilimart.services.booking_service import BookingService
from affilimart.cli_module.utils import format_date, format_money, get_token, parse_json, require_role

ADMIN_ROLES = [role.value for role in AdminRole]


@click.group(name="booking")
def booking_group():
    """Booking commands."""
    pass


def _show(booking: dict) -> None:
    pricing = booking["pricing"]
    details = booking["details"]

    click.echo(f"Booking {booking['booking_id']} ({booking['status']})")
    click.echo(f"Service: {booking['service_id']}")
    click.echo(f"Date: {details['date']}"
               + (f" {details['start_time']}-{details['end_time']}" if details.get("start_time") else ""))
    if details.get("number_of_people"):
        click.echo(f"People: {details['number_of_people']}")
    if booking.get("affiliate_id"):
        click.echo(f"Referred by: {booking['affiliate_id']}")

    rows = [["Base price", format_money(pricing["base_price"])],
            ["Discount", format_money(-pricing["discount_amount"])]]
    rows += [[charge["name"], format_money(charge["amount"])] for charge in pricing["additional_charges"]]
    rows += [["Tax", format_money(pricing["tax_amount"])], ["Total", format_money(pricing["total_amount"])]]
    click.echo(tabulate(rows, tablefmt="simple"))

    if booking.get("commissions"):
        table = [
            [role, format_money(entry["amount"]), entry["status"], format_date(entry.get("paid_at"))]
            for role, entry in booking["commissions"].items() if entry
        ]
        click.echo("\nCommissions:")
        click.echo(tabulate(table, headers=["Role", "Amount", "Status", "Paid"], tablefmt="pretty"))

    if booking.get("payments"):
        table = [
            [p["payment_id"], p["type"], format_money(p["amount"]), p["status"], format_date(p.get("paid_at"))]
            for p in booking["payments"]
        ]
        click.echo("\nPayments:")
        click.echo(tabulate(table, headers=["ID", "Type", "Amount", "Status", "Paid"], tablefmt="pretty"))

    if "fully_paid" in booking:
        click.echo(f"\nFully paid: {'yes' if booking['fully_paid'] else 'no'}")
        click.echo(f"Balance due: {format_money(booking['balance_due'])}")


@booking_group.command()
@click.argument("service_id")
@click.option("--date", "booking_date", prompt="Booking date (YYYY-MM-DD)", help="Booking date")
@click.option("--people", type=int, help="Group size")
@click.option("--ref", "affiliate_id", help="Referring affiliate ID")
@click.option("--start", "start_time", help="Start time (HH:MM)")
@click.option("--end", "end_time", help="End time (HH:MM)")
@click.option("--requests", "special_requests", help="Special requests")
@click.option("--fields", callback=parse_json, help="Booking field answers as a JSON object")
@click.option("--charges", callback=parse_json, help='Additional charges as JSON, e.g. [{"name": "pickup", "amount": 5}]')
@click.option("--tax", type=float, default=0.0, help="Tax amount")
@require_role()
def create(service_id, booking_date, people, affiliate_id, start_time, end_time, special_requests,
           fields, charges, tax):
    """Book a service."""
    try:
        booking = BookingService.create_booking(
            get_token(), service_id, booking_date,
            number_of_people=people,
            affiliate_id=affiliate_id,
            start_time=start_time,
            end_time=end_time,
            special_requests=special_requests,
            custom_fields=fields,
            additional_charges=charges,
            tax_amount=tax,
        )
        click.echo("Booking created!\n")
        _show(booking)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command(name="list")
@click.option("--status", type=click.Choice([s.value for s in BookingStatus]), help="Filter by status")
@require_role()
def list_bookings(status):
    """List your bookings."""
    try:
        bookings = BookingService.list_bookings(get_token(), status)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not bookings:
        click.echo("No bookings found.")
        return

    table = [
        [b["booking_id"], b["service_id"][:8], b["details"]["date"], b["status"],
         format_money(b["pricing"]["total_amount"]), format_date(b["created_at"])]
        for b in bookings
    ]
    click.echo(tabulate(table, headers=["Booking", "Service", "Date", "Status", "Total", "Created"],
                        tablefmt="pretty"))


@booking_group.command()
@click.argument("booking_id")
@require_role()
def show(booking_id):
    """Show a booking."""
    try:
        _show(BookingService.get_booking(get_token(), booking_id).to_dict())
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@require_role()
def confirm(booking_id):
    """Confirm a pending booking."""
    try:
        _show(BookingService.confirm_booking(get_token(), booking_id))
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@require_role()
def complete(booking_id):
    """Mark a confirmed booking completed."""
    try:
        BookingService.complete_booking(get_token(), booking_id)
        click.echo(f"Booking {booking_id} completed.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@click.option("--reason", help="Cancellation reason")
@click.option("--refund", type=float, default=0.0, help="Amount to refund")
@require_role()
def cancel(booking_id, reason, refund):
    """Cancel a booking."""
    try:
        BookingService.cancel_booking(get_token(), booking_id, reason, refund)
        click.echo(f"Booking {booking_id} cancelled.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@require_role(ADMIN_ROLES)
def refund(booking_id):
    """Refund a booking."""
    try:
        BookingService.refund_booking(get_token(), booking_id)
        click.echo(f"Booking {booking_id} refunded.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@click.option("--amount", type=float, prompt=True, help="Amount paid")
@click.option("--type", "payment_type", type=click.Choice([t.value for t in PaymentType]), default="full",
              help="Payment type")
@click.option("--method", help="Payment method")
@click.option("--transaction-id", help="Gateway transaction ID")
@click.option("--status", type=click.Choice([s.value for s in PaymentStatus]), default="pending",
              help="Payment status")
@require_role()
def pay(booking_id, amount, payment_type, method, transaction_id, status):
    """Record a payment against a booking."""
    try:
        booking = BookingService.record_payment(
            get_token(), booking_id, amount, payment_type, method, transaction_id, status
        )
        click.echo(f"Payment of {format_money(amount)} recorded.")
        click.echo(f"Fully paid: {'yes' if booking['fully_paid'] else 'no'}")
        click.echo(f"Balance due: {format_money(booking['balance_due'])}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command(name="payment-status")
@click.argument("booking_id")
@click.argument("payment_id")
@click.argument("status", type=click.Choice([s.value for s in PaymentStatus]))
@require_role()
def payment_status(booking_id, payment_id, status):
    """Update the status of a payment."""
    try:
        booking = BookingService.update_payment_status(get_token(), booking_id, payment_id, status)
        click.echo(f"Payment {payment_id} is now {status}.")
        click.echo(f"Fully paid: {'yes' if booking['fully_paid'] else 'no'}")
        click.echo(f"Balance due: {format_money(booking['balance_due'])}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command(name="commission-status")
@click.argument("booking_id")
@click.argument("role", type=click.Choice(ROLES))
@click.argument("status", type=click.Choice([s.value for s in CommissionStatus]))
@require_role(ADMIN_ROLES)
def commission_status(booking_id, role, status):
    """Move a commission along its payout lifecycle."""
    try:
        BookingService.update_commission_status(get_token(), booking_id, role, status)
        click.echo(f"{role} commission on {booking_id} is now {status}.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@click.argument("content")
@require_role()
def note(booking_id, content):
    """Add a note to a booking."""
    try:
        BookingService.add_note(get_token(), booking_id, content)
        click.echo("Note added.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@booking_group.command()
@click.argument("booking_id")
@click.option("--score", type=click.IntRange(1, 5), prompt=True, help="Rating from 1 to 5")
@click.option("--review", help="Review text")
@require_role()
def rate(booking_id, score, review):
    """Rate a completed booking."""
    try:
        BookingService.rate_booking(get_token(), booking_id, score, review)
        click.echo("Thanks for your rating!")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
