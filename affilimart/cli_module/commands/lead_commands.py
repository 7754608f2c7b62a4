"""Lead commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.lead import COMMUNICATION_TYPES, DIRECTIONS, LeadPriority, LeadSource, LeadStatus, LeadType
from affilimart.cli_module.utils import (
    address_options,
    collect_address,
    format_date,
    get_token,
    parse_json,
    require_role,
)
from affilimart.services.lead_service import LeadService


@click.group(name="lead")
def lead_group():
    """Loan, insurance and real estate leads."""
    pass


@lead_group.command()
@click.option("--type", "lead_type", type=click.Choice([t.value for t in LeadType]), prompt=True, help="Lead type")
@click.option("--name", prompt="Customer name", help="Customer name")
@click.option("--email", help="Customer email")
@click.option("--phone", help="Customer phone")
@click.option("--details", callback=parse_json, help="Questionnaire answers as a JSON object")
@click.option("--ref", "affiliate_id", help="Referring affiliate ID")
@click.option("--source", type=click.Choice([s.value for s in LeadSource]), default=LeadSource.QR_SCAN.value,
              help="Where the lead came from")
@click.option("--priority", type=click.Choice([p.value for p in LeadPriority]), default=LeadPriority.MEDIUM.value,
              help="Lead priority")
@address_options
@require_role()
def create(lead_type, name, email, phone, details, affiliate_id, source, priority, **kwargs):
    """Submit a new lead."""
    customer_info = {"name": name, "email": email, "phone": phone, "address": collect_address(kwargs)}
    try:
        lead = LeadService.create_lead(get_token(), lead_type, customer_info, details, affiliate_id, source, priority)
        click.echo(f"Lead {lead['lead_id']} submitted.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@lead_group.command(name="list")
@click.option("--status", type=click.Choice([s.value for s in LeadStatus]), help="Filter by status")
@require_role()
def list_leads(status):
    """List your leads."""
    try:
        leads = LeadService.list_leads(get_token(), status)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not leads:
        click.echo("No leads found.")
        return

    table = [
        [l["lead_id"], l["type"], l["customer_info"]["name"], l["status"], l["priority"],
         format_date(l["created_at"])]
        for l in leads
    ]
    click.echo(tabulate(table, headers=["Lead", "Type", "Customer", "Status", "Priority", "Created"],
                        tablefmt="pretty"))


@lead_group.command()
@click.argument("lead_id")
@click.argument("status", type=click.Choice([s.value for s in LeadStatus]))
@click.option("--reason", help="Closure reason")
@require_role()
def status(lead_id, status, reason):
    """Move a lead to a new status."""
    try:
        LeadService.update_status(get_token(), lead_id, status, reason)
        click.echo(f"Lead {lead_id} is now {status}.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@lead_group.command()
@click.argument("lead_id")
@click.option("--type", "comm_type", type=click.Choice(COMMUNICATION_TYPES), default="call", help="Interaction type")
@click.option("--direction", type=click.Choice(DIRECTIONS), default="outbound", help="Who reached out")
@click.option("--content", prompt=True, help="What was discussed")
@click.option("--follow-up", help="Follow-up date (YYYY-MM-DD)")
@click.option("--outcome", help="Outcome")
@require_role()
def log(lead_id, comm_type, direction, content, follow_up, outcome):
    """Log an interaction with the customer."""
    try:
        lead = LeadService.log_communication(get_token(), lead_id, comm_type, direction, content, follow_up, outcome)
        click.echo(f"Logged. Lead {lead_id} is {lead['status']}.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@lead_group.command()
@click.argument("lead_id")
@click.argument("content")
@require_role()
def note(lead_id, content):
    """Add a note to a lead."""
    try:
        LeadService.add_note(get_token(), lead_id, content)
        click.echo("Note added.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
