"""Report commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.admin import AdminRole
from affilimart.services.report_service import ReportService
from affilimart.cli_module.utils import format_money, get_token, require_role

ADMIN_ROLES = [role.value for role in AdminRole]


@click.group(name="report")
def report_group():
    """Admin reports."""
    pass


@report_group.command()
@require_role(ADMIN_ROLES)
def commission():
    """Commission totals by role and payout status."""
    try:
        report = ReportService.commission_report(get_token())
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    click.echo(f"Bookings with commissions: {report['bookings']}")
    table = []
    for role, summary in report["roles"].items():
        statuses = ", ".join(f"{s}: {format_money(a)}" for s, a in sorted(summary["by_status"].items()))
        table.append([role, format_money(summary["total"]), statuses or "-"])
    click.echo(tabulate(table, headers=["Role", "Total", "By status"], tablefmt="pretty"))


@report_group.command()
@require_role(ADMIN_ROLES)
def leads():
    """Lead counts and win rate by type."""
    try:
        report = ReportService.lead_conversion_report(get_token())
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not report:
        click.echo("No leads found.")
        return

    table = [
        [lead_type, summary["total"],
         f"{summary['win_rate'] * 100:.1f}%" if summary["win_rate"] is not None else "-"]
        for lead_type, summary in sorted(report.items())
    ]
    click.echo(tabulate(table, headers=["Type", "Leads", "Win rate"], tablefmt="pretty"))
