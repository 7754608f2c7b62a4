"""Catalog commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.admin import AdminRole
from affilimart.models.user import UserRole
from affilimart.services.catalog_service import CatalogService
from affilimart.cli_module.utils import format_money, get_token, parse_json, require_role

ADMIN_ROLES = [role.value for role in AdminRole]


@click.group(name="catalog")
def catalog_group():
    """Categories, templates and services."""
    pass


@catalog_group.command()
@click.option("--name", prompt=True, help="Category name")
@click.option("--description", prompt=True, help="Category description")
@require_role([AdminRole.SUPER_ADMIN.value])
def category(name, description):
    """Create a category."""
    try:
        created = CatalogService.create_category(get_token(), name, description)
        click.echo(f"Category '{created['name']}' created with ID {created['id']}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@catalog_group.command()
def categories():
    """List categories."""
    try:
        items = CatalogService.list_categories()
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not items:
        click.echo("No categories found.")
        return
    click.echo(tabulate([[c["id"], c["name"], c["description"]] for c in items],
                        headers=["ID", "Name", "Description"], tablefmt="pretty"))


@catalog_group.command()
@click.option("--name", prompt=True, help="Template name")
@click.option("--type", "template_type", type=click.Choice(["A", "B", "C"]), prompt=True, help="Template type")
@click.option("--category-id", prompt=True, help="Category ID")
@click.option("--commission", callback=parse_json, prompt=True,
              help='Default commission structure as JSON, e.g. {"affiliate_commission": 10}')
@click.option("--fields", callback=parse_json, help="Default booking fields as a JSON list")
@require_role([AdminRole.SUPER_ADMIN.value])
def template(name, template_type, category_id, commission, fields):
    """Create a listing template."""
    try:
        created = CatalogService.create_template(get_token(), name, template_type, category_id, commission, fields)
        click.echo(f"Template '{created['name']}' created with ID {created['id']}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@catalog_group.command()
@click.option("--title", prompt=True, help="Service title")
@click.option("--template-id", prompt=True, help="Template ID")
@click.option("--price", type=float, prompt=True, help="Base price")
@click.option("--discount", type=float, default=0.0, help="Discount percentage")
@click.option("--rules", callback=parse_json,
              help='Dynamic pricing rules as JSON, e.g. [{"condition": "weekend", "adjustment": 10, "is_percentage": true}]')
@click.option("--commission", callback=parse_json, help="Commission structure as JSON (defaults to the template's)")
@click.option("--fields", callback=parse_json, help="Booking fields as a JSON list (defaults to the template's)")
@click.option("--district", help="Service district")
@click.option("--state", help="Service state")
@click.option("--country", help="Service country")
@require_role([UserRole.SERVICE_PROVIDER.value])
def service(title, template_id, price, discount, rules, commission, fields, district, state, country):
    """List a new service as a draft."""
    try:
        created = CatalogService.create_service(
            get_token(), title, template_id, price,
            discount_percentage=discount,
            is_dynamic_pricing=bool(rules),
            dynamic_pricing_rules=rules,
            commission_structure=commission,
            booking_fields=fields,
            location={"district": district, "state": state, "country": country},
        )
        click.echo(f"Service '{created['title']}' saved as draft with ID {created['id']}")
        click.echo("Use 'affilimart catalog submit' to send it for approval.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@catalog_group.command()
@click.argument("service_id")
@require_role([UserRole.SERVICE_PROVIDER.value])
def submit(service_id):
    """Submit a service for approval."""
    try:
        CatalogService.submit_service(get_token(), service_id)
        click.echo(f"Service {service_id} submitted for approval.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@catalog_group.command()
@click.argument("service_id")
@click.option("--approve/--reject", default=True, help="Approve or reject the service")
@click.option("--reason", help="Rejection reason")
@require_role(ADMIN_ROLES)
def review(service_id, approve, reason):
    """Approve or reject a service."""
    try:
        reviewed = CatalogService.review_service(get_token(), service_id, approve, reason)
        click.echo(f"Service {service_id} is now {reviewed['status']}.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@catalog_group.command()
@click.argument("service_id")
@click.option("--date", help="Booking date (YYYY-MM-DD)")
@click.option("--people", type=int, help="Group size")
def quote(service_id, date, people):
    """Quote the price of a service."""
    try:
        result = CatalogService.quote_price(service_id, date, people)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    click.echo(f"{result['title']}")
    click.echo(f"Base price: {format_money(result['base_price'])}")
    if result["discount_percentage"]:
        click.echo(f"Discount: {result['discount_percentage']}%")
    click.echo(f"Final price: {format_money(result['final_price'])}")
