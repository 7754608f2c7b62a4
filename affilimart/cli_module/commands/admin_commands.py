"""Admin commands for the Affilimart CLI."""

import click
from tabulate import tabulate

from affilimart.errors import MarketplaceError
from affilimart.models.admin import AdminRole
from affilimart.services.admin_service import AdminService
from affilimart.services.auth_service import AuthService
from affilimart.cli_module.utils import format_date, get_token, require_role, save_token

ADMIN_ROLES = [role.value for role in AdminRole]
MANAGER_ROLES = [AdminRole.SUPER_ADMIN.value, AdminRole.NSA.value, AdminRole.SSA.value]


@click.group(name="admin")
def admin_group():
    """Admin hierarchy commands."""
    pass


@admin_group.command()
@click.option("--name", prompt=True, help="Super admin name")
@click.option("--email", prompt=True, help="Super admin email")
@click.option("--phone", prompt=True, help="Super admin phone")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Super admin password")
def bootstrap(name, email, phone, password):
    """Create the first super admin."""
    try:
        admin = AdminService.bootstrap_super_admin(name, email, phone, password)
        click.echo(f"Super admin {admin['email']} created. Use 'affilimart admin login' to sign in.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@admin_group.command()
@click.option("--email", prompt=True, help="Admin email")
@click.option("--password", prompt=True, hide_input=True, help="Admin password")
def login(email, password):
    """Log in as an admin."""
    try:
        result = AuthService.admin_login(email, password)
        save_token(result["token"])
        click.echo(f"Welcome back, {result['admin']['name']}!")
        click.echo(f"You are logged in as {result['admin']['role']}.")
    except MarketplaceError as e:
        click.echo(f"Error during login: {str(e)}", err=True)


@admin_group.command()
@click.option("--name", prompt=True, help="Admin name")
@click.option("--email", prompt=True, help="Admin email")
@click.option("--phone", prompt=True, help="Admin phone")
@click.option("--password", prompt=True, hide_input=True, help="Initial password")
@click.option("--role", type=click.Choice(ADMIN_ROLES[1:]), prompt=True, help="Admin role")
@click.option("--district", help="District (DSA)")
@click.option("--state", help="State (SSA, DSA)")
@click.option("--country", help="Country")
@click.option("--commission-rate", type=float, default=0.0, help="Commission rate")
@require_role(MANAGER_ROLES)
def create(name, email, phone, password, role, district, state, country, commission_rate):
    """Create a regional admin."""
    try:
        admin = AdminService.create_admin(
            get_token(), name, email, phone, password, role,
            district=district, state=state, country=country, commission_rate=commission_rate,
        )
        click.echo(f"{admin['role'].upper()} {admin['name']} created with ID {admin['id']}")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@admin_group.command()
@click.argument("admin_id")
@require_role(MANAGER_ROLES)
def deactivate(admin_id):
    """Deactivate an admin."""
    try:
        admin = AdminService.deactivate_admin(get_token(), admin_id)
        click.echo(f"Admin {admin['email']} deactivated.")
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@admin_group.command(name="list")
@click.option("--role", type=click.Choice(ADMIN_ROLES), help="Filter by role")
@require_role(ADMIN_ROLES)
def list_admins(role):
    """List admins in your territory."""
    try:
        admins = AdminService.list_admins(get_token(), role)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if not admins:
        click.echo("No admins found.")
        return

    table = [
        [a["id"][:8], a["name"], a["email"], a["role"], a.get("district") or "-", a.get("state") or "-",
         a.get("country") or "-", "yes" if a.get("is_active") else "no", format_date(a.get("created_at"))]
        for a in admins
    ]
    click.echo(tabulate(
        table,
        headers=["ID", "Name", "Email", "Role", "District", "State", "Country", "Active", "Created"],
        tablefmt="pretty",
    ))


@admin_group.command()
@click.option("--district", help="District")
@click.option("--state", help="State")
@click.option("--country", help="Country")
@require_role(ADMIN_ROLES)
def region(district, state, country):
    """Show the admins responsible for a region."""
    try:
        chain = AdminService.region_chain(district, state, country)
    except MarketplaceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    table = [
        [role.upper(), admin["name"] if admin else "-", admin["email"] if admin else "-"]
        for role, admin in chain.items()
    ]
    click.echo(tabulate(table, headers=["Role", "Name", "Email"], tablefmt="pretty"))
