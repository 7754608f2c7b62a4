"""Authentication commands for the Affilimart CLI."""

import click

from affilimart.errors import MarketplaceError
from affilimart.models.user import UserRole
from affilimart.services.auth_service import ADMIN_KIND, AuthService
from affilimart.cli_module.utils import (
    address_options,
    clear_token,
    collect_address,
    get_token,
    save_token,
)


@click.group(name="auth")
def auth_group():
    """Authentication commands."""
    pass


@auth_group.command()
@click.option("--name", prompt=True, help="Your full name")
@click.option("--email", prompt=True, help="Your email address")
@click.option("--phone", prompt=True, help="Your phone number")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Your password")
@click.option("--role", type=click.Choice([UserRole.CUSTOMER.value, UserRole.SERVICE_PROVIDER.value]),
              default=UserRole.CUSTOMER.value, help="Account type")
@address_options
def register(name, email, phone, password, role, **kwargs):
    """Register as a customer or service provider."""
    try:
        result = AuthService.register_user(name, email, phone, password, role, collect_address(kwargs))
        save_token(result["token"])
        click.echo(f"{name} registered successfully as {role}!")
        click.echo("You are now logged in.")
    except MarketplaceError as e:
        click.echo(f"Error during registration: {str(e)}", err=True)


@auth_group.command()
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, help="Your password")
def login(email, password):
    """Log in with credentials."""
    try:
        result = AuthService.login(email, password)
        save_token(result["token"])
        user = result["user"]
        click.echo(f"Welcome back, {user['name']}!")
        click.echo(f"You are logged in as {user['role'].replace('_', ' ')}.")
    except MarketplaceError as e:
        click.echo(f"Error during login: {str(e)}", err=True)


@auth_group.command()
def logout():
    """Log out from the application."""
    if clear_token():
        click.echo("You have been logged out.")
    else:
        click.echo("You were not logged in.")


@auth_group.command()
def whoami():
    """Show who is signed in."""
    token = get_token()
    if not token:
        click.echo("You are not signed in.", err=True)
        return

    try:
        principal = AuthService.verify_token(token)
        if principal["kind"] == ADMIN_KIND:
            admin = AuthService.get_current_admin(token)
            click.echo(f"Signed in as admin: {admin.name}")
            click.echo(f"Email: {admin.email}")
            click.echo(f"Role: {admin.role.value}")
            region = ", ".join(p for p in (admin.district, admin.state, admin.country) if p)
            if region:
                click.echo(f"Region: {region}")
            return

        user = AuthService.get_current_user(token)
        click.echo(f"Signed in as: {user.name}")
        click.echo(f"Email: {user.email}")
        click.echo(f"Phone: {user.phone}")
        click.echo(f"Role: {user.role.value}")
        if user.is_affiliate:
            click.echo(f"Partner ID: {user.affiliate_info.partner_id}")
        click.echo(f"Account created: {user.created_at}")
    except MarketplaceError as e:
        click.echo(f"Session error: {str(e)}", err=True)
        click.echo("Please log in again.")
