"""Utility functions for the CLI interface."""

from functools import wraps
import os
import json
from typing import Optional, List

import click

from affilimart.errors import AuthError
from affilimart.services.auth_service import AuthService

# Config file to store auth token
CONFIG_DIR = os.path.expanduser("~/.affilimart")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")


def save_token(token: str) -> None:
    """Save auth token to config file."""
    if not os.path.exists(CONFIG_DIR):
        os.makedirs(CONFIG_DIR)

    with open(CONFIG_FILE, 'w') as f:
        json.dump({"token": token}, f)


def get_token() -> Optional[str]:
    """Get auth token from config file."""
    if not os.path.exists(CONFIG_FILE):
        return None

    try:
        with open(CONFIG_FILE, 'r') as f:
            config = json.load(f)
            return config.get("token")
    except json.JSONDecodeError:
        return None


def clear_token() -> bool:
    """Remove the saved token. Returns False if there was none."""
    if not os.path.exists(CONFIG_FILE):
        return False
    os.remove(CONFIG_FILE)
    return True


def require_role(roles: Optional[List[str]] = None):
    """
    Decorator requiring a signed in user or admin, optionally with one of ``roles``.
    """
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            token = get_token()
            if not token:
                click.echo("You are not signed in. Please sign in first.", err=True)
                return

            try:
                if roles:
                    AuthService.require_role(token, roles)
                else:
                    AuthService.verify_token(token)
            except AuthError as e:
                click.echo(f"Access denied: {str(e)}", err=True)
                return

            return f(*args, **kwargs)
        return wrapped
    return decorator


def parse_json(ctx, param, value):
    """Click callback turning a JSON option into Python data."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {str(e)}")


def address_options(f):
    """Add the postal address options to a command."""
    for name in reversed(("street", "city", "district", "state", "pincode", "country")):
        f = click.option(f"--{name}", help=f"Address {name}")(f)
    return f


def collect_address(kwargs) -> dict:
    """Pop the address options out of a command's kwargs."""
    return {
        name: kwargs.pop(name)
        for name in ("street", "city", "district", "state", "pincode", "country")
    }


def format_money(amount) -> str:
    return f"{amount:,.2f}" if amount is not None else "-"


def format_date(value: Optional[str]) -> str:
    return value.replace("T", " ")[:16] if value else "-"
