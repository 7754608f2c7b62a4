"""Main CLI entry point for Affilimart application."""

import logging

import click

from affilimart import config

# Set context settings to properly display help for all commands
CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
    "show_default": True
}

from affilimart.cli_module.commands.auth_commands import auth_group
from affilimart.cli_module.commands.affiliate_commands import affiliate_group
from affilimart.cli_module.commands.admin_commands import admin_group
from affilimart.cli_module.commands.catalog_commands import catalog_group
from affilimart.cli_module.commands.booking_commands import booking_group
from affilimart.cli_module.commands.lead_commands import lead_group
from affilimart.cli_module.commands.report_commands import report_group


@click.group(context_settings=CONTEXT_SETTINGS)
def cli():
    """Affilimart CLI for the affiliate services marketplace."""
    pass


# Register all command groups
cli.add_command(auth_group)
cli.add_command(affiliate_group)
cli.add_command(admin_group)
cli.add_command(catalog_group)
cli.add_command(booking_group)
cli.add_command(lead_group)
cli.add_command(report_group)


def main():
    """Entry point for the application."""
    config.setup_logging(console_level=logging.WARNING)
    cli()


if __name__ == '__main__':
    main()
