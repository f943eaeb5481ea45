"""Freelance Tax CLI - Command-line interface for B2B tax calculations."""

import logging
import os

import click

from freelancetax import __version__

from .profile_commands import profile as profile_group
from .records_commands import records_cli as records_group
from .settings_commands import settings as settings_group
from .tax_commands import tax as tax_group


@click.group()
@click.version_option(version=__version__, prog_name="freelance-tax")
def cli():
    """Freelance Tax - PIT, ZUS and health insurance for Polish B2B freelancers.

    Calculates monthly and yearly taxes from your invoice and expense
    records under the FLAT, PROGRESSIVE or LUMPSUM regime.

    Configuration is loaded from (in order):

    \b
    1. FREELANCE_TAX_CONFIG_PATH environment variable
    2. settings.json 'profile' key
    3. ~/.config/freelance-tax/profile.yaml (XDG default)

    Run 'freelance-tax profile show' to see taxpayer settings.
    """
    pass


cli.add_command(tax_group)
cli.add_command(profile_group)
cli.add_command(settings_group)
cli.add_command(records_group, name="records")


def main():
    """Entry point for the CLI."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    cli()


if __name__ == "__main__":
    main()
