"""Settings CLI commands for Freelance Tax.

Manages settings.json - data directory, default taxpayer, paths.
"""

import click
from pathlib import Path

from freelancetax.sdk import (
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_settings_path,
    get_data_path,
    get_default_taxpayer,
)


@click.group()
def settings():
    """Manage settings (settings.json).

    Available settings:
    - data_dir: custom data directory path
    - default_taxpayer: taxpayer used when --taxpayer is omitted
    - profile: path to profile.yaml
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and their effective values."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    click.echo()
    click.echo("Effective values:")
    suffix = "" if "data_dir" in current else " (default)"
    click.echo(f"  data_dir: {get_data_path()}{suffix}")
    click.echo(f"  default_taxpayer: {get_default_taxpayer()}")


@settings.command("default-taxpayer")
@click.argument("taxpayer", required=False)
def settings_default_taxpayer(taxpayer):
    """Show or set the taxpayer used when --taxpayer is omitted."""
    if not taxpayer:
        click.echo(get_default_taxpayer())
        return
    set_setting("default_taxpayer", taxpayer)
    click.echo(f"Set default_taxpayer: {taxpayer}")


@settings.command("data-dir")
@click.argument("path", required=False, type=click.Path())
@click.option("--clear", is_flag=True, help="Clear custom data_dir, revert to default")
def settings_data_dir(path, clear):
    """Set or clear the custom data directory.

    PATH is where freelance-tax stores invoice and expense records.

    Examples:
        freelance-tax settings data-dir ~/finance/freelance-tax
        freelance-tax settings data-dir --clear
    """
    if clear:
        current = load_settings()
        if "data_dir" not in current:
            click.echo("data_dir was not set.")
            return
        del current["data_dir"]
        save_settings(current)
        click.echo("Cleared data_dir setting.")
        click.echo(f"Data directory is now: {get_data_path()} (default)")
        return

    if not path:
        current_data_dir = get_setting("data_dir")
        if current_data_dir:
            click.echo(f"Current data_dir: {current_data_dir}")
        else:
            click.echo(f"No custom data_dir set. Using default: {get_data_path()}")
        return

    data_path = Path(path).expanduser().resolve()
    if data_path.exists() and not data_path.is_dir():
        raise click.ClickException(f"Path exists but is not a directory: {data_path}")
    try:
        data_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Cannot create directory: {data_path}\n{e}")

    set_setting("data_dir", str(data_path))
    click.echo(f"Set data_dir: {data_path}")
    click.echo(f"Saved to: {get_settings_path()}")
