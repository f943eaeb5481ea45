"""Profile CLI commands: per-taxpayer tax settings in profile.yaml."""

import click
import yaml

from freelancetax.sdk import (
    ContributionPlan,
    ProfileSettingsProvider,
    Regime,
    TaxConfigurationError,
    get_default_taxpayer,
    get_profile_path,
    get_profile_value,
)


def _show_settings(taxpayer: str, settings) -> None:
    data = {taxpayer: settings.model_dump(mode="json", exclude_none=True)}
    click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False).rstrip())


@click.group()
def profile():
    """Manage taxpayer settings (profile.yaml).

    Each taxpayer has a tax regime (FLAT, PROGRESSIVE, LUMPSUM) and a
    ZUS contribution plan (STANDARD, REDUCED_PLUS, PREFERENTIAL, CUSTOM).
    A taxpayer seen for the first time gets FLAT and STANDARD.
    """
    pass


@profile.command("show")
@click.option("--taxpayer", "-t", default=None, help="Show only this taxpayer.")
def profile_show(taxpayer):
    """Show the profile location and each taxpayer's settings."""
    profile_path = get_profile_path(require_exists=False)
    click.echo(f"Profile: {profile_path}")

    provider = ProfileSettingsProvider()
    taxpayers = [taxpayer] if taxpayer else provider.list_taxpayers()

    if not taxpayers:
        click.echo()
        click.echo("No taxpayers configured yet. Create one with:")
        click.echo("  freelance-tax profile set --regime FLAT")
        return

    click.echo()
    for taxpayer_id in taxpayers:
        try:
            _show_settings(taxpayer_id, provider.get_settings(taxpayer_id))
        except TaxConfigurationError as e:
            raise click.ClickException(str(e))


@profile.command("set")
@click.option("--taxpayer", "-t", default=None, help="Taxpayer id (default: default_taxpayer).")
@click.option("--regime", type=click.Choice([r.value for r in Regime], case_sensitive=False),
              help="Income tax regime.")
@click.option("--plan", "contribution_plan",
              type=click.Choice([p.value for p in ContributionPlan], case_sensitive=False),
              help="ZUS contribution plan.")
@click.option("--lumpsum-rate", type=float, help="Custom LUMPSUM rate in percent (e.g. 8.5).")
@click.option("--zus-override", type=float, help="Monthly ZUS amount for the CUSTOM plan.")
@click.option("--clear-lumpsum-rate", is_flag=True, help="Use the default LUMPSUM rate again.")
@click.option("--clear-zus-override", is_flag=True, help="Remove the CUSTOM plan amount.")
def profile_set(taxpayer, regime, contribution_plan, lumpsum_rate, zus_override,
                clear_lumpsum_rate, clear_zus_override):
    """Change a taxpayer's tax settings.

    Examples:
        freelance-tax profile set --regime LUMPSUM --lumpsum-rate 12
        freelance-tax profile set -t anna --plan CUSTOM --zus-override 900
    """
    taxpayer = taxpayer or get_default_taxpayer()

    changes = {}
    if regime:
        changes["regime"] = regime.upper()
    if contribution_plan:
        changes["contribution_plan"] = contribution_plan.upper()
    if lumpsum_rate is not None:
        changes["custom_lumpsum_rate_percent"] = lumpsum_rate
    if zus_override is not None:
        changes["custom_zus_override"] = zus_override
    if clear_lumpsum_rate:
        changes["custom_lumpsum_rate_percent"] = None
    if clear_zus_override:
        changes["custom_zus_override"] = None

    if not changes:
        raise click.UsageError("Nothing to change. See 'freelance-tax profile set --help'.")

    provider = ProfileSettingsProvider()
    try:
        updated = provider.update_settings(taxpayer, **changes)
    except TaxConfigurationError as e:
        raise click.ClickException(str(e))

    click.echo(f"Updated settings for {taxpayer}")
    click.echo(f"Saved to: {get_profile_path(require_exists=False)}")
    _show_settings(taxpayer, updated)


@profile.command("get")
@click.argument("key")
def profile_get(key):
    """Get a profile value.

    KEY is a dot-notation path like 'taxpayers.default.regime'.
    """
    value = get_profile_value(key)
    if value is None:
        raise click.ClickException(f"Key '{key}' not found in profile")

    if isinstance(value, (dict, list)):
        click.echo(yaml.dump(value, default_flow_style=False, sort_keys=False).rstrip())
    else:
        click.echo(value)
