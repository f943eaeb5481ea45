"""Tax calculation CLI commands."""

import json
from datetime import date

import click
from rich.console import Console

from freelancetax.sdk import (
    ConfigNotFoundError,
    ConversionUnavailable,
    TaxConfigurationError,
    YearlyCalculationError,
    default_calculator,
    get_default_taxpayer,
    load_tax_rules,
)

CALCULATION_ERRORS = (
    ConversionUnavailable,
    YearlyCalculationError,
    TaxConfigurationError,
    ConfigNotFoundError,
)

taxpayer_option = click.option(
    "--taxpayer", "-t", default=None,
    help="Taxpayer id (default: settings.json default_taxpayer or 'default').",
)
json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON.")


def _calculator(ctx: click.Context):
    """Calculator from the context object (tests inject one), else the default."""
    obj = ctx.find_root().obj or {}
    return obj.get("calculator") or default_calculator()


def _echo_json(model) -> None:
    click.echo(json.dumps(model.model_dump(mode="json"), indent=2))


@click.group("tax")
def tax():
    """Calculate PIT, ZUS and health insurance.

    \b
    Income comes from invoice records (SENT or PAID, not archived),
    expenses from expense records. Import them with:
      freelance-tax records import <file>
    """
    pass


@tax.command("month")
@click.argument("year", type=int)
@click.argument("month", type=click.IntRange(1, 12))
@taxpayer_option
@json_option
@click.pass_context
def tax_month(ctx, year, month, taxpayer, as_json):
    """Show taxes for one MONTH (1-12) of YEAR."""
    from .renderers.tax_renderer import render_monthly_result

    taxpayer = taxpayer or get_default_taxpayer()
    try:
        result = _calculator(ctx).calculate_monthly_tax(taxpayer, month, year)
    except CALCULATION_ERRORS as e:
        raise click.ClickException(str(e))

    if as_json:
        _echo_json(result)
    else:
        render_monthly_result(Console(), result)


@tax.command("year")
@click.argument("year", type=int)
@taxpayer_option
@json_option
@click.pass_context
def tax_year(ctx, year, taxpayer, as_json):
    """Show every month of YEAR (up to the current month) with totals."""
    from .renderers.tax_renderer import render_yearly_summary

    taxpayer = taxpayer or get_default_taxpayer()
    try:
        summary = _calculator(ctx).calculate_yearly_summary(taxpayer, year)
    except YearlyCalculationError as e:
        for month, reason in e.failed_months.items():
            click.echo(f"  {year}-{month:02d}: {reason}", err=True)
        raise click.ClickException(
            f"{len(e.failed_months)} month(s) of {year} could not be calculated"
        )
    except CALCULATION_ERRORS as e:
        raise click.ClickException(str(e))

    if as_json:
        _echo_json(summary)
    else:
        render_yearly_summary(Console(width=140), summary)


@tax.command("dashboard")
@taxpayer_option
@json_option
@click.pass_context
def tax_dashboard(ctx, taxpayer, as_json):
    """Show the current month and year-to-date totals."""
    from .renderers.tax_renderer import render_dashboard

    taxpayer = taxpayer or get_default_taxpayer()
    try:
        dashboard = _calculator(ctx).get_tax_dashboard(taxpayer)
    except CALCULATION_ERRORS as e:
        raise click.ClickException(str(e))

    if as_json:
        _echo_json(dashboard)
    else:
        render_dashboard(Console(), dashboard)


@tax.command("rules")
@click.argument("year", type=int, required=False)
@json_option
def tax_rules(year, as_json):
    """Show tax rates, contribution amounts and deadlines for YEAR."""
    year = year or date.today().year
    try:
        rules = load_tax_rules(year)
    except (TaxConfigurationError, ConfigNotFoundError) as e:
        raise click.ClickException(str(e))

    if as_json:
        _echo_json(rules)
        return

    pit = rules.pit
    click.echo(f"Tax rules for {year} (from {rules.year} rules)")
    click.echo()
    click.echo("PIT:")
    click.echo(f"  FLAT:        {pit.flat_rate:.0%}")
    click.echo(
        f"  PROGRESSIVE: {pit.progressive.lower_rate:.0%} up to "
        f"{pit.progressive.threshold:,.0f}, {pit.progressive.upper_rate:.0%} above; "
        f"allowance {pit.progressive.tax_free_allowance:,.0f}"
    )
    click.echo(f"  LUMPSUM:     {pit.lumpsum.default_rate:.0%} default")
    for activity, rate in pit.lumpsum.rates.items():
        click.echo(f"    {activity}: {rate:.1%}")
    click.echo()
    click.echo("ZUS (monthly):")
    click.echo(f"  STANDARD:     {rules.zus.standard:,.2f}")
    click.echo(f"  REDUCED_PLUS: {rules.zus.reduced_plus:,.2f}")
    click.echo(f"  PREFERENTIAL: {rules.zus.preferential:,.2f}")
    click.echo()
    health = rules.health
    click.echo("Health insurance:")
    click.echo(f"  FLAT {health.flat_rate:.1%}, PROGRESSIVE {health.progressive_rate:.0%}, "
               f"minimum {health.minimum:,.2f}")
    for bracket in health.lumpsum.brackets:
        bound = f"up to {bracket.max_revenue:,.0f}" if bracket.max_revenue is not None else "above"
        amount = health.lumpsum.reference_wage * bracket.multiplier * health.lumpsum.rate
        click.echo(f"  LUMPSUM revenue {bound}: {amount:,.2f}")
    if rules.deadlines:
        click.echo()
        click.echo("Deadlines (day of following month):")
        click.echo(f"  PIT advance: {rules.deadlines.pit_advance}")
        click.echo(f"  ZUS:         {rules.deadlines.zus}")
        click.echo(f"  VAT:         {rules.deadlines.vat_monthly}")
