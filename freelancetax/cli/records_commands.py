"""Records command group for invoice and expense management."""

import json
from pathlib import Path
from typing import Optional

import click
import yaml

from freelancetax.sdk import get_default_taxpayer, records


def format_record_row(record: dict) -> str:
    """Format a record as a table row."""
    meta = record.get("meta") or {}
    data = record.get("data") or {}
    rec_type = meta.get("type", "unknown")
    period = f"{meta.get('year', '?')}-{meta.get('month', 0):02d}"

    if rec_type == "invoice":
        label = (data.get("label") or data.get("client") or data.get("number") or "")[:24]
        amount = f"{data.get('amount', 0):>12,.2f} {data.get('currency', ''):<3}"
        status = data.get("status", "")
        if data.get("archived"):
            status += " (archived)"
        return f"{record['id']:<10} {period:<8} {'invoice':<8} {label:<24} {amount} {status}"

    if rec_type == "expense":
        label = (data.get("name") or "")[:24]
        amount = f"{data.get('amount_pln', 0):>12,.2f} PLN"
        deductible = f"{data.get('deductible_percent', 0):g}% deductible" if data.get("is_deductible") else "not deductible"
        return f"{record['id']:<10} {period:<8} {'expense':<8} {label:<24} {amount} {deductible}"

    return f"{record['id']:<10} {period:<8} {rec_type:<8}"


@click.group()
def records_cli():
    """Manage invoice and expense records.

    Records are stored in <data_dir>/records/<taxpayer>/<year>/.

    \b
    Examples:
      freelance-tax records import ./2024.yaml
      freelance-tax records list 2024
      freelance-tax records list 2024 --month 3 --type invoice
      freelance-tax records remove abc12345
    """
    pass


@records_cli.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--taxpayer", "-t", default=None, help="Taxpayer the records belong to.")
def records_import(source: Path, taxpayer: Optional[str]):
    """Import invoices and expenses from a JSON or YAML file.

    \b
    The file holds either a mapping:
      invoices: [{amount, currency, issue_date, status, ...}]
      expenses: [{name, amount_pln, expense_date, ...}]
    or a list of entries, each with "type": "invoice" or "expense".
    """
    taxpayer = taxpayer or get_default_taxpayer()
    try:
        result = records.import_records(source, taxpayer)
    except records.RecordValidationError as e:
        raise click.ClickException(str(e))
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot read {source}: {e}")

    for error in result["errors"]:
        click.echo(click.style(f"  ✗ {error}", fg="red"), err=True)
    click.echo(f"Imported {len(result['added'])} record(s) for {taxpayer}")
    if result["errors"]:
        click.echo(f"Skipped {len(result['errors'])} invalid entr{'y' if len(result['errors']) == 1 else 'ies'}")


@records_cli.command("list")
@click.argument("year", type=int, required=False)
@click.option("--month", "-m", type=click.IntRange(1, 12), help="Filter by month.")
@click.option("--type", "type_filter", type=click.Choice(list(records.RECORD_TYPES)),
              help="Filter by record type.")
@click.option("--taxpayer", "-t", default=None, help="Taxpayer id.")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def records_list(year: Optional[int], month: Optional[int], type_filter: Optional[str],
                 taxpayer: Optional[str], output_format: str):
    """List records, optionally for one YEAR."""
    taxpayer = taxpayer or get_default_taxpayer()
    all_records = records.list_records(taxpayer, year=year, month=month, type_filter=type_filter)

    if output_format == "json":
        output = [{"id": r["id"], "meta": r.get("meta"), "data": r.get("data")} for r in all_records]
        click.echo(json.dumps(output, indent=2))
        return

    if not all_records:
        click.echo(f"No records found for {taxpayer}")
        click.echo("\nRun 'freelance-tax records import' to import records.")
        return

    click.echo(f"{'ID':<10} {'PERIOD':<8} {'TYPE':<8} {'LABEL':<24} {'AMOUNT':>16}")
    click.echo("-" * 80)
    for rec in all_records:
        click.echo(format_record_row(rec))
    click.echo("-" * 80)
    click.echo(f"Total: {len(all_records)} record(s)")


@records_cli.command("show")
@click.argument("record_id")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def records_show(record_id: str, output_format: str):
    """Show details of a single record.

    \b
    Arguments:
      RECORD_ID    The 8-character record ID (from 'records list')
    """
    record = records.get_record(record_id)
    if not record:
        raise click.ClickException(f"Record not found: {record_id}")

    if output_format == "json":
        output = {"id": record.get("id"), "meta": record.get("meta"), "data": record.get("data")}
        click.echo(json.dumps(output, indent=2))
        return

    meta = record.get("meta", {})
    click.echo(f"Record: {record_id}")
    click.echo("-" * 40)
    click.echo(f"Type: {meta.get('type', 'unknown')}")
    click.echo(f"Taxpayer: {meta.get('taxpayer', 'unknown')}")
    click.echo(f"Period: {meta.get('year', '?')}-{meta.get('month', 0):02d}")
    click.echo(f"Imported: {meta.get('imported_at', 'unknown')}")
    click.echo("\nData:")
    click.echo(json.dumps(record.get("data", {}), indent=2))


@records_cli.command("remove")
@click.argument("record_id")
@click.option("--force", is_flag=True, help="Skip confirmation prompt.")
def records_remove(record_id: str, force: bool):
    """Remove a record by ID."""
    record = records.get_record(record_id)
    if not record:
        raise click.ClickException(f"Record not found: {record_id}")

    click.echo(f"Will remove: {format_record_row(record).strip()}")
    if not force:
        click.confirm("Proceed?", abort=True)

    if records.remove_record(record_id):
        click.echo(click.style(f"Removed record {record_id}", fg="green"))
    else:
        raise click.ClickException(f"Failed to remove record {record_id}")
