"""Rich renderer for tax results.

Transforms SDK result models into formatted Rich tables.
"""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from freelancetax.sdk.schemas import MonthlyTaxResult, TaxDashboard, YearlySummary, YearlyTotals

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def _pln(amount: float) -> str:
    return f"{amount:,.2f}"


def render_monthly_result(console: Console, result: MonthlyTaxResult) -> None:
    """Render one month: invoices, then the tax breakdown."""
    title = f"{MONTH_NAMES[result.month - 1]} {result.year}"

    if result.invoices:
        invoices = Table(title=f"Invoices - {title}", box=box.SIMPLE)
        invoices.add_column("ID", style="dim")
        invoices.add_column("Label")
        invoices.add_column("Amount", justify="right")
        invoices.add_column("PLN", justify="right")
        for item in result.invoices:
            invoices.add_row(
                item.id,
                item.label or "",
                f"{_pln(item.amount)} {item.currency}",
                _pln(item.amount_pln),
            )
        console.print(invoices)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("item", style="dim")
    table.add_column("amount", justify="right")

    table.add_row("Gross income (PLN)", _pln(result.gross_income_pln))
    table.add_row("Expenses", _pln(result.total_expenses))
    table.add_row("Deductible expenses", _pln(result.deductible_expenses))
    table.add_row("Tax base", _pln(result.tax_base))
    table.add_row("", "")
    table.add_row("PIT", _pln(result.pit))
    table.add_row("ZUS", _pln(result.zus))
    table.add_row("Health insurance", _pln(result.health_insurance))
    table.add_row("[bold]Total due[/bold]", f"[bold]{_pln(result.total_tax_due)}[/bold]")
    table.add_row("Net income", _pln(result.net_income))
    table.add_row("Effective rate", f"{result.effective_tax_rate:.2f}%")
    table.add_row("", "")
    table.add_row("YTD income", _pln(result.ytd_income))
    table.add_row("YTD tax base", _pln(result.ytd_tax_base))
    table.add_row("YTD PIT", _pln(result.ytd_pit))

    console.print(Panel(table, title=title, border_style="cyan"))


def _totals_row(totals: YearlyTotals) -> list:
    return [
        "[bold]Total[/bold]",
        _pln(totals.gross_income_pln),
        _pln(totals.deductible_expenses),
        _pln(totals.tax_base),
        _pln(totals.pit),
        _pln(totals.zus),
        _pln(totals.health_insurance),
        f"[bold]{_pln(totals.total_tax_due)}[/bold]",
        _pln(totals.net_income),
        f"{totals.effective_tax_rate:.2f}%",
    ]


def render_yearly_summary(console: Console, summary: YearlySummary) -> None:
    """Render a year as one row per month plus totals."""
    table = Table(
        title=f"{summary.year} - {summary.regime.value}, ZUS {summary.contribution_plan.value}",
        expand=True,
    )
    for header in ("Month", "Income", "Deductible", "Base", "PIT", "ZUS", "Health", "Total", "Net", "Rate"):
        table.add_column(header, justify="left" if header == "Month" else "right")

    for m in summary.months:
        table.add_row(
            MONTH_NAMES[m.month - 1],
            _pln(m.gross_income_pln),
            _pln(m.deductible_expenses),
            _pln(m.tax_base),
            _pln(m.pit),
            _pln(m.zus),
            _pln(m.health_insurance),
            _pln(m.total_tax_due),
            _pln(m.net_income),
            f"{m.effective_tax_rate:.2f}%",
        )

    table.add_section()
    table.add_row(*_totals_row(summary.totals))
    console.print(table)


def render_dashboard(console: Console, dashboard: TaxDashboard) -> None:
    """Render the dashboard: settings, current month and year to date."""
    settings = dashboard.settings
    info = f"Regime: [bold]{settings.regime.value}[/bold]   ZUS: [bold]{settings.contribution_plan.value}[/bold]"
    if settings.regime.value == "LUMPSUM" and settings.lumpsum_rate_percent is not None:
        info += f"   Rate: {settings.lumpsum_rate_percent:.2f}%"
    console.print(Panel(info, title="Settings", border_style="dim"))

    render_monthly_result(console, dashboard.current_month)

    totals = dashboard.year_to_date
    ytd = Table(show_header=False, box=None, padding=(0, 2))
    ytd.add_column("item", style="dim")
    ytd.add_column("amount", justify="right")
    ytd.add_row("Income", _pln(totals.gross_income_pln))
    ytd.add_row("Taxes and contributions", _pln(totals.total_tax_due))
    ytd.add_row("Net income", _pln(totals.net_income))
    ytd.add_row("Effective rate", f"{totals.effective_tax_rate:.2f}%")
    console.print(Panel(ytd, title="Year to date", border_style="green"))
    console.print(f"[dim]Updated {dashboard.last_updated:%Y-%m-%d %H:%M}[/dim]")
