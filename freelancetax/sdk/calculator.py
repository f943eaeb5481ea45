"""Monthly, yearly and dashboard tax results.

TaxCalculator assembles the aggregators, the PIT engine and the contribution
calculator into MonthlyTaxResult, YearlySummary and TaxDashboard. Rounding to
2 decimals happens here and nowhere earlier.

Each month re-derives its own YTD figures from the ledger, so months can be
computed in any order; yearly results are still returned in month order.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

from .aggregation import (
    ExpenseSummary,
    IncomeSummary,
    YtdSnapshot,
    accumulate_ytd,
    aggregate_expenses,
    aggregate_income,
    taxable_base,
)
from .currency import CachingConversionProvider, ConversionUnavailable, CurrencyConversionProvider
from .ledger import LedgerSource
from .schemas import (
    MonthlyTaxResult,
    SettingsSnapshot,
    TaxDashboard,
    TaxSettings,
    YearlySummary,
    YearlyTotals,
    round_money,
)
from .settings_store import SettingsProvider
from .taxes.contributions import calculate_health_insurance, calculate_zus
from .taxes.engine import calculate_pit, lumpsum_rate
from .taxes.rules import load_tax_rules
from .taxes.schemas import TaxRules

logger = logging.getLogger(__name__)

# Monetary fields summed into YearlyTotals
_SUMMED_FIELDS = (
    "gross_income",
    "gross_income_pln",
    "total_expenses",
    "deductible_expenses",
    "tax_base",
    "pit",
    "zus",
    "health_insurance",
    "total_tax_due",
    "net_income",
)


class YearlyCalculationError(Exception):
    """Raised when one or more months of a year could not be calculated."""

    def __init__(self, year: int, failed_months: Dict[int, str]):
        self.year = year
        self.failed_months = dict(sorted(failed_months.items()))
        details = ", ".join(f"{m:02d}: {reason}" for m, reason in self.failed_months.items())
        super().__init__(f"Could not calculate {year} month(s) {details}")


def effective_tax_rate(total_tax_due: float, gross_income_pln: float) -> float:
    """Total tax as a percentage of gross income (0 without income)."""
    if gross_income_pln <= 0:
        return 0.0
    return round_money(total_tax_due / gross_income_pln * 100)


def months_to_calculate(year: int, today: date) -> int:
    """Months 1..N included in a yearly summary: up to today in the current year."""
    if year == today.year:
        return min(12, today.month)
    return 12


def sum_totals(months: List[MonthlyTaxResult]) -> YearlyTotals:
    """Field-wise sum of monthly results; the rate is recomputed from the sums."""
    totals = YearlyTotals()
    for name in _SUMMED_FIELDS:
        setattr(totals, name, round_money(sum(getattr(m, name) for m in months)))
    totals.invoice_count = sum(m.invoice_count for m in months)
    totals.expense_count = sum(m.expense_count for m in months)
    totals.effective_tax_rate = effective_tax_rate(totals.total_tax_due, totals.gross_income_pln)
    return totals


def build_monthly_result(
    month: int,
    year: int,
    settings: TaxSettings,
    rules: TaxRules,
    income: IncomeSummary,
    expenses: ExpenseSummary,
    ytd: YtdSnapshot,
) -> MonthlyTaxResult:
    """Combine one month's aggregates and YTD snapshot into a result."""
    regime = settings.regime
    base = taxable_base(regime, income.gross_income_pln, expenses.deductible_expenses)

    pit = calculate_pit(regime, base, ytd.ytd_bracket_base_prior, rules, settings)
    zus = calculate_zus(settings.contribution_plan, rules, settings.custom_zus_override)
    health = calculate_health_insurance(
        regime,
        income.gross_income_pln,
        ytd.ytd_income_prior + income.gross_income_pln,
        rules,
    )

    total_tax_due = pit + zus + health
    net_income = income.gross_income_pln - total_tax_due

    gross_income_pln = round_money(income.gross_income_pln)
    tax_base = round_money(base)
    pit = round_money(pit)

    return MonthlyTaxResult(
        month=month,
        year=year,
        gross_income=round_money(income.gross_income),
        gross_income_pln=gross_income_pln,
        invoice_count=income.invoice_count,
        invoices=[
            item.model_copy(update={"amount_pln": round_money(item.amount_pln)})
            for item in income.items
        ],
        total_expenses=round_money(expenses.total_expenses),
        deductible_expenses=round_money(expenses.deductible_expenses),
        expense_count=expenses.expense_count,
        tax_base=tax_base,
        pit=pit,
        zus=round_money(zus),
        health_insurance=round_money(health),
        total_tax_due=round_money(total_tax_due),
        net_income=round_money(net_income),
        effective_tax_rate=effective_tax_rate(total_tax_due, income.gross_income_pln),
        ytd_income=round_money(ytd.ytd_income_prior + gross_income_pln),
        ytd_tax_base=round_money(ytd.ytd_tax_base_prior + tax_base),
        ytd_pit=round_money(ytd.ytd_pit_prior + pit),
    )


class TaxCalculator:
    """Tax results for taxpayers, recomputed on demand from the ledger.

    Args:
        ledger: Source of income and expense events
        settings_provider: Source of per-taxpayer TaxSettings
        converter: Currency conversion; wrapped in a per-call cache
        rules_dir: Optional directory with YYYY.yaml tax rules
    """

    def __init__(
        self,
        ledger: LedgerSource,
        settings_provider: SettingsProvider,
        converter: CurrencyConversionProvider,
        rules_dir: Optional[Path] = None,
    ):
        self.ledger = ledger
        self.settings_provider = settings_provider
        self.converter = converter
        self.rules_dir = rules_dir

    def _run_converter(self) -> CurrencyConversionProvider:
        if isinstance(self.converter, CachingConversionProvider):
            return self.converter
        return CachingConversionProvider(self.converter)

    def _rules(self, year: int) -> TaxRules:
        return load_tax_rules(year, self.rules_dir)

    def _month(
        self,
        taxpayer_id: str,
        month: int,
        year: int,
        settings: TaxSettings,
        rules: TaxRules,
        converter: CurrencyConversionProvider,
    ) -> MonthlyTaxResult:
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")

        income = aggregate_income(self.ledger, converter, taxpayer_id, year, month)
        expenses = aggregate_expenses(self.ledger, taxpayer_id, year, month)
        ytd = accumulate_ytd(self.ledger, converter, taxpayer_id, month, year, settings, rules)

        logger.debug(
            f"{taxpayer_id} {year}-{month:02d}: {income.invoice_count} invoice(s), "
            f"{expenses.expense_count} expense(s), regime {settings.regime.value}"
        )
        return build_monthly_result(month, year, settings, rules, income, expenses, ytd)

    def calculate_monthly_tax(self, taxpayer_id: str, month: int, year: int) -> MonthlyTaxResult:
        """Calculate taxes for one month.

        Args:
            taxpayer_id: Taxpayer whose ledger and settings are used
            month: 1-12
            year: Calendar year

        Raises:
            ValueError: If month is outside 1..12
            ConversionUnavailable: If income in this or an earlier month
                of the year cannot be converted to PLN
            TaxConfigurationError: If stored settings are invalid
        """
        settings = self.settings_provider.get_settings(taxpayer_id)
        return self._month(
            taxpayer_id, month, year, settings, self._rules(year), self._run_converter()
        )

    def _yearly(
        self,
        taxpayer_id: str,
        year: int,
        today: date,
        settings: TaxSettings,
        converter: CurrencyConversionProvider,
    ) -> YearlySummary:
        rules = self._rules(year)
        months: List[MonthlyTaxResult] = []
        failed: Dict[int, str] = {}

        for month in range(1, months_to_calculate(year, today) + 1):
            try:
                months.append(self._month(taxpayer_id, month, year, settings, rules, converter))
            except ConversionUnavailable as e:
                logger.warning(f"{taxpayer_id} {year}-{month:02d}: {e}")
                failed[month] = str(e)

        if failed:
            raise YearlyCalculationError(year, failed)

        return YearlySummary(
            year=year,
            regime=settings.regime,
            contribution_plan=settings.contribution_plan,
            months=months,
            totals=sum_totals(months),
        )

    def calculate_yearly_summary(
        self,
        taxpayer_id: str,
        year: int,
        today: Optional[date] = None,
    ) -> YearlySummary:
        """Calculate every month of a year up to today and their totals.

        Args:
            taxpayer_id: Taxpayer id
            year: Calendar year
            today: Reference date (defaults to date.today())

        Raises:
            YearlyCalculationError: Naming every month that failed currency
                conversion; no partial summary is returned
        """
        today = today or date.today()
        settings = self.settings_provider.get_settings(taxpayer_id)
        return self._yearly(taxpayer_id, year, today, settings, self._run_converter())

    def get_tax_dashboard(self, taxpayer_id: str, today: Optional[date] = None) -> TaxDashboard:
        """Current month, year-to-date totals and a settings snapshot."""
        today = today or date.today()
        settings = self.settings_provider.get_settings(taxpayer_id)
        converter = self._run_converter()
        rules = self._rules(today.year)

        current = self._month(taxpayer_id, today.month, today.year, settings, rules, converter)
        yearly = self._yearly(taxpayer_id, today.year, today, settings, converter)

        return TaxDashboard(
            current_month=current,
            year_to_date=yearly.totals,
            settings=SettingsSnapshot(
                regime=settings.regime,
                contribution_plan=settings.contribution_plan,
                lumpsum_rate_percent=round_money(lumpsum_rate(rules, settings) * 100),
            ),
            last_updated=datetime.now(),
        )
