"""Income, expense and year-to-date aggregation.

Everything here is re-derived from ledger events on each call. YTD figures
are never read from earlier results: accumulate_ytd replays every earlier
month of the same calendar year from raw events, applying the same regime
rules as the month being calculated.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .currency import CurrencyConversionProvider
from .ledger import LedgerSource
from .schemas import LOCAL_CURRENCY, IncomeItem, Regime, TaxSettings, round_money
from .taxes.engine import adjusted_progressive_base, approximate_annual_pit, calculate_pit
from .taxes.schemas import TaxRules

logger = logging.getLogger(__name__)


@dataclass
class IncomeSummary:
    """Recognized income for one month."""
    items: List[IncomeItem] = field(default_factory=list)
    gross_income: float = 0.0      # sum of original-currency amounts
    gross_income_pln: float = 0.0

    @property
    def invoice_count(self) -> int:
        return len(self.items)


@dataclass
class ExpenseSummary:
    """Expense totals for one month."""
    total_expenses: float = 0.0
    deductible_expenses: float = 0.0
    expense_count: int = 0


@dataclass
class YtdSnapshot:
    """Cumulative figures for the months before a given month.

    ytd_income_prior, ytd_tax_base_prior and ytd_pit_prior add up the
    per-month figures as reported (rounded), so a month's YTD fields equal
    the sum of the monthly fields. ytd_bracket_base_prior is the unrounded
    base that seeds the progressive brackets (allowance-adjusted for
    PROGRESSIVE, equal to the tax base otherwise).
    """
    ytd_income_prior: float = 0.0
    ytd_tax_base_prior: float = 0.0
    ytd_bracket_base_prior: float = 0.0
    ytd_pit_prior: float = 0.0
    ytd_pit_prior_approx: float = 0.0  # display only
    months_counted: int = 0


def aggregate_income(
    ledger: LedgerSource,
    converter: CurrencyConversionProvider,
    taxpayer_id: str,
    year: int,
    month: int,
) -> IncomeSummary:
    """Sum recognized income for a month, converted to PLN.

    Foreign amounts are converted as of the invoice's transaction date.

    Raises:
        ConversionUnavailable: If any invoice cannot be converted
    """
    summary = IncomeSummary()

    for event in ledger.income_events(taxpayer_id, year, month):
        if not event.recognized:
            continue

        if event.currency == LOCAL_CURRENCY:
            amount_pln = event.amount
        else:
            amount_pln = converter.convert(event.amount, event.currency, event.transaction_date)

        summary.items.append(IncomeItem(
            id=event.id,
            amount=event.amount,
            currency=event.currency,
            amount_pln=amount_pln,
            label=event.label,
        ))
        summary.gross_income += event.amount
        summary.gross_income_pln += amount_pln

    return summary


def aggregate_expenses(
    ledger: LedgerSource,
    taxpayer_id: str,
    year: int,
    month: int,
) -> ExpenseSummary:
    """Sum all expenses and the deductible share of deductible ones."""
    summary = ExpenseSummary()

    for event in ledger.expense_events(taxpayer_id, year, month):
        summary.total_expenses += event.local_amount
        summary.deductible_expenses += event.deductible_amount
        summary.expense_count += 1

    return summary


def taxable_base(regime: Regime, gross_income_pln: float, deductible_expenses: float) -> float:
    """Monthly taxable base.

    LUMPSUM taxes revenue, so expenses are ignored. FLAT and PROGRESSIVE tax
    income less deductible expenses, never below zero.
    """
    if regime == Regime.LUMPSUM:
        return max(0.0, gross_income_pln)
    return max(0.0, gross_income_pln - deductible_expenses)


def bracket_base(regime: Regime, tax_base: float, rules: TaxRules) -> float:
    """Share of a month's base that accumulates towards the PIT brackets."""
    if regime == Regime.PROGRESSIVE:
        return adjusted_progressive_base(tax_base, rules.pit.progressive)
    return tax_base


def accumulate_ytd(
    ledger: LedgerSource,
    converter: CurrencyConversionProvider,
    taxpayer_id: str,
    month: int,
    year: int,
    settings: TaxSettings,
    rules: TaxRules,
) -> YtdSnapshot:
    """Re-derive YTD figures for months 1..month-1 of the same year.

    Args:
        month: Exclusive upper bound (1 gives an empty snapshot)

    Raises:
        ConversionUnavailable: If an earlier month's income cannot be converted
    """
    snapshot = YtdSnapshot()
    regime = settings.regime
    raw_tax_base = 0.0

    for prior_month in range(1, month):
        income = aggregate_income(ledger, converter, taxpayer_id, year, prior_month)
        expenses = aggregate_expenses(ledger, taxpayer_id, year, prior_month)
        base = taxable_base(regime, income.gross_income_pln, expenses.deductible_expenses)

        pit = calculate_pit(regime, base, snapshot.ytd_bracket_base_prior, rules, settings)

        snapshot.ytd_income_prior += round_money(income.gross_income_pln)
        snapshot.ytd_tax_base_prior += round_money(base)
        snapshot.ytd_pit_prior += round_money(pit)
        snapshot.ytd_bracket_base_prior += bracket_base(regime, base, rules)
        snapshot.months_counted += 1
        raw_tax_base += base

    snapshot.ytd_pit_prior_approx = approximate_annual_pit(regime, raw_tax_base, rules, settings)

    logger.debug(
        f"YTD before {year}-{month:02d} for {taxpayer_id}: income={snapshot.ytd_income_prior:.2f} "
        f"base={snapshot.ytd_tax_base_prior:.2f} pit={snapshot.ytd_pit_prior:.2f}"
    )
    return snapshot
