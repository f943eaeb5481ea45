"""Tests for income/expense aggregation and the YTD accumulator."""

from datetime import date

import pytest

from freelancetax.sdk import (
    ExpenseEvent,
    IncomeEvent,
    InMemoryLedger,
    Regime,
    StaticRateProvider,
    TaxSettings,
)
from freelancetax.sdk.aggregation import (
    accumulate_ytd,
    aggregate_expenses,
    aggregate_income,
    bracket_base,
    taxable_base,
)
from freelancetax.sdk.taxes import load_tax_rules

TAXPAYER = "jan"


@pytest.fixture
def rules():
    return load_tax_rules(2024)


@pytest.fixture
def converter():
    return StaticRateProvider({"EUR": 4.0})


@pytest.fixture
def ledger():
    ledger = InMemoryLedger()
    ledger.add_income(
        TAXPAYER,
        IncomeEvent(id="jan-1", amount=2000, transaction_date=date(2024, 1, 15)),
        IncomeEvent(id="feb-1", amount=1000, currency="EUR", transaction_date=date(2024, 2, 3)),
        IncomeEvent(id="feb-2", amount=9000, transaction_date=date(2024, 2, 20), recognized=False),
        IncomeEvent(id="mar-1", amount=30000, transaction_date=date(2024, 3, 1)),
    )
    ledger.add_expenses(
        TAXPAYER,
        ExpenseEvent(net_amount=1000, local_amount=1230, expense_date=date(2024, 3, 2)),
        ExpenseEvent(net_amount=400, local_amount=492, deductible_percent=50, expense_date=date(2024, 3, 9)),
    )
    return ledger


class TestAggregateIncome:

    def test_sums_recognized_income(self, ledger, converter):
        summary = aggregate_income(ledger, converter, TAXPAYER, 2024, 2)
        assert summary.invoice_count == 1
        assert summary.gross_income == 1000
        assert summary.gross_income_pln == pytest.approx(4000.0)

    def test_other_taxpayer_sees_nothing(self, ledger, converter):
        assert aggregate_income(ledger, converter, "anna", 2024, 2).invoice_count == 0

    def test_converts_at_transaction_date(self, ledger):
        converter = StaticRateProvider({("EUR", date(2024, 2, 3)): 4.5, "EUR": 4.0})
        summary = aggregate_income(ledger, converter, TAXPAYER, 2024, 2)
        assert summary.gross_income_pln == pytest.approx(4500.0)


class TestAggregateExpenses:

    def test_totals(self, ledger):
        summary = aggregate_expenses(ledger, TAXPAYER, 2024, 3)
        assert summary.expense_count == 2
        assert summary.total_expenses == pytest.approx(1722.0)
        assert summary.deductible_expenses == pytest.approx(1200.0)


class TestTaxableBase:

    def test_lumpsum_ignores_expenses(self):
        assert taxable_base(Regime.LUMPSUM, 10000, 4000) == 10000

    @pytest.mark.parametrize("regime", [Regime.FLAT, Regime.PROGRESSIVE])
    def test_expenses_deducted_and_clamped(self, regime):
        assert taxable_base(regime, 10000, 4000) == 6000
        assert taxable_base(regime, 1000, 4000) == 0.0

    def test_bracket_base(self, rules):
        assert bracket_base(Regime.PROGRESSIVE, 10000, rules) == pytest.approx(7500.0)
        assert bracket_base(Regime.PROGRESSIVE, 1000, rules) == 0.0
        assert bracket_base(Regime.FLAT, 10000, rules) == 10000


class TestAccumulateYtd:

    def test_january_is_empty(self, ledger, converter, rules):
        snapshot = accumulate_ytd(ledger, converter, TAXPAYER, 1, 2024, TaxSettings(), rules)
        assert snapshot.months_counted == 0
        assert snapshot.ytd_income_prior == 0.0
        assert snapshot.ytd_pit_prior == 0.0

    def test_flat(self, ledger, converter, rules):
        snapshot = accumulate_ytd(ledger, converter, TAXPAYER, 4, 2024, TaxSettings(), rules)
        assert snapshot.months_counted == 3
        assert snapshot.ytd_income_prior == pytest.approx(36000.0)
        assert snapshot.ytd_tax_base_prior == pytest.approx(34800.0)
        assert snapshot.ytd_bracket_base_prior == pytest.approx(34800.0)
        assert snapshot.ytd_pit_prior == pytest.approx(34800 * 0.19)

    def test_progressive_uses_adjusted_bases(self, ledger, converter, rules):
        settings = TaxSettings(regime=Regime.PROGRESSIVE)
        snapshot = accumulate_ytd(ledger, converter, TAXPAYER, 4, 2024, settings, rules)

        # January 2,000 is under the monthly allowance; February 4,000 -> 1,500; March 28,800 -> 26,300
        assert snapshot.ytd_bracket_base_prior == pytest.approx(27800.0)
        assert snapshot.ytd_pit_prior == pytest.approx(27800 * 0.12)
        assert snapshot.ytd_pit_prior_approx == pytest.approx((34800 - 30000) * 0.12)

    def test_lumpsum(self, ledger, converter, rules):
        settings = TaxSettings(regime=Regime.LUMPSUM)
        snapshot = accumulate_ytd(ledger, converter, TAXPAYER, 4, 2024, settings, rules)
        assert snapshot.ytd_tax_base_prior == pytest.approx(36000.0)
        assert snapshot.ytd_pit_prior == pytest.approx(4320.0)
