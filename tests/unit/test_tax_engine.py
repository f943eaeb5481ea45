"""Tests for the PIT engine (sdk/taxes/engine.py)."""

import pytest

from freelancetax.sdk.schemas import Regime, TaxSettings
from freelancetax.sdk.taxes import TaxConfigurationError, load_tax_rules
from freelancetax.sdk.taxes.engine import (
    adjusted_progressive_base,
    approximate_annual_pit,
    bracket_delta_tax,
    calculate_pit,
    calculate_progressive_pit,
    lumpsum_rate,
    monthly_allowance,
    progressive_bracket_tax,
)


@pytest.fixture
def rules():
    return load_tax_rules(2024)


@pytest.fixture
def progressive(rules):
    return rules.pit.progressive


def run_chain(monthly_bases, rules):
    """PIT month by month, seeding each month with the adjusted cumulative base."""
    ytd_adjusted = 0.0
    total = 0.0
    for base in monthly_bases:
        total += calculate_pit(Regime.PROGRESSIVE, base, ytd_adjusted, rules)
        ytd_adjusted += adjusted_progressive_base(base, rules.pit.progressive)
    return total


class TestFlatAndLumpsum:
    """Proportional regimes."""

    def test_flat_19_percent(self, rules):
        """20,000 income less 5,000 deductible gives PIT 2,850."""
        assert calculate_pit(Regime.FLAT, 15000, 0, rules) == pytest.approx(2850.00)

    def test_flat_ignores_ytd(self, rules):
        assert calculate_pit(Regime.FLAT, 15000, 500000, rules) == pytest.approx(2850.00)

    def test_lumpsum_default_rate(self, rules):
        assert calculate_pit(Regime.LUMPSUM, 10000, 0, rules) == pytest.approx(1200.00)

    def test_lumpsum_custom_rate(self, rules):
        settings = TaxSettings(regime=Regime.LUMPSUM, custom_lumpsum_rate_percent=8.5)
        assert calculate_pit(Regime.LUMPSUM, 10000, 0, rules, settings) == pytest.approx(850.00)
        assert lumpsum_rate(rules, settings) == pytest.approx(0.085)

    def test_lumpsum_rate_defaults_without_settings(self, rules):
        assert lumpsum_rate(rules) == pytest.approx(0.12)
        assert lumpsum_rate(rules, TaxSettings()) == pytest.approx(0.12)

    @pytest.mark.parametrize("regime", [Regime.FLAT, Regime.LUMPSUM, Regime.PROGRESSIVE])
    def test_negative_base_clamped(self, rules, regime):
        assert calculate_pit(regime, -5000, 0, rules) == 0.0

    def test_unknown_regime_raises(self, rules):
        with pytest.raises(TaxConfigurationError):
            calculate_pit("BOGUS", 1000, 0, rules)


class TestProgressive:
    """Progressive scale with monthly allowance and bracket deltas."""

    def test_monthly_allowance(self, progressive):
        assert monthly_allowance(progressive) == pytest.approx(2500.0)

    def test_base_below_allowance_is_tax_free(self, rules):
        assert calculate_pit(Regime.PROGRESSIVE, 2000, 0, rules) == 0.0

    def test_lower_bracket(self, rules):
        """12,500 base minus 2,500 allowance taxed at 12%."""
        assert calculate_pit(Regime.PROGRESSIVE, 12500, 0, rules) == pytest.approx(1200.0)

    def test_bracket_crossing(self, progressive):
        """Prior 115,000 plus adjusted 10,000: 5,000 at 12% and 5,000 at 32%."""
        tax = bracket_delta_tax(10000, 115000, progressive)
        assert tax == pytest.approx(5000 * 0.12 + 5000 * 0.32)

    def test_bracket_crossing_through_allowance(self, progressive):
        tax = calculate_progressive_pit(12500, 115000, progressive)
        assert tax == pytest.approx(2200.0)

    def test_fully_above_threshold(self, progressive):
        assert bracket_delta_tax(10000, 130000, progressive) == pytest.approx(3200.0)

    def test_zero_delta(self, progressive):
        assert bracket_delta_tax(0, 150000, progressive) == 0.0


class TestBracketConsistency:
    """Month-by-month deltas add up to a single pass over the annual base."""

    @pytest.mark.parametrize("deltas", [
        [170000, 10000],
        [10000] * 12,
        [0, 0, 119999, 1, 50000],
        [60000, 60000, 60000],
    ])
    def test_delta_chain_matches_single_pass(self, progressive, deltas):
        prior = 0.0
        chained = 0.0
        for delta in deltas:
            chained += bracket_delta_tax(delta, prior, progressive)
            prior += delta
        assert chained == pytest.approx(progressive_bracket_tax(sum(deltas), progressive))

    def test_front_loaded_deltas(self, progressive):
        """170,000 then 10,000 equals 180,000 in one pass."""
        assert progressive_bracket_tax(180000, progressive) == pytest.approx(33600.0)

    def test_even_year(self, rules):
        """15,000 a month: 150,000 adjusted annual base."""
        assert run_chain([15000] * 12, rules) == pytest.approx(24000.0)

    def test_front_loaded_year(self, rules):
        """Same annual base, every month still covers its allowance."""
        assert run_chain([152500] + [2500] * 11, rules) == pytest.approx(24000.0)

    def test_front_loaded_split_loses_idle_allowance(self, rules):
        """170,000 then 10,000 with ten empty months taxes 175,000 of adjusted base.

        The ten empty months never use their monthly allowance, so the total
        is above the 24,000 an even split of the same 180,000 gives.
        """
        front_loaded = run_chain([170000, 10000] + [0] * 10, rules)
        assert front_loaded == pytest.approx(120000 * 0.12 + 55000 * 0.32)
        assert front_loaded == pytest.approx(32000.0)
        assert run_chain([15000] * 12, rules) == pytest.approx(24000.0)

    def test_chain_matches_annual_approximation_for_even_year(self, rules):
        approx = approximate_annual_pit(Regime.PROGRESSIVE, 180000, rules)
        assert approx == pytest.approx(run_chain([15000] * 12, rules))

    def test_month_below_allowance_loses_allowance(self, rules):
        """A month under the monthly allowance does not carry its unused share forward."""
        chained = run_chain([2000, 32000], rules)
        assert chained == pytest.approx(29500 * 0.12)
        assert approximate_annual_pit(Regime.PROGRESSIVE, 34000, rules) == pytest.approx(4000 * 0.12)


class TestApproximation:

    def test_flat(self, rules):
        assert approximate_annual_pit(Regime.FLAT, 100000, rules) == pytest.approx(19000.0)

    def test_negative_clamped(self, rules):
        assert approximate_annual_pit(Regime.PROGRESSIVE, -100, rules) == 0.0
