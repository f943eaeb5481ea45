"""ZUS and health insurance contributions.

ZUS is a flat monthly amount picked by contribution plan. Health insurance
depends on the regime:

- FLAT / PROGRESSIVE: percentage of the month's income, floored at the minimum
- LUMPSUM: bracket on YTD revenue *including* the current month, times the
  reference wage and the health rate

PIT brackets use YTD base *excluding* the current month (the month adds its
own delta), while the lump-sum health bracket looks at revenue including it.
"""

from typing import Optional

from ..schemas import ContributionPlan, Regime
from .schemas import TaxConfigurationError, TaxRules


def calculate_zus(
    plan: ContributionPlan,
    rules: TaxRules,
    custom_amount: Optional[float] = None,
) -> float:
    """Monthly ZUS amount for a contribution plan.

    CUSTOM uses custom_amount, or the STANDARD amount when none is set.

    Raises:
        TaxConfigurationError: If plan is not a known ContributionPlan
    """
    if plan == ContributionPlan.STANDARD:
        return rules.zus.standard
    if plan == ContributionPlan.REDUCED_PLUS:
        return rules.zus.reduced_plus
    if plan == ContributionPlan.PREFERENTIAL:
        return rules.zus.preferential
    if plan == ContributionPlan.CUSTOM:
        if custom_amount is not None:
            return max(0.0, float(custom_amount))
        return rules.zus.standard
    raise TaxConfigurationError(f"Unknown contribution plan: {plan!r}")


def lumpsum_health_multiplier(ytd_revenue: float, rules: TaxRules) -> float:
    """Multiplier of the first bracket whose max_revenue covers ytd_revenue."""
    brackets = rules.health.lumpsum.brackets
    for bracket in brackets:
        if bracket.max_revenue is None or ytd_revenue <= bracket.max_revenue:
            return bracket.multiplier
    return brackets[-1].multiplier


def calculate_health_insurance(
    regime: Regime,
    monthly_income: float,
    ytd_income_inclusive: float,
    rules: TaxRules,
) -> float:
    """Monthly health insurance contribution.

    Args:
        regime: Tax regime
        monthly_income: Gross PLN income for the month
        ytd_income_inclusive: YTD PLN revenue including this month
        rules: Tax rules for the year

    Raises:
        TaxConfigurationError: If regime is not a known Regime
    """
    health = rules.health

    if regime == Regime.FLAT:
        return max(health.minimum, monthly_income * health.flat_rate)
    if regime == Regime.PROGRESSIVE:
        return max(health.minimum, monthly_income * health.progressive_rate)
    if regime == Regime.LUMPSUM:
        multiplier = lumpsum_health_multiplier(ytd_income_inclusive, rules)
        return health.lumpsum.reference_wage * multiplier * health.lumpsum.rate
    raise TaxConfigurationError(f"Unknown tax regime: {regime!r}")
