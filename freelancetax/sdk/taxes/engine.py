"""Monthly personal income tax (PIT) per regime.

The progressive scale is computed incrementally: each month taxes only the
slice of cumulative base it adds, split at the bracket threshold. Running the
months in order with the true running YTD base therefore gives the same total
as one pass over the annual base.

All functions are pure and never raise for out-of-range amounts; negative
bases are clamped to zero.
"""

from typing import Optional

from ..schemas import Regime, TaxSettings
from .schemas import ProgressiveRules, TaxConfigurationError, TaxRules


def monthly_allowance(progressive: ProgressiveRules) -> float:
    """Tax-free allowance applied to each month (annual allowance / 12)."""
    return progressive.tax_free_allowance / 12


def adjusted_progressive_base(monthly_tax_base: float, progressive: ProgressiveRules) -> float:
    """Monthly base after the monthly share of the tax-free allowance."""
    return max(0.0, max(0.0, monthly_tax_base) - monthly_allowance(progressive))


def bracket_delta_tax(
    adjusted_base: float,
    ytd_base_prior: float,
    progressive: ProgressiveRules,
) -> float:
    """Tax on the slice [ytd_base_prior, ytd_base_prior + adjusted_base).

    Args:
        adjusted_base: This month's allowance-adjusted base
        ytd_base_prior: Cumulative adjusted base of earlier months
        progressive: Threshold and rates

    Returns:
        Lower-bracket share at lower_rate plus upper-bracket share at upper_rate
    """
    threshold = progressive.threshold
    prior = max(0.0, ytd_base_prior)
    new_ytd = prior + max(0.0, adjusted_base)

    tax = 0.0

    lower_delta = min(new_ytd, threshold) - min(prior, threshold)
    if lower_delta > 0:
        tax += lower_delta * progressive.lower_rate

    if new_ytd > threshold:
        upper_delta = new_ytd - max(threshold, prior)
        tax += upper_delta * progressive.upper_rate

    return max(0.0, tax)


def calculate_progressive_pit(
    monthly_tax_base: float,
    ytd_base_prior: float,
    progressive: ProgressiveRules,
) -> float:
    """PIT for one month on the progressive scale.

    Example (threshold 120,000, 12%/32%):
        prior 115,000 and adjusted base 10,000 -> 5,000 x 12% + 5,000 x 32%
    """
    adjusted = adjusted_progressive_base(monthly_tax_base, progressive)
    return bracket_delta_tax(adjusted, ytd_base_prior, progressive)


def progressive_bracket_tax(annual_base: float, progressive: ProgressiveRules) -> float:
    """Bracket tax on a whole cumulative base in a single pass."""
    return bracket_delta_tax(annual_base, 0.0, progressive)


def lumpsum_rate(rules: TaxRules, settings: Optional[TaxSettings] = None) -> float:
    """Lump-sum rate as a fraction: custom percent if set, else the default."""
    if settings is not None and settings.custom_lumpsum_rate_percent is not None:
        return settings.custom_lumpsum_rate_percent / 100
    return rules.pit.lumpsum.default_rate


def calculate_pit(
    regime: Regime,
    monthly_tax_base: float,
    ytd_tax_base_prior: float,
    rules: TaxRules,
    settings: Optional[TaxSettings] = None,
) -> float:
    """Calculate PIT for a month.

    Args:
        regime: Tax regime
        monthly_tax_base: This month's taxable base (clamped at 0)
        ytd_tax_base_prior: Cumulative base of earlier months; only the
            progressive scale uses it, as the allowance-adjusted base
        rules: Tax rules for the year
        settings: Taxpayer settings (for a custom lump-sum rate)

    Returns:
        PIT for the month, never negative, unrounded

    Raises:
        TaxConfigurationError: If regime is not a known Regime
    """
    base = max(0.0, monthly_tax_base)

    if regime == Regime.FLAT:
        pit = base * rules.pit.flat_rate
    elif regime == Regime.LUMPSUM:
        pit = base * lumpsum_rate(rules, settings)
    elif regime == Regime.PROGRESSIVE:
        pit = calculate_progressive_pit(base, ytd_tax_base_prior, rules.pit.progressive)
    else:
        raise TaxConfigurationError(f"Unknown tax regime: {regime!r}")

    return max(0.0, pit)


def approximate_annual_pit(
    regime: Regime,
    ytd_tax_base: float,
    rules: TaxRules,
    settings: Optional[TaxSettings] = None,
) -> float:
    """Single-pass PIT estimate on a cumulative base, for display only.

    The progressive branch subtracts the full annual allowance once, so it
    differs from the month-by-month chain whenever a month's base is below
    the monthly allowance.
    """
    base = max(0.0, ytd_tax_base)
    if regime == Regime.PROGRESSIVE:
        progressive = rules.pit.progressive
        return progressive_bracket_tax(
            max(0.0, base - progressive.tax_free_allowance), progressive
        )
    return calculate_pit(regime, base, 0.0, rules, settings)
