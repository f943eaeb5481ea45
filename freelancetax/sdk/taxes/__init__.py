"""taxes - Polish B2B tax rules and per-month calculations.

Scope:
- Yearly tax rules (PIT rates, progressive brackets, ZUS, health tables)
- Per-month PIT for FLAT, PROGRESSIVE and LUMPSUM regimes
- ZUS and health insurance contributions

Constraints:
- Pure calculation - no records or settings access
- Receives bases and YTD figures, returns unrounded amounts
- Year-specific rules loaded from tax_rules/{year}.yaml

Usage:
    from freelancetax.sdk.taxes import calculate_pit, load_tax_rules

    rules = load_tax_rules(2025)
    pit = calculate_pit(Regime.PROGRESSIVE, 15000, 100000, rules)
"""

from .schemas import TaxRules, TaxConfigurationError

from .rules import (
    load_tax_rules,
    get_available_years,
    resolve_rules_year,
)

from .engine import (
    calculate_pit,
    calculate_progressive_pit,
    bracket_delta_tax,
    progressive_bracket_tax,
    adjusted_progressive_base,
    monthly_allowance,
    lumpsum_rate,
    approximate_annual_pit,
)

from .contributions import (
    calculate_zus,
    calculate_health_insurance,
    lumpsum_health_multiplier,
)

__all__ = [
    # Rules
    "TaxRules",
    "TaxConfigurationError",
    "load_tax_rules",
    "get_available_years",
    "resolve_rules_year",
    # PIT
    "calculate_pit",
    "calculate_progressive_pit",
    "bracket_delta_tax",
    "progressive_bracket_tax",
    "adjusted_progressive_base",
    "monthly_allowance",
    "lumpsum_rate",
    "approximate_annual_pit",
    # Contributions
    "calculate_zus",
    "calculate_health_insurance",
    "lumpsum_health_multiplier",
]
