"""Freelance Tax SDK - Core functionality for B2B tax calculations."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_default_taxpayer,
    get_profile_path,
    load_profile,
    save_profile,
    get_profile_value,
    get_cache_path,
    get_data_path,
    ConfigNotFoundError,
    ProfileNotFoundError,
)

from .schemas import (
    Regime,
    ContributionPlan,
    TaxSettings,
    IncomeEvent,
    ExpenseEvent,
    IncomeItem,
    MonthlyTaxResult,
    YearlyTotals,
    YearlySummary,
    SettingsSnapshot,
    TaxDashboard,
    is_recognized,
    round_money,
)

from .currency import (
    CurrencyConversionProvider,
    ConversionUnavailable,
    StaticRateProvider,
    NbpRateProvider,
    CachingConversionProvider,
)

from .settings_store import (
    SettingsProvider,
    InMemorySettingsProvider,
    ProfileSettingsProvider,
)

from .ledger import (
    LedgerSource,
    InMemoryLedger,
    RecordsLedger,
)

from .calculator import (
    TaxCalculator,
    YearlyCalculationError,
)

from .taxes import TaxConfigurationError, load_tax_rules

from . import records

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_default_taxpayer",
    "get_profile_path",
    "load_profile",
    "save_profile",
    "get_profile_value",
    "get_cache_path",
    "get_data_path",
    "ConfigNotFoundError",
    "ProfileNotFoundError",
    # Schemas
    "Regime",
    "ContributionPlan",
    "TaxSettings",
    "IncomeEvent",
    "ExpenseEvent",
    "IncomeItem",
    "MonthlyTaxResult",
    "YearlyTotals",
    "YearlySummary",
    "SettingsSnapshot",
    "TaxDashboard",
    "is_recognized",
    "round_money",
    # Currency
    "CurrencyConversionProvider",
    "ConversionUnavailable",
    "StaticRateProvider",
    "NbpRateProvider",
    "CachingConversionProvider",
    # Settings
    "SettingsProvider",
    "InMemorySettingsProvider",
    "ProfileSettingsProvider",
    # Ledger
    "LedgerSource",
    "InMemoryLedger",
    "RecordsLedger",
    # Calculation
    "TaxCalculator",
    "default_calculator",
    "YearlyCalculationError",
    "TaxConfigurationError",
    "load_tax_rules",
    # Modules
    "records",
]


def default_calculator() -> TaxCalculator:
    """Calculator over the local records store, profile settings and NBP rates."""
    return TaxCalculator(
        ledger=RecordsLedger(),
        settings_provider=ProfileSettingsProvider(),
        converter=NbpRateProvider(),
    )
