"""Pydantic schemas for freelance-tax data.

Input schemas (settings, income and expense events) use extra='forbid' so
typos in profile or record files cause clear errors rather than silent
ignoring. Result schemas are plain JSON-serializable views; dump them with
model_dump(mode="json").
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


LOCAL_CURRENCY = "PLN"

# Invoice statuses that count as recognized income
RECOGNIZED_STATUSES = ("SENT", "PAID")


def round_money(amount: float) -> float:
    """Round to 2 decimals for output (also normalizes -0.0 to 0.0)."""
    return round(amount, 2) + 0.0


class Regime(str, Enum):
    """Income tax regime."""

    FLAT = "FLAT"                # podatek liniowy
    PROGRESSIVE = "PROGRESSIVE"  # skala podatkowa
    LUMPSUM = "LUMPSUM"          # ryczalt


class ContributionPlan(str, Enum):
    """ZUS contribution plan."""

    STANDARD = "STANDARD"
    REDUCED_PLUS = "REDUCED_PLUS"
    PREFERENTIAL = "PREFERENTIAL"
    CUSTOM = "CUSTOM"


# =============================================================================
# Settings
# =============================================================================


class TaxSettings(BaseModel):
    """Per-taxpayer tax configuration.

    A taxpayer without stored settings gets TaxSettings() - FLAT regime,
    STANDARD contributions, default lump-sum rate, no ZUS override.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    regime: Regime = Field(default=Regime.FLAT)
    contribution_plan: ContributionPlan = Field(default=ContributionPlan.STANDARD)
    custom_lumpsum_rate_percent: Optional[float] = Field(
        default=None, gt=0, le=100,
        description="Lump-sum rate in percent; the rules' default rate applies when unset",
    )
    custom_zus_override: Optional[float] = Field(
        default=None, ge=0,
        description="Monthly ZUS amount for the CUSTOM plan",
    )


# =============================================================================
# Input events
# =============================================================================


def is_recognized(status: str, archived: bool = False) -> bool:
    """Issued invoices count once sent or paid, unless archived."""
    return not archived and (status or "").upper() in RECOGNIZED_STATUSES


class IncomeEvent(BaseModel):
    """An invoice as seen by the tax calculation."""

    model_config = ConfigDict(extra="forbid")

    id: str
    amount: float = Field(..., description="Amount in the invoice currency")
    currency: str = Field(default=LOCAL_CURRENCY)
    transaction_date: date = Field(..., description="Date used for currency conversion")
    recognized: bool = Field(default=True)
    label: Optional[str] = None
    period_year: Optional[int] = None
    period_month: Optional[int] = Field(default=None, ge=1, le=12)

    @model_validator(mode="after")
    def normalize(self) -> "IncomeEvent":
        self.currency = self.currency.upper()
        if (self.period_year is None) != (self.period_month is None):
            raise ValueError("period_year and period_month must be given together")
        return self

    @property
    def period(self) -> tuple:
        """(year, month) the income is attributed to."""
        if self.period_year is not None:
            return (self.period_year, self.period_month)
        return (self.transaction_date.year, self.transaction_date.month)


class ExpenseEvent(BaseModel):
    """A business expense as seen by the tax calculation."""

    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    net_amount: float = Field(..., description="Net amount (PLN, excluding VAT)")
    deductible_percent: float = Field(default=100, ge=0, le=100)
    is_deductible: bool = Field(default=True)
    local_amount: float = Field(..., description="Gross amount in PLN")
    expense_date: date
    label: Optional[str] = None

    @property
    def deductible_amount(self) -> float:
        if not self.is_deductible:
            return 0.0
        return self.net_amount * self.deductible_percent / 100


# =============================================================================
# Results
# =============================================================================


class IncomeItem(BaseModel):
    """One recognized invoice with its PLN value."""

    id: str
    amount: float
    currency: str
    amount_pln: float
    label: Optional[str] = None


class MonthlyTaxResult(BaseModel):
    """Full tax result for one month."""

    month: int = Field(..., ge=1, le=12)
    year: int

    # Income
    gross_income: float = Field(..., description="Sum of invoice amounts in their own currencies")
    gross_income_pln: float
    invoice_count: int
    invoices: List[IncomeItem] = Field(default_factory=list)

    # Expenses
    total_expenses: float
    deductible_expenses: float
    expense_count: int

    tax_base: float

    pit: float
    zus: float
    health_insurance: float
    total_tax_due: float

    net_income: float
    effective_tax_rate: float = Field(..., description="Percent of gross PLN income")

    # Cumulative through and including this month
    ytd_income: float
    ytd_tax_base: float
    ytd_pit: float


class YearlyTotals(BaseModel):
    """Field-wise sum of a year's monthly results."""

    gross_income: float = 0
    gross_income_pln: float = 0
    total_expenses: float = 0
    deductible_expenses: float = 0
    tax_base: float = 0
    pit: float = 0
    zus: float = 0
    health_insurance: float = 0
    total_tax_due: float = 0
    net_income: float = 0
    effective_tax_rate: float = 0
    invoice_count: int = 0
    expense_count: int = 0


class YearlySummary(BaseModel):
    """Monthly results for a year in month order plus their totals."""

    year: int
    regime: Regime
    contribution_plan: ContributionPlan
    months: List[MonthlyTaxResult] = Field(default_factory=list)
    totals: YearlyTotals


class SettingsSnapshot(BaseModel):
    """Settings as shown on the dashboard."""

    regime: Regime
    contribution_plan: ContributionPlan
    lumpsum_rate_percent: Optional[float] = None


class TaxDashboard(BaseModel):
    """Current month, year-to-date totals and settings in one view."""

    current_month: MonthlyTaxResult
    year_to_date: YearlyTotals
    settings: SettingsSnapshot
    last_updated: datetime
