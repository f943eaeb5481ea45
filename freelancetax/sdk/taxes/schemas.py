"""Pydantic schemas for tax rules validation.

These schemas validate the tax_rules/*.yaml files and provide typed access
to PIT rates, the progressive bracket table, ZUS amounts and the
health-insurance tables. PIT brackets and health-insurance revenue brackets
are independent tables so rate changes stay data edits.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaxConfigurationError(Exception):
    """Raised for unknown regimes/plans or invalid tax rule data."""
    pass


class ProgressiveRules(BaseModel):
    """Progressive scale (skala podatkowa) parameters."""
    model_config = ConfigDict(extra="forbid")

    threshold: float = Field(..., gt=0, description="Annual base above which the upper rate applies")
    tax_free_allowance: float = Field(..., ge=0, description="Annual tax-free amount (kwota wolna)")
    lower_rate: float = Field(..., ge=0, le=1)
    upper_rate: float = Field(..., ge=0, le=1)


class LumpsumRules(BaseModel):
    """Lump-sum on revenue (ryczalt) rates."""
    model_config = ConfigDict(extra="forbid")

    default_rate: float = Field(..., gt=0, le=1, description="Rate used without a custom rate")
    rates: Dict[str, float] = Field(default_factory=dict, description="Rates by activity, informational")


class PitRules(BaseModel):
    """Personal income tax rules for all three regimes."""
    model_config = ConfigDict(extra="forbid")

    flat_rate: float = Field(..., ge=0, le=1)
    progressive: ProgressiveRules
    lumpsum: LumpsumRules


class ZusRules(BaseModel):
    """Monthly social insurance amounts by contribution plan."""
    model_config = ConfigDict(extra="forbid")

    standard: float = Field(..., ge=0)
    reduced_plus: float = Field(..., ge=0)
    preferential: float = Field(..., ge=0)


class HealthBracket(BaseModel):
    """Lump-sum health bracket: YTD revenue up to max_revenue -> multiplier."""
    model_config = ConfigDict(extra="forbid")

    max_revenue: Optional[float] = Field(default=None, description="Upper bound (None for the top bracket)")
    multiplier: float = Field(..., gt=0)


class LumpsumHealthRules(BaseModel):
    """Health insurance parameters for the lump-sum regime."""
    model_config = ConfigDict(extra="forbid")

    reference_wage: float = Field(..., gt=0, description="Average wage the multiplier applies to")
    rate: float = Field(..., ge=0, le=1)
    brackets: List[HealthBracket]

    @model_validator(mode="after")
    def check_brackets(self) -> "LumpsumHealthRules":
        """Brackets must ascend and end with an open top bracket."""
        if not self.brackets:
            raise ValueError("lumpsum health brackets must not be empty")
        bounds = [b.max_revenue for b in self.brackets[:-1]]
        if any(b is None for b in bounds):
            raise ValueError("only the last lumpsum health bracket may omit max_revenue")
        if bounds != sorted(bounds):
            raise ValueError("lumpsum health brackets must be in ascending order")
        if self.brackets[-1].max_revenue is not None:
            raise ValueError("last lumpsum health bracket must omit max_revenue")
        return self


class HealthRules(BaseModel):
    """Health insurance (skladka zdrowotna) rules."""
    model_config = ConfigDict(extra="forbid")

    minimum: float = Field(..., ge=0, description="Monthly floor for FLAT/PROGRESSIVE")
    flat_rate: float = Field(..., ge=0, le=1)
    progressive_rate: float = Field(..., ge=0, le=1)
    lumpsum: LumpsumHealthRules


class Deadlines(BaseModel):
    """Payment deadlines (day of the following month)."""
    model_config = ConfigDict(extra="forbid")

    pit_advance: int = Field(..., ge=1, le=31)
    zus: int = Field(..., ge=1, le=31)
    vat_monthly: int = Field(..., ge=1, le=31)
    vat_quarterly: int = Field(..., ge=1, le=31)


class TaxRules(BaseModel):
    """Complete tax rules for a year."""
    model_config = ConfigDict(extra="ignore")  # Allow unknown fields for forward compat

    year: int
    currency: str = "PLN"
    pit: PitRules
    zus: ZusRules
    health: HealthRules
    deadlines: Optional[Deadlines] = None
    vat_rates: List[float] = Field(default_factory=list)
