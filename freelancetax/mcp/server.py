"""Freelance Tax MCP Server - FastMCP implementation for tax calculation tools."""

import json
import logging
from datetime import date
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from freelancetax.sdk import (
    ConfigNotFoundError,
    ConversionUnavailable,
    ProfileSettingsProvider,
    TaxConfigurationError,
    YearlyCalculationError,
    default_calculator,
    get_default_taxpayer,
    load_tax_rules,
    records as sdk_records,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("freelance-tax")

CALCULATION_ERRORS = (ConversionUnavailable, TaxConfigurationError, ConfigNotFoundError)


# --- Tools ---

@mcp.tool()
async def calculate_monthly_tax(
    year: int = Field(description="Calendar year (e.g., 2024)"),
    month: int = Field(description="Month number 1-12"),
    taxpayer_id: str | None = Field(default=None, description="Taxpayer id (default: configured default taxpayer)"),
) -> dict[str, Any]:
    """Calculate PIT, ZUS and health insurance for one month, with year-to-date figures."""
    taxpayer_id = taxpayer_id or get_default_taxpayer()
    try:
        result = default_calculator().calculate_monthly_tax(taxpayer_id, month, year)
        return {"taxpayer_id": taxpayer_id, "result": result.model_dump(mode="json")}
    except ValueError as e:
        return {"error": str(e), "result": None}
    except CALCULATION_ERRORS as e:
        logger.error(f"Error calculating {year}-{month:02d} for {taxpayer_id}: {e}")
        return {"error": str(e), "result": None}


@mcp.tool()
async def get_yearly_summary(
    year: int = Field(description="Calendar year (e.g., 2024)"),
    taxpayer_id: str | None = Field(default=None, description="Taxpayer id (default: configured default taxpayer)"),
) -> dict[str, Any]:
    """Monthly results for a year (up to the current month) and their totals."""
    taxpayer_id = taxpayer_id or get_default_taxpayer()
    try:
        summary = default_calculator().calculate_yearly_summary(taxpayer_id, year)
        return {"taxpayer_id": taxpayer_id, "summary": summary.model_dump(mode="json")}
    except YearlyCalculationError as e:
        return {
            "error": str(e),
            "failed_months": {str(m): reason for m, reason in e.failed_months.items()},
            "summary": None,
        }
    except CALCULATION_ERRORS as e:
        logger.error(f"Error calculating {year} for {taxpayer_id}: {e}")
        return {"error": str(e), "summary": None}


@mcp.tool()
async def get_tax_dashboard(
    taxpayer_id: str | None = Field(default=None, description="Taxpayer id (default: configured default taxpayer)"),
) -> dict[str, Any]:
    """Current month, year-to-date totals and the active tax settings."""
    taxpayer_id = taxpayer_id or get_default_taxpayer()
    try:
        dashboard = default_calculator().get_tax_dashboard(taxpayer_id)
        return {"taxpayer_id": taxpayer_id, "dashboard": dashboard.model_dump(mode="json")}
    except YearlyCalculationError as e:
        return {
            "error": str(e),
            "failed_months": {str(m): reason for m, reason in e.failed_months.items()},
            "dashboard": None,
        }
    except CALCULATION_ERRORS as e:
        logger.error(f"Error building dashboard for {taxpayer_id}: {e}")
        return {"error": str(e), "dashboard": None}


@mcp.tool()
async def get_tax_settings(
    taxpayer_id: str | None = Field(default=None, description="Taxpayer id (default: configured default taxpayer)"),
) -> dict[str, Any]:
    """Tax regime, ZUS plan and custom rates for a taxpayer (defaults are created on first access)."""
    taxpayer_id = taxpayer_id or get_default_taxpayer()
    try:
        settings = ProfileSettingsProvider().get_settings(taxpayer_id)
        return {"taxpayer_id": taxpayer_id, "settings": settings.model_dump(mode="json")}
    except TaxConfigurationError as e:
        return {"error": str(e), "settings": None}


@mcp.tool()
async def update_tax_settings(
    taxpayer_id: str | None = Field(default=None, description="Taxpayer id (default: configured default taxpayer)"),
    regime: str | None = Field(default=None, description="FLAT, PROGRESSIVE or LUMPSUM"),
    contribution_plan: str | None = Field(default=None, description="STANDARD, REDUCED_PLUS, PREFERENTIAL or CUSTOM"),
    custom_lumpsum_rate_percent: float | None = Field(default=None, description="LUMPSUM rate in percent (e.g., 8.5)"),
    custom_zus_override: float | None = Field(default=None, description="Monthly ZUS amount for the CUSTOM plan"),
    clear_lumpsum_rate: bool = Field(default=False, description="Remove the custom LUMPSUM rate and use the default rate"),
    clear_zus_override: bool = Field(default=False, description="Remove the custom ZUS amount"),
) -> dict[str, Any]:
    """Change a taxpayer's tax settings. Only the given fields are changed; use the clear_* flags to remove custom values."""
    taxpayer_id = taxpayer_id or get_default_taxpayer()
    changes = {
        key: value
        for key, value in (
            ("regime", regime.upper() if regime else None),
            ("contribution_plan", contribution_plan.upper() if contribution_plan else None),
            ("custom_lumpsum_rate_percent", custom_lumpsum_rate_percent),
            ("custom_zus_override", custom_zus_override),
        )
        if value is not None
    }
    if clear_lumpsum_rate:
        changes["custom_lumpsum_rate_percent"] = None
    if clear_zus_override:
        changes["custom_zus_override"] = None
    if not changes:
        return {"error": "No settings given to change", "settings": None}

    try:
        settings = ProfileSettingsProvider().update_settings(taxpayer_id, **changes)
        return {"taxpayer_id": taxpayer_id, "settings": settings.model_dump(mode="json")}
    except TaxConfigurationError as e:
        return {"error": str(e), "settings": None}


@mcp.tool()
async def get_tax_constants(
    year: int | None = Field(default=None, description="Tax year (default: current year)"),
) -> dict[str, Any]:
    """PIT rates, ZUS amounts, health insurance tables and payment deadlines for a year."""
    year = year or date.today().year
    try:
        rules = load_tax_rules(year)
        return {"year": year, "rules_year": rules.year, "rules": rules.model_dump(mode="json")}
    except (TaxConfigurationError, ConfigNotFoundError) as e:
        return {"error": str(e), "rules": None}


# --- Resources ---

@mcp.resource("freelancetax://records/{taxpayer_id}/years")
async def list_years_resource(taxpayer_id: str) -> str:
    """Years with records for a taxpayer, with record counts."""
    taxpayer_dir = sdk_records.get_records_dir() / taxpayer_id
    years = {}
    if taxpayer_dir.exists():
        for year_dir in sorted(taxpayer_dir.iterdir()):
            if year_dir.is_dir() and year_dir.name.isdigit():
                years[year_dir.name] = sum(1 for _ in year_dir.glob("*.json"))
    return json.dumps({"taxpayer_id": taxpayer_id, "years": years}, indent=2)


# --- Server Entry Point ---

def run_server():
    """Run the MCP server in stdio mode."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
