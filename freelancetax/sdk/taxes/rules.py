"""Tax rules loading from tax_rules/YYYY.yaml."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from ..config import ConfigNotFoundError
from .schemas import TaxConfigurationError, TaxRules

logger = logging.getLogger(__name__)


def _get_tax_rules_dir() -> Path:
    """Get the tax_rules directory shipped with the package."""
    package_root = Path(__file__).parent.parent.parent  # taxes -> sdk -> freelancetax
    return package_root / "tax_rules"


def get_available_years(rules_dir: Optional[Path] = None) -> list[int]:
    """Get sorted list of available tax rule years (descending)."""
    rules_dir = rules_dir or _get_tax_rules_dir()
    years = [int(p.stem) for p in rules_dir.glob("*.yaml") if p.stem.isdigit()]
    return sorted(years, reverse=True)


def resolve_rules_year(year: int, rules_dir: Optional[Path] = None) -> int:
    """Pick the rules file year used for a tax year.

    Uses the requested year if present, otherwise the nearest earlier year.
    If every file is newer than the requested year, the earliest one wins.

    Raises:
        ConfigNotFoundError: If no rule files exist at all
    """
    available = get_available_years(rules_dir)
    if not available:
        raise ConfigNotFoundError(
            f"No tax rules found in {rules_dir or _get_tax_rules_dir()}"
        )

    candidates = [y for y in available if y <= int(year)]
    if candidates:
        return candidates[0]
    return available[-1]


@lru_cache(maxsize=None)
def _load_rules_file(path: Path) -> TaxRules:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    try:
        return TaxRules.model_validate(data)
    except ValidationError as e:
        raise TaxConfigurationError(f"Invalid tax rules in {path}: {e}") from e


def load_tax_rules(year: int, rules_dir: Optional[Path] = None) -> TaxRules:
    """Load validated tax rules for a tax year.

    Args:
        year: Tax year (e.g., 2025)
        rules_dir: Directory with YYYY.yaml files (defaults to the packaged rules)

    Raises:
        ConfigNotFoundError: If no rules exist
        TaxConfigurationError: If the selected file fails validation
    """
    rules_dir = rules_dir or _get_tax_rules_dir()
    rules_year = resolve_rules_year(year, rules_dir)
    if rules_year != int(year):
        logger.debug(f"No tax rules for {year}, using {rules_year}")
    return _load_rules_file(rules_dir / f"{rules_year}.yaml")
