"""Per-taxpayer tax settings storage.

Calculations receive a SettingsProvider instead of reading settings from a
global location. Every provider follows the same default rule: a taxpayer
with no stored settings gets TaxSettings() (FLAT, STANDARD), which is stored
on first access. Stored values that are not valid regimes or plans raise
TaxConfigurationError rather than being replaced by defaults.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .config import load_profile, save_profile
from .schemas import TaxSettings
from .taxes.schemas import TaxConfigurationError

logger = logging.getLogger(__name__)

PROFILE_SECTION = "taxpayers"


def parse_tax_settings(data: Dict[str, Any], taxpayer_id: str = "") -> TaxSettings:
    """Validate stored settings data.

    Raises:
        TaxConfigurationError: If the data has unknown regimes, plans or fields
    """
    try:
        return TaxSettings.model_validate(data)
    except ValidationError as e:
        who = f" for taxpayer '{taxpayer_id}'" if taxpayer_id else ""
        raise TaxConfigurationError(f"Invalid tax settings{who}: {e}") from e


def merge_settings(current: TaxSettings, changes: Dict[str, Any], taxpayer_id: str = "") -> TaxSettings:
    """Apply a partial update. Keys set to None clear optional fields."""
    data = current.model_dump(mode="json")
    data.update(changes)
    return parse_tax_settings(data, taxpayer_id)


class SettingsProvider(ABC):
    """Source of per-taxpayer TaxSettings."""

    @abstractmethod
    def _read(self, taxpayer_id: str) -> Optional[Dict[str, Any]]:
        """Raw stored settings, or None if the taxpayer has none yet."""

    @abstractmethod
    def _write(self, taxpayer_id: str, data: Dict[str, Any]) -> None:
        """Persist raw settings."""

    def get_settings(self, taxpayer_id: str) -> TaxSettings:
        """Settings for a taxpayer, creating the defaults on first access."""
        stored = self._read(taxpayer_id)
        if stored is None:
            settings = TaxSettings()
            logger.debug(f"Creating default tax settings for taxpayer '{taxpayer_id}'")
            self._write(taxpayer_id, settings.model_dump(mode="json"))
            return settings
        return parse_tax_settings(stored, taxpayer_id)

    def update_settings(self, taxpayer_id: str, **changes: Any) -> TaxSettings:
        """Change some settings fields and store the result.

        Raises:
            TaxConfigurationError: If the result is not valid
        """
        updated = merge_settings(self.get_settings(taxpayer_id), changes, taxpayer_id)
        self._write(taxpayer_id, updated.model_dump(mode="json"))
        return updated


class InMemorySettingsProvider(SettingsProvider):
    """Settings kept in a dict, keyed by taxpayer id."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._store: Dict[str, Dict[str, Any]] = {}
        for taxpayer_id, data in (initial or {}).items():
            if isinstance(data, TaxSettings):
                data = data.model_dump(mode="json")
            self._store[taxpayer_id] = dict(data)

    def _read(self, taxpayer_id: str) -> Optional[Dict[str, Any]]:
        stored = self._store.get(taxpayer_id)
        return dict(stored) if stored is not None else None

    def _write(self, taxpayer_id: str, data: Dict[str, Any]) -> None:
        self._store[taxpayer_id] = dict(data)


class ProfileSettingsProvider(SettingsProvider):
    """Settings stored in profile.yaml under taxpayers.<id>.

        taxpayers:
          default:
            regime: LUMPSUM
            contribution_plan: REDUCED_PLUS
            custom_lumpsum_rate_percent: 8.5
    """

    def _read(self, taxpayer_id: str) -> Optional[Dict[str, Any]]:
        profile = load_profile(require_exists=False)
        section = profile.get(PROFILE_SECTION) or {}
        stored = section.get(taxpayer_id)
        if stored is None:
            return None
        if not isinstance(stored, dict):
            raise TaxConfigurationError(
                f"profile.yaml {PROFILE_SECTION}.{taxpayer_id} must be a mapping"
            )
        return stored

    def _write(self, taxpayer_id: str, data: Dict[str, Any]) -> None:
        profile = load_profile(require_exists=False)
        section = profile.get(PROFILE_SECTION)
        if not isinstance(section, dict):
            section = {}
        section[taxpayer_id] = {k: v for k, v in data.items() if v is not None}
        profile[PROFILE_SECTION] = section
        save_profile(profile)

    def list_taxpayers(self) -> list:
        profile = load_profile(require_exists=False)
        return sorted((profile.get(PROFILE_SECTION) or {}).keys())
