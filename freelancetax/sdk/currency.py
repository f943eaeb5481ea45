"""Currency conversion to PLN.

The tax calculation only depends on CurrencyConversionProvider.convert().
Providers:

- StaticRateProvider: fixed rates, per currency or per (currency, date)
- NbpRateProvider: National Bank of Poland table A mid rates over HTTP,
  cached by (currency, date) in memory and in the XDG cache directory
- CachingConversionProvider: memoizes any provider for one calculation run

A provider that cannot produce a rate raises ConversionUnavailable. Callers
must not treat unconverted foreign income as zero.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import requests

from .config import get_cache_path, get_setting
from .schemas import LOCAL_CURRENCY

logger = logging.getLogger(__name__)

NBP_API_BASE = "https://api.nbp.pl/api/exchangerates/rates/a"
NBP_LOOKBACK_DAYS = 7
RATE_CACHE_FILENAME = "nbp_rates.json"


class ConversionUnavailable(Exception):
    """Raised when an amount cannot be converted to PLN."""

    def __init__(self, currency: str, as_of: date, reason: str = ""):
        self.currency = currency
        self.as_of = as_of
        self.reason = reason
        message = f"No {currency}/PLN rate available for {as_of.isoformat()}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CurrencyConversionProvider(ABC):
    """Converts an amount in a foreign currency to PLN as of a date."""

    @abstractmethod
    def convert(self, amount: float, currency: str, as_of: date) -> float:
        """Return amount expressed in PLN.

        Raises:
            ConversionUnavailable: If no rate can be determined
        """


class StaticRateProvider(CurrencyConversionProvider):
    """Fixed exchange rates.

    Rates are keyed by currency code, or by (currency code, date) for
    date-specific rates. Date-specific rates win over plain ones.

        StaticRateProvider({"EUR": 4.30, ("USD", date(2025, 1, 31)): 4.07})
    """

    def __init__(self, rates: Dict[Union[str, Tuple[str, date]], float]):
        self.rates = {}
        for key, rate in rates.items():
            if isinstance(key, tuple):
                self.rates[(key[0].upper(), key[1])] = rate
            else:
                self.rates[key.upper()] = rate

    def convert(self, amount: float, currency: str, as_of: date) -> float:
        code = currency.upper()
        if code == LOCAL_CURRENCY:
            return amount
        rate = self.rates.get((code, as_of), self.rates.get(code))
        if rate is None:
            raise ConversionUnavailable(code, as_of, "no static rate configured")
        return amount * rate


class NbpRateProvider(CurrencyConversionProvider):
    """Exchange rates from the NBP API (table A, mid rate).

    Income must be converted at the rate from the business day before the
    transaction, so use_previous_day defaults to True. When NBP has no table
    for a day (weekend, holiday), earlier days are tried, up to a week back.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        api_base: Optional[str] = None,
        use_previous_day: bool = True,
        cache_file: Optional[Path] = None,
        timeout: float = 10.0,
    ):
        self.session = session or requests.Session()
        self.api_base = (api_base or get_setting("nbp_api_base") or NBP_API_BASE).rstrip("/")
        self.use_previous_day = use_previous_day
        self.cache_file = cache_file
        self.timeout = timeout
        self._rates: Optional[Dict[str, float]] = None

    # --- cache ---

    def _cache_path(self) -> Path:
        if self.cache_file is None:
            self.cache_file = get_cache_path() / RATE_CACHE_FILENAME
        return self.cache_file

    def _load_cache(self) -> Dict[str, float]:
        if self._rates is None:
            path = self._cache_path()
            self._rates = {}
            if path.exists():
                try:
                    with open(path) as f:
                        self._rates = json.load(f)
                except (json.JSONDecodeError, IOError) as e:
                    logger.warning(f"Ignoring unreadable rate cache {path}: {e}")
        return self._rates

    def _store(self, key: str, rate: float) -> None:
        rates = self._load_cache()
        rates[key] = rate
        path = self._cache_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(rates, f, indent=2, sort_keys=True)
        except OSError as e:
            logger.warning(f"Could not write rate cache {path}: {e}")

    # --- lookup ---

    def _fetch(self, currency: str, rate_date: date) -> Optional[float]:
        """Fetch one day's mid rate. None if NBP has no table for that day."""
        url = f"{self.api_base}/{currency.lower()}/{rate_date.isoformat()}/?format=json"
        logger.debug(f"[NBP] Fetching rate from: {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ConversionUnavailable(currency, rate_date, f"request failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise ConversionUnavailable(
                currency, rate_date, f"NBP API error: {response.status_code}"
            )

        try:
            return float(response.json()["rates"][0]["mid"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ConversionUnavailable(currency, rate_date, f"unexpected NBP response: {e}") from e

    def get_rate(self, currency: str, rate_date: date) -> float:
        """Mid rate for currency on rate_date, or the closest earlier table.

        Raises:
            ConversionUnavailable: If no table exists within the lookback window
        """
        code = currency.upper()
        if code == LOCAL_CURRENCY:
            return 1.0

        key = f"{code}|{rate_date.isoformat()}"
        rates = self._load_cache()
        if key in rates:
            logger.debug(f"[NBP] Cache hit for {code} on {rate_date.isoformat()}")
            return rates[key]

        for days_back in range(NBP_LOOKBACK_DAYS + 1):
            check_date = rate_date - timedelta(days=days_back)
            rate = self._fetch(code, check_date)
            if rate is not None:
                if days_back:
                    logger.info(
                        f"[NBP] No rate for {code} on {rate_date.isoformat()}, "
                        f"using {check_date.isoformat()}"
                    )
                self._store(key, rate)
                return rate

        raise ConversionUnavailable(
            code, rate_date, f"no NBP table within {NBP_LOOKBACK_DAYS} days"
        )

    def convert(self, amount: float, currency: str, as_of: date) -> float:
        code = currency.upper()
        if code == LOCAL_CURRENCY:
            return amount

        rate_date = as_of - timedelta(days=1) if self.use_previous_day else as_of
        rate = self.get_rate(code, rate_date)
        return round(amount * rate, 2)


class CachingConversionProvider(CurrencyConversionProvider):
    """Memoizes conversions of another provider.

    Meant to live for one calculation run: yearly summaries re-derive YTD
    for every month and would otherwise convert the same invoices repeatedly.
    Failures are not cached.
    """

    def __init__(self, provider: CurrencyConversionProvider):
        self.provider = provider
        self._converted: Dict[Tuple[str, date, float], float] = {}

    def convert(self, amount: float, currency: str, as_of: date) -> float:
        code = currency.upper()
        if code == LOCAL_CURRENCY:
            return amount

        key = (code, as_of, amount)
        if key not in self._converted:
            self._converted[key] = self.provider.convert(amount, code, as_of)
        return self._converted[key]
