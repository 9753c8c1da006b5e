from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Optional, Tuple

from django.conf import settings

from core.models import Country

from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

ONE = Decimal("1")

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$", "EUR": "€", "GBP": "£", "INR": "₹", "NPR": "₨", "CAD": "C$",
    "AUD": "A$", "JPY": "¥", "CNY": "¥", "SGD": "S$", "AED": "د.إ", "SAR": "ر.س",
    "EGP": "ج.م", "TRY": "₺", "IDR": "Rp", "MYR": "RM", "PHP": "₱", "THB": "฿",
    "VND": "₫", "KRW": "₩",
}

CURRENCY_NAMES: Dict[str, str] = {
    "USD": "US Dollar", "EUR": "Euro", "GBP": "British Pound", "INR": "Indian Rupee",
    "NPR": "Nepalese Rupee", "CAD": "Canadian Dollar", "AUD": "Australian Dollar",
    "JPY": "Japanese Yen", "CNY": "Chinese Yuan", "SGD": "Singapore Dollar",
    "AED": "UAE Dirham", "SAR": "Saudi Riyal", "EGP": "Egyptian Pound",
    "TRY": "Turkish Lira", "IDR": "Indonesian Rupiah", "MYR": "Malaysian Ringgit",
    "PHP": "Philippine Peso", "THB": "Thai Baht", "VND": "Vietnamese Dong",
    "KRW": "South Korean Won",
}

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "IDR"})

# Swapped separators: 1.234,56
COMMA_DECIMAL_CURRENCIES = frozenset({"EUR"})

MINIMUM_PAYMENT_AMOUNTS: Dict[str, Decimal] = {
    code: Decimal(v) for code, v in {
        "USD": 10, "EUR": 10, "GBP": 8, "INR": 750, "NPR": 1200, "CAD": 15,
        "AUD": 15, "JPY": 1100, "CNY": 70, "SGD": 15, "AED": 40, "SAR": 40,
        "EGP": 200, "TRY": 100, "IDR": 150000, "MYR": 45, "PHP": 550, "THB": 350,
        "VND": 240000, "KRW": 12000,
    }.items()
}
DEFAULT_MINIMUM_PAYMENT = Decimal("10")

COUNTRY_CURRENCIES: Dict[str, str] = {
    "US": "USD", "IN": "INR", "NP": "NPR", "CA": "CAD", "AU": "AUD", "GB": "GBP",
    "JP": "JPY", "CN": "CNY", "SG": "SGD", "AE": "AED", "SA": "SAR", "ID": "IDR",
    "MY": "MYR", "PH": "PHP", "TH": "THB", "VN": "VND", "KR": "KRW",
}


class CurrencyConversionError(Exception):
    """No usable exchange rate for a currency pair."""


# ---------------------------------------------------------------------------
# Rate sources
# ---------------------------------------------------------------------------

class RateSource:
    """Returns how many units of `currency` one USD buys, or None when unknown."""

    def get_rate_from_usd(self, currency: str) -> Optional[Decimal]:
        raise NotImplementedError


class CountryRateSource(RateSource):
    def get_rate_from_usd(self, currency: str) -> Optional[Decimal]:
        row = (
            Country.objects.filter(currency=currency, rate_from_usd__gt=0)
            .order_by("-rate_updated_at", "code")
            .values_list("rate_from_usd", flat=True)
            .first()
        )
        return Decimal(row) if row is not None else None


class StaticRateSource(RateSource):
    def __init__(self, table: Dict[str, object]):
        self.table = {k.upper(): Decimal(str(v)) for k, v in table.items()}

    def get_rate_from_usd(self, currency: str) -> Optional[Decimal]:
        return self.table.get(currency)


class RateCache:
    """
    TTL cache of USD-based rates. Expired entries stay around as last-known
    values for when the source fails.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds is None:
            ttl_seconds = getattr(settings, "CURRENCY_RATE_TTL_SECONDS", 300)
        self.ttl_seconds = float(ttl_seconds)
        self.clock = clock
        self._entries: Dict[str, Tuple[Decimal, float]] = {}

    def get(self, currency: str) -> Optional[Decimal]:
        entry = self._entries.get(currency)
        if entry is None:
            return None
        rate, stored_at = entry
        if self.clock() - stored_at > self.ttl_seconds:
            return None
        return rate

    def last_known(self, currency: str) -> Optional[Decimal]:
        entry = self._entries.get(currency)
        return entry[0] if entry else None

    def set(self, currency: str, rate: Decimal) -> None:
        self._entries[currency] = (rate, self.clock())

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True)
class RoundingRule:
    decimal_places: int
    round_to_nearest: int = 1


class CurrencyService:
    """
    Conversion and formatting between currencies using USD-based rates.

    A failing or empty rate source never blocks checkout: the last known rate is
    used, else 1:1, with a warning. Pass strict=True to get a
    CurrencyConversionError instead.
    """

    def __init__(
        self,
        rate_source: Optional[RateSource] = None,
        cache: Optional[RateCache] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.rate_source = rate_source or CountryRateSource()
        self.cache = cache if cache is not None else RateCache()
        self.policy = policy or RetryPolicy(attempts=2, backoff=0.1)

    # ---- rates -------------------------------------------------------------

    def _rate_from_usd(self, currency: str, strict: bool) -> Optional[Decimal]:
        if currency == "USD":
            return ONE
        cached = self.cache.get(currency)
        if cached is not None:
            return cached
        try:
            rate = self.policy.call(self.rate_source.get_rate_from_usd, currency)
        except Exception as e:
            logger.warning("Rate lookup for %s failed: %s", currency, e)
            rate = None
        if rate is not None and rate > 0:
            self.cache.set(currency, rate)
            return rate
        last = self.cache.last_known(currency)
        if last is not None:
            logger.warning("Using last known USD->%s rate %s", currency, last)
            return last
        if strict:
            raise CurrencyConversionError(f"No exchange rate available for {currency}")
        return None

    def get_exchange_rate(self, from_currency: str, to_currency: str, strict: bool = False) -> Decimal:
        from_currency = (from_currency or "USD").upper()
        to_currency = (to_currency or "USD").upper()
        if from_currency == to_currency:
            return ONE
        from_rate = self._rate_from_usd(from_currency, strict)
        to_rate = self._rate_from_usd(to_currency, strict)
        if from_rate is None or to_rate is None:
            logger.warning("No rate for %s->%s; using 1:1", from_currency, to_currency)
            return ONE
        return to_rate / from_rate

    def convert_amount(self, amount, from_currency: str, to_currency: str, strict: bool = False) -> Decimal:
        """Unrounded conversion; callers quantize for display or storage."""
        return Decimal(str(amount)) * self.get_exchange_rate(from_currency, to_currency, strict=strict)

    # ---- reference data ----------------------------------------------------

    def get_currency_for_country(self, country_code: str) -> str:
        code = (country_code or "").upper()
        currency = Country.objects.filter(code=code).values_list("currency", flat=True).first()
        if currency:
            return currency
        return COUNTRY_CURRENCIES.get(code, "USD")

    @staticmethod
    def currency_symbol(currency: str) -> str:
        return CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())

    @staticmethod
    def currency_name(currency: str) -> str:
        return CURRENCY_NAMES.get(currency.upper(), currency.upper())

    @staticmethod
    def decimal_places(currency: str) -> int:
        return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2

    def minimum_payment_amount(self, currency: str) -> Decimal:
        currency = currency.upper()
        value = (
            Country.objects.filter(currency=currency, minimum_payment_amount__gt=0)
            .values_list("minimum_payment_amount", flat=True)
            .first()
        )
        if value is not None:
            return Decimal(value)
        return MINIMUM_PAYMENT_AMOUNTS.get(currency, DEFAULT_MINIMUM_PAYMENT)

    def is_valid_payment_amount(self, amount, currency: str) -> bool:
        return Decimal(str(amount)) >= self.minimum_payment_amount(currency)

    # ---- formatting --------------------------------------------------------

    @staticmethod
    def value_category(currency: str) -> str:
        """Purchasing-power bucket derived from the fallback minimum payment."""
        minimum = MINIMUM_PAYMENT_AMOUNTS.get(currency.upper(), DEFAULT_MINIMUM_PAYMENT)
        if minimum >= 1000:
            return "ultra_low"
        if minimum >= 100:
            return "low"
        if minimum >= 20:
            return "medium"
        return "high"

    def rounding_rule(self, currency: str, amount: Decimal) -> RoundingRule:
        places = self.decimal_places(currency)
        size = abs(amount)
        if places == 0:
            return RoundingRule(0, 100 if size >= 10000 else 10 if size >= 1000 else 1)
        if self.value_category(currency) == "ultra_low":
            if size >= 10000:
                return RoundingRule(0, 100)
            if size >= 1000:
                return RoundingRule(0, 10)
            return RoundingRule(places)
        if size >= 1000:
            return RoundingRule(0, 10)
        if size >= 100:
            return RoundingRule(0, 1)
        return RoundingRule(places)

    def format_amount(self, amount, currency: str, smart_rounding: bool = False) -> str:
        currency = (currency or "USD").upper()
        value = Decimal(str(amount)) if amount is not None else Decimal("0")
        if smart_rounding:
            rule = self.rounding_rule(currency, value)
        else:
            rule = RoundingRule(self.decimal_places(currency))
        if rule.round_to_nearest > 1:
            step = Decimal(rule.round_to_nearest)
            value = (value / step).quantize(ONE, rounding=ROUND_HALF_UP) * step
        quantum = Decimal(1).scaleb(-rule.decimal_places)
        value = value.quantize(quantum, rounding=ROUND_HALF_UP)
        text = f"{value:,.{rule.decimal_places}f}"
        if currency in COMMA_DECIMAL_CURRENCIES:
            text = text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
        return f"{self.currency_symbol(currency)}{text}"
