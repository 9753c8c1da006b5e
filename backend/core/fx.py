from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.conf import settings
from django.db.models import F
from django.utils.timezone import now

from .fx_providers import RateRow, load as load_provider
from .models import Country

logger = logging.getLogger(__name__)


def d(val) -> Decimal:
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


class EnvProvider:
    """
    Reads USD-based rates from the FX_RATES_FROM_USD env var as JSON.
    Example:
      FX_RATES_FROM_USD='{"INR": 83.25, "NPR": 133.1, "EUR": 0.92}'
    """
    source = "env"

    def __init__(self, as_of: datetime | None = None):
        self.as_of = as_of or now()
        blob = os.environ.get("FX_RATES_FROM_USD", "{}")
        try:
            self.table: Dict[str, float] = json.loads(blob)
        except ValueError:
            logger.exception("Invalid FX_RATES_FROM_USD JSON; falling back to empty table")
            self.table = {}

    def get_rate(self, currency: str) -> Decimal:
        currency = currency.upper()
        if currency == "USD":
            return Decimal(1)
        value = self.table.get(currency)
        if value is None:
            raise ValueError(f"No rate configured in FX_RATES_FROM_USD for {currency}")
        return d(value)

    def fetch(self, currencies: Iterable[str]) -> List[RateRow]:
        rows = []
        for code in currencies:
            try:
                rows.append(RateRow(self.as_of, code.upper(), self.get_rate(code), self.source))
            except ValueError as e:
                logger.warning("%s", e)
        return rows


def upsert_rate(currency: str, rate: Decimal, as_of: datetime) -> int:
    """Store the rate on every country using `currency`; returns the row count."""
    return Country.objects.filter(currency=currency.upper()).update(
        rate_from_usd=d(rate), rate_updated_at=as_of,
    )


def _warn_stale(currency: str, last_update: Optional[datetime], stale_hours: float) -> Optional[float]:
    if not last_update:
        return None
    age_hours = (now() - last_update).total_seconds() / 3600.0
    if age_hours > stale_hours:
        logger.warning("FX staleness: USD->%s latest %.1fh old", currency, age_hours)
    return age_hours


def _warn_anomaly(currency: str, prev_rate, new_rate, anomaly_pct: float) -> None:
    if not prev_rate or d(prev_rate) <= 0:
        return
    pct = float(abs(d(new_rate) - d(prev_rate)) / d(prev_rate))
    if pct > anomaly_pct:
        logger.warning(
            "FX anomaly: USD->%s changed by %.2f%% (old=%s new=%s)",
            currency, pct * 100.0, prev_rate, new_rate,
        )


def fetch_with_fallback(currencies: List[str], provider_name: Optional[str] = None) -> List[RateRow]:
    """Fetch from the named provider; on failure fall back to the env provider."""
    name = (provider_name or getattr(settings, "FX_PROVIDER", "env")).strip().lower()
    provider = load_provider(name)
    if isinstance(provider, EnvProvider):
        return provider.fetch(currencies)
    try:
        return provider.fetch(currencies)
    except Exception as e:
        logger.warning("FX provider %s failed, falling back to ENV: %s", name, e)
        return EnvProvider().fetch(currencies)


def refresh_rates(currencies: Optional[Iterable[str]] = None, provider=None) -> List[Dict]:
    """
    Pull USD-based rates and persist them on Country rows.
    `provider` is either a provider object exposing fetch(currencies) or a name
    understood by core.fx_providers.load. Returns a summary list.
    """
    stale_hours = float(getattr(settings, "FX_STALE_HOURS", 24))
    anomaly_pct = float(getattr(settings, "FX_ANOMALY_PCT", 0.05))

    if currencies:
        wanted = sorted({c.strip().upper() for c in currencies if c and c.strip()})
    else:
        wanted = sorted(set(Country.objects.exclude(currency="USD").values_list("currency", flat=True)))

    if provider is None or isinstance(provider, str):
        rows = fetch_with_fallback(wanted, provider)
    else:
        rows = provider.fetch(wanted)

    # Ascending so the most recently updated row per currency wins.
    previous = {
        c.currency: c
        for c in Country.objects.filter(currency__in=[r.currency for r in rows]).order_by(
            F("rate_updated_at").asc(nulls_first=True), "pk"
        )
    }
    summary: List[Dict] = []
    for r in rows:
        prev = previous.get(r.currency)
        age_hours = _warn_stale(r.currency, prev.rate_updated_at if prev else None, stale_hours)
        _warn_anomaly(r.currency, prev.rate_from_usd if prev else None, r.rate_from_usd, anomaly_pct)
        updated = upsert_rate(r.currency, r.rate_from_usd, r.as_of_ts)
        if not updated:
            logger.info("No country uses %s; rate not stored", r.currency)
        summary.append({
            "currency": r.currency,
            "rate_from_usd": str(r.rate_from_usd),
            "as_of": r.as_of_ts.isoformat(),
            "source": r.source,
            "countries_updated": updated,
            **({"previous_age_hours": round(age_hours, 1)} if age_hours is not None else {}),
        })
    missing = set(wanted) - {r.currency for r in rows}
    if missing:
        logger.warning("FX refresh: no rate returned for %s", ", ".join(sorted(missing)))
    return summary
