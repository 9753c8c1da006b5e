from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import requests
from django.conf import settings
from django.utils.timezone import now

from core.services.retry_policy import RetryPolicy

from . import RateRow


def d(val) -> Decimal:
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


class HttpJsonProvider:
    """
    Fetches USD-based rates from a JSON endpoint shaped like
    {"base_code": "USD", "time_last_update_unix": 1700000000, "rates": {"INR": 83.1, ...}}.
    """
    source = "http"

    def __init__(self, url: Optional[str] = None, policy: Optional[RetryPolicy] = None) -> None:
        self.url = url or getattr(settings, "FX_RATES_URL", "")
        self.policy = policy or RetryPolicy(attempts=3, backoff=1.0, timeout=15)

    def _fetch_json(self) -> dict:
        headers = {"Accept": "application/json", "User-Agent": "iwishBagFX/1.0"}
        resp = requests.get(self.url, headers=headers, timeout=self.policy.timeout)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _parse_rates(payload: dict) -> Dict[str, Decimal]:
        base = (payload.get("base_code") or payload.get("base") or "USD").upper()
        if base != "USD":
            raise RuntimeError(f"FX feed is based on {base}, expected USD")
        raw = payload.get("rates")
        if not isinstance(raw, dict) or not raw:
            raise RuntimeError("FX feed: rates table not found")
        rates: Dict[str, Decimal] = {}
        for code, value in raw.items():
            try:
                rate = d(value)
            except (InvalidOperation, ValueError):
                continue
            if rate > 0:
                rates[code.upper()] = rate
        return rates

    @staticmethod
    def _as_of(payload: dict) -> datetime:
        ts = payload.get("time_last_update_unix")
        if ts:
            return datetime.fromtimestamp(int(ts), tz=timezone.utc)
        return now()

    def fetch(self, currencies: Iterable[str]) -> List[RateRow]:
        payload = self.policy.call(self._fetch_json)
        rates = self._parse_rates(payload)
        as_of = self._as_of(payload)
        rows: List[RateRow] = []
        for code in currencies:
            code = code.upper()
            if code in rates:
                rows.append(RateRow(as_of, code, rates[code], self.source))
        return rows
