from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class RateRow:
    as_of_ts: datetime
    currency: str
    rate_from_usd: Decimal  # units of `currency` per 1 USD
    source: str


def load(name: Optional[str]):
    """
    Lazy-load an FX provider by name.
    - 'http', 'http_json', 'open_er' -> HttpJsonProvider
    - 'env', 'env_provider', None -> EnvProvider (from core.fx)
    """
    key = (name or "env").strip().lower()
    if key in {"http", "http_json", "open_er"}:
        from .http_json import HttpJsonProvider  # local import to avoid circulars
        return HttpJsonProvider()
    from core.fx import EnvProvider
    return EnvProvider()
