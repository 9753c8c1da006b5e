"""
Tariff configuration for the landed-cost calculator.

Everything the calculator needs besides the quote itself lives here: country
duty/tax schedules, HSN overrides, shipping rates per kg, handling fees, gateway
fees and the default insurance rate. Rates are stored in percent.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, List, Optional

from .utils import ZERO, d

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountryTax:
    customs_rate: Decimal
    local_tax_rate: Decimal
    local_tax_name: str
    currency: str = "USD"


@dataclass(frozen=True)
class GatewayFee:
    percent: Decimal
    fixed: Decimal
    name: str = ""


DEFAULT_COUNTRY_TAXES: Dict[str, CountryTax] = {
    "IN": CountryTax(Decimal("20"), Decimal("18"), "GST", "INR"),
    "NP": CountryTax(Decimal("15"), Decimal("13"), "VAT", "NPR"),
    "US": CountryTax(ZERO, ZERO, "Sales Tax", "USD"),
    "CA": CountryTax(Decimal("5"), Decimal("13"), "GST/PST", "CAD"),
    "GB": CountryTax(Decimal("10"), Decimal("20"), "VAT", "GBP"),
    "AU": CountryTax(Decimal("5"), Decimal("10"), "GST", "AUD"),
}

DEFAULT_HSN_RATES: Dict[str, Dict[str, Decimal]] = {
    "IN": {"6109": Decimal("12"), "8517": Decimal("18"), "8471": ZERO, "6204": Decimal("12")},
    "NP": {"6109": Decimal("10"), "8517": Decimal("15"), "8471": Decimal("5"), "6204": Decimal("10")},
}

HSN_DESCRIPTIONS = {
    "6109": "T-shirts, singlets and other vests, knitted",
    "8517": "Telephone sets, smartphones",
    "8471": "Computers and processing units",
    "6204": "Women's suits, dresses and skirts",
}

DEFAULT_SHIPPING_RATES: Dict[str, Decimal] = {
    "standard": Decimal("25"),
    "express": Decimal("40"),
    "economy": Decimal("15"),
}

DEFAULT_GATEWAY_FEES: Dict[str, GatewayFee] = {
    "stripe": GatewayFee(Decimal("2.9"), Decimal("0.30"), "Stripe"),
    "paypal": GatewayFee(Decimal("2.9"), Decimal("0.30"), "PayPal"),
    "esewa": GatewayFee(Decimal("2.0"), ZERO, "eSewa"),
    "khalti": GatewayFee(Decimal("2.5"), ZERO, "Khalti"),
    "payu": GatewayFee(Decimal("2.0"), ZERO, "PayU"),
}

HANDLING_FEE_TYPES = ("fixed", "percentage", "both")

UNKNOWN_COUNTRY_TAX = CountryTax(ZERO, ZERO, "", "USD")


@dataclass
class TariffConfig:
    countries: Dict[str, CountryTax] = field(default_factory=dict)
    hsn_rates: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    shipping_rates: Dict[str, Decimal] = field(default_factory=dict)
    gateway_fees: Dict[str, GatewayFee] = field(default_factory=dict)
    minimum_shipping: Decimal = Decimal("25")
    default_item_weight_kg: Decimal = Decimal("0.5")
    handling_fixed: Decimal = Decimal("10")
    handling_percent: Decimal = Decimal("2")
    insurance_rate: Decimal = Decimal("1.5")
    default_shipping_method: str = "standard"
    default_gateway: str = "stripe"

    @classmethod
    def defaults(cls) -> "TariffConfig":
        return cls(
            countries=dict(DEFAULT_COUNTRY_TAXES),
            hsn_rates={k: dict(v) for k, v in DEFAULT_HSN_RATES.items()},
            shipping_rates=dict(DEFAULT_SHIPPING_RATES),
            gateway_fees=dict(DEFAULT_GATEWAY_FEES),
        )

    @classmethod
    def from_database(cls) -> "TariffConfig":
        """Defaults overlaid with Country tax columns and active PaymentGateway fees."""
        from core.models import Country
        from payments.models import PaymentGateway

        config = cls.defaults()
        for c in Country.objects.all():
            base = config.countries.get(c.code)
            if c.customs_rate is None and c.local_tax_rate is None and base is None:
                continue
            base = base or UNKNOWN_COUNTRY_TAX
            config.countries[c.code] = CountryTax(
                customs_rate=d(c.customs_rate) if c.customs_rate is not None else base.customs_rate,
                local_tax_rate=d(c.local_tax_rate) if c.local_tax_rate is not None else base.local_tax_rate,
                local_tax_name=c.local_tax_name or base.local_tax_name,
                currency=c.currency or base.currency,
            )
        for g in PaymentGateway.objects.filter(is_active=True):
            config.gateway_fees[g.code] = GatewayFee(d(g.fee_percent), d(g.fee_fixed), g.name)
        return config

    def with_overrides(self, **changes) -> "TariffConfig":
        return replace(self, **changes)

    # ---- lookups -----------------------------------------------------------

    def country_tax(self, country: str) -> Optional[CountryTax]:
        return self.countries.get((country or "").upper())

    def hsn_rate(self, hsn_code: Optional[str], country: str) -> Optional[Decimal]:
        """Exact code first, then its 4-digit heading."""
        if not hsn_code:
            return None
        table = self.hsn_rates.get((country or "").upper(), {})
        code = "".join(ch for ch in str(hsn_code) if ch.isdigit())
        if code in table:
            return table[code]
        return table.get(code[:4])

    def shipping_rate(self, method: str) -> Optional[Decimal]:
        return self.shipping_rates.get((method or "").lower())

    def gateway_fee(self, code: str) -> Optional[GatewayFee]:
        return self.gateway_fees.get((code or "").lower())


def _config(tariffs: Optional[TariffConfig]) -> TariffConfig:
    return tariffs or TariffConfig.defaults()


def tax_info(country: str, tariffs: Optional[TariffConfig] = None) -> Dict:
    tax = _config(tariffs).country_tax(country)
    known = tax is not None
    tax = tax or UNKNOWN_COUNTRY_TAX
    return {
        "country": (country or "").upper(),
        "customs_rate": tax.customs_rate,
        "local_tax_rate": tax.local_tax_rate,
        "local_tax_name": tax.local_tax_name,
        "currency": tax.currency,
        "known": known,
    }


def shipping_methods(tariffs: Optional[TariffConfig] = None) -> List[Dict]:
    config = _config(tariffs)
    return [
        {"method": method, "rate_per_kg": rate, "minimum": config.minimum_shipping}
        for method, rate in sorted(config.shipping_rates.items(), key=lambda kv: kv[1])
    ]


def gateway_options(tariffs: Optional[TariffConfig] = None) -> List[Dict]:
    return [
        {"code": code, "name": fee.name or code, "fee_percent": fee.percent, "fee_fixed": fee.fixed}
        for code, fee in sorted(_config(tariffs).gateway_fees.items())
    ]


def hsn_info(hsn_code: str, country: str, tariffs: Optional[TariffConfig] = None) -> Optional[Dict]:
    rate = _config(tariffs).hsn_rate(hsn_code, country)
    if rate is None:
        return None
    return {
        "hsn_code": hsn_code,
        "country": (country or "").upper(),
        "rate": rate,
        "description": HSN_DESCRIPTIONS.get(str(hsn_code)[:4], ""),
    }
