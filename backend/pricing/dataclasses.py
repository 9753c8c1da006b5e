from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .services.utils import ZERO, d

BREAKDOWN_KIND = "landed_cost"
BREAKDOWN_SCHEMA_VERSION = "v2"

DISCOUNT_TYPES = ("percentage", "fixed", "free")


@dataclass
class ItemInput:
    name: str
    unit_price_usd: Decimal
    quantity: int = 1
    weight_kg: Optional[Decimal] = None
    hsn_code: Optional[str] = None
    use_hsn_rates: bool = False
    discount_percentage: Decimal = ZERO
    product_url: str = ""

    @property
    def is_valid(self) -> bool:
        return bool((self.name or "").strip()) and d(self.unit_price_usd) > 0 and int(self.quantity or 0) > 0

    @property
    def gross(self) -> Decimal:
        return d(self.unit_price_usd) * int(self.quantity)

    @property
    def subtotal(self) -> Decimal:
        """Line total after the item's own discount (unrounded)."""
        discount = min(max(d(self.discount_percentage), ZERO), Decimal(100))
        return self.gross * (1 - discount / 100)


@dataclass
class Discount:
    """`percentage` (value in percent), `fixed` (USD) or `free` (shipping only)."""
    type: str
    value: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Discount"]:
        if not data:
            return None
        kind = str(data.get("type", "")).lower()
        if kind not in DISCOUNT_TYPES:
            raise ValueError(f"Unsupported discount type: {data.get('type')!r}")
        value = d(data.get("value", 0))
        if value < 0:
            raise ValueError("Discount value cannot be negative")
        if kind == "percentage" and value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return cls(type=kind, value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "value": str(self.value)}


@dataclass
class CalculationInput:
    items: List[ItemInput]
    origin_country: str
    destination_country: str
    shipping_method: str = "standard"
    insurance_required: bool = True
    handling_fee_type: str = "both"
    payment_gateway: str = "stripe"
    order_discount: Optional[Discount] = None
    shipping_discount: Optional[Discount] = None
    insurance_rate: Optional[Decimal] = None  # percent; None means the configured default
    customer_currency: Optional[str] = None


@dataclass
class ItemBreakdown:
    name: str
    quantity: int
    unit_price_usd: Decimal
    discount_percentage: Decimal
    subtotal: Decimal
    weight_kg: Decimal
    hsn_code: Optional[str]
    duty_rate: Decimal
    duty: Decimal


@dataclass
class CostBreakdown:
    """
    Result of one landed-cost calculation. Stored on Quote.calculation_data via
    to_dict(); read back with pricing.serializers.parse_breakdown.
    Contains nothing time dependent, so equal inputs give equal breakdowns.
    """
    origin_country: str
    destination_country: str
    shipping_method: str
    payment_gateway: str
    handling_fee_type: str
    items_subtotal: Decimal = ZERO
    item_discounts: Decimal = ZERO
    total_weight_kg: Decimal = ZERO
    shipping_base: Decimal = ZERO
    shipping_discount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    customs_rate: Decimal = ZERO
    customs_duty: Decimal = ZERO
    local_tax_name: str = ""
    local_tax_rate: Decimal = ZERO
    local_tax: Decimal = ZERO
    handling_fee: Decimal = ZERO
    gateway_fee_percent: Decimal = ZERO
    gateway_fee_fixed: Decimal = ZERO
    gateway_fee: Decimal = ZERO
    insurance_rate: Decimal = ZERO
    insurance: Decimal = ZERO
    order_discount: Decimal = ZERO
    total_usd: Decimal = ZERO
    customer_currency: str = "USD"
    exchange_rate: Decimal = Decimal("1")
    total_customer_currency: Decimal = ZERO
    conversion_fallback: bool = False
    valid_items: int = 0
    excluded_items: int = 0
    is_incomplete: bool = False
    items: List[ItemBreakdown] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    kind: str = BREAKDOWN_KIND
    schema_version: str = BREAKDOWN_SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return _json_safe(asdict(self))


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    return value
