"""
Landed-cost calculator.

Turns a CalculationInput into a CostBreakdown. Components are applied in a
fixed order: item discounts, shipping discount, customs duty, local tax,
handling, gateway fee, insurance, order discount. Every component is quantized
to cents and the USD total is the sum of the quantized components.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from core.services.currency_service import COUNTRY_CURRENCIES, CurrencyConversionError, CurrencyService

from ..dataclasses import CalculationInput, CostBreakdown, ItemBreakdown
from .tariffs import HANDLING_FEE_TYPES, TariffConfig
from .utils import ZERO, d, pct_of, q2, quantize_for

logger = logging.getLogger(__name__)


class CalculationError(Exception):
    """Raised when the calculation input cannot be priced at all."""
    pass


def _warn(warnings: List[str], message: str, *args) -> None:
    text = message % args if args else message
    logger.warning(text)
    warnings.append(text)


def _item_weight(item, tariffs: TariffConfig) -> Decimal:
    """Missing or non-positive weights use the per-unit default."""
    weight = d(item.weight_kg)
    return weight if weight > 0 else tariffs.default_item_weight_kg


def _customer_currency(inp: CalculationInput, tariffs: TariffConfig) -> str:
    if inp.customer_currency:
        return inp.customer_currency.upper()
    tax = tariffs.country_tax(inp.destination_country)
    if tax is not None:
        return tax.currency
    return COUNTRY_CURRENCIES.get((inp.destination_country or "").upper(), "USD")


def calculate_landed_cost(
    inp: CalculationInput,
    tariffs: Optional[TariffConfig] = None,
    currency_service: Optional[CurrencyService] = None,
) -> CostBreakdown:
    if not inp.destination_country:
        raise CalculationError("destination_country is required")

    tariffs = tariffs or TariffConfig.defaults()
    currency_service = currency_service or CurrencyService()
    warnings: List[str] = []

    destination = inp.destination_country.upper()
    origin = (inp.origin_country or "").upper()

    method = (inp.shipping_method or "").lower()
    rate_per_kg = tariffs.shipping_rate(method)
    if rate_per_kg is None:
        _warn(warnings, "Unknown shipping method %r; using %s", inp.shipping_method, tariffs.default_shipping_method)
        method = tariffs.default_shipping_method
        rate_per_kg = tariffs.shipping_rate(method)

    gateway = (inp.payment_gateway or "").lower()
    fee = tariffs.gateway_fee(gateway)
    if fee is None:
        _warn(warnings, "Unknown payment gateway %r; using %s fees", inp.payment_gateway, tariffs.default_gateway)
        gateway = tariffs.default_gateway
        fee = tariffs.gateway_fee(gateway)

    handling_type = (inp.handling_fee_type or "both").lower()
    if handling_type not in HANDLING_FEE_TYPES:
        _warn(warnings, "Unknown handling fee type %r; using both", inp.handling_fee_type)
        handling_type = "both"

    tax = tariffs.country_tax(destination)
    if tax is None:
        _warn(warnings, "No duty/tax schedule for %s; duty and tax set to 0", destination)
        customs_rate, tax_rate, tax_name = ZERO, ZERO, ""
    else:
        customs_rate, tax_rate, tax_name = tax.customs_rate, tax.local_tax_rate, tax.local_tax_name

    result = CostBreakdown(
        origin_country=origin,
        destination_country=destination,
        shipping_method=method,
        payment_gateway=gateway,
        handling_fee_type=handling_type,
        customs_rate=customs_rate,
        local_tax_rate=tax_rate,
        local_tax_name=tax_name,
        gateway_fee_percent=fee.percent,
        gateway_fee_fixed=fee.fixed,
        warnings=warnings,
    )

    valid = [item for item in inp.items if item.is_valid]
    result.valid_items = len(valid)
    result.excluded_items = len(inp.items) - len(valid)
    if result.excluded_items:
        logger.info("Excluded %d invalid item(s) from calculation", result.excluded_items)

    customer_currency = _customer_currency(inp, tariffs)
    if not valid:
        result.is_incomplete = True
        result.customer_currency = customer_currency
        result.insurance_rate = d(inp.insurance_rate) if inp.insurance_rate is not None else tariffs.insurance_rate
        return result

    # 1. items
    gross = sum((item.gross for item in valid), ZERO)
    subtotal = q2(sum((item.subtotal for item in valid), ZERO))
    result.items_subtotal = subtotal
    result.item_discounts = q2(gross) - subtotal

    # 2. shipping, then shipping discount
    total_weight = ZERO
    for item in valid:
        weight = _item_weight(item, tariffs)
        total_weight += weight * int(item.quantity)
    result.total_weight_kg = total_weight
    shipping_base = q2(max(total_weight * rate_per_kg, tariffs.minimum_shipping))
    shipping_discount = ZERO
    sd = inp.shipping_discount
    if sd is not None:
        if sd.type == "free":
            shipping_discount = shipping_base
        elif sd.type == "percentage":
            shipping_discount = q2(pct_of(shipping_base, min(sd.value, Decimal(100))))
        else:
            shipping_discount = min(q2(sd.value), shipping_base)
    result.shipping_base = shipping_base
    result.shipping_discount = shipping_discount
    result.shipping_cost = shipping_base - shipping_discount

    # 3. customs duty, per item with optional HSN override
    duty_total = ZERO
    for item in valid:
        rate = customs_rate
        if item.use_hsn_rates:
            hsn_rate = tariffs.hsn_rate(item.hsn_code, destination)
            if hsn_rate is not None:
                rate = hsn_rate
            elif item.hsn_code:
                _warn(warnings, "HSN %s has no rate for %s; using default customs rate", item.hsn_code, destination)
        line_duty = pct_of(item.subtotal, rate)
        duty_total += line_duty
        result.items.append(ItemBreakdown(
            name=item.name.strip(),
            quantity=int(item.quantity),
            unit_price_usd=d(item.unit_price_usd),
            discount_percentage=d(item.discount_percentage),
            subtotal=q2(item.subtotal),
            weight_kg=_item_weight(item, tariffs),
            hsn_code=item.hsn_code or None,
            duty_rate=rate,
            duty=q2(line_duty),
        ))
    result.customs_duty = q2(duty_total)

    # 4. local tax on goods plus duty
    result.local_tax = q2(pct_of(subtotal + result.customs_duty, tax_rate))

    # 5. handling
    handling = ZERO
    if handling_type in ("fixed", "both"):
        handling += tariffs.handling_fixed
    if handling_type in ("percentage", "both"):
        handling += pct_of(subtotal, tariffs.handling_percent)
    result.handling_fee = q2(handling)

    # 6. gateway fee on everything charged so far
    running = subtotal + result.shipping_cost + result.customs_duty + result.local_tax + result.handling_fee
    result.gateway_fee = q2(pct_of(running, fee.percent) + fee.fixed)

    # 7. insurance
    insurance_rate = d(inp.insurance_rate) if inp.insurance_rate is not None else tariffs.insurance_rate
    result.insurance_rate = insurance_rate
    if inp.insurance_required:
        result.insurance = q2(pct_of(subtotal, insurance_rate))

    # 8. order discount, capped at the items subtotal
    running += result.gateway_fee + result.insurance
    od = inp.order_discount
    if od is not None:
        if od.type == "percentage":
            discount = q2(pct_of(running, min(od.value, Decimal(100))))
        elif od.type == "fixed":
            discount = q2(od.value)
        else:
            raise CalculationError("Order discount must be 'percentage' or 'fixed'")
        result.order_discount = min(discount, subtotal)

    # 9. total
    result.total_usd = max(running - result.order_discount, ZERO)

    # 10. customer currency
    try:
        rate = currency_service.get_exchange_rate("USD", customer_currency, strict=True)
        result.customer_currency = customer_currency
        result.exchange_rate = rate
        result.total_customer_currency = quantize_for(
            result.total_usd * rate, currency_service.decimal_places(customer_currency)
        )
    except CurrencyConversionError as e:
        _warn(warnings, "Currency conversion to %s failed (%s); showing USD", customer_currency, e)
        result.customer_currency = "USD"
        result.exchange_rate = Decimal("1")
        result.total_customer_currency = result.total_usd
        result.conversion_fallback = True

    return result
