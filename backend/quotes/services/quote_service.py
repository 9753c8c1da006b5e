from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from core.services.currency_service import CurrencyService
from pricing.dataclasses import CalculationInput, CostBreakdown, Discount, ItemInput
from pricing.serializers import BreakdownSchemaError, parse_breakdown
from pricing.services.calculator import calculate_landed_cost
from pricing.services.tariffs import TariffConfig

from ..models import Quote
from .status_engine import handle_auto_calculation

logger = logging.getLogger(__name__)


def previous_insurance_rate(quote: Quote):
    """Insurance rate kept from the last stored breakdown, if it can be read."""
    if not quote.calculation_data:
        return None
    try:
        return parse_breakdown(quote.calculation_data).insurance_rate
    except BreakdownSchemaError as e:
        logger.warning("Quote %s has unreadable calculation_data (%s); using default insurance rate", quote.pk, e)
        return None


def build_calculation_input(quote: Quote) -> CalculationInput:
    preferred = getattr(quote.customer, 'preferred_currency', None) if quote.customer_id else None
    return CalculationInput(
        items=[
            ItemInput(
                name=item.name,
                unit_price_usd=item.unit_price_usd,
                quantity=item.quantity,
                weight_kg=item.weight_kg,
                hsn_code=item.hsn_code,
                use_hsn_rates=item.use_hsn_rates,
                discount_percentage=item.discount_percentage,
                product_url=item.product_url,
            )
            for item in quote.items.all()
        ],
        origin_country=quote.origin_country,
        destination_country=quote.destination_country,
        shipping_method=quote.shipping_method,
        insurance_required=quote.insurance_required,
        handling_fee_type=quote.handling_fee_type,
        payment_gateway=quote.payment_gateway,
        order_discount=Discount.from_dict(quote.order_discount),
        shipping_discount=Discount.from_dict(quote.shipping_discount),
        insurance_rate=previous_insurance_rate(quote),
        customer_currency=preferred or None,
    )


def recalculate_quote(
    quote: Quote,
    tariffs: Optional[TariffConfig] = None,
    currency_service: Optional[CurrencyService] = None,
    changed_by=None,
) -> CostBreakdown:
    """
    Recompute the breakdown from the quote's items and route and store it.
    A pending quote with a complete breakdown moves to `calculated`.
    """
    breakdown = calculate_landed_cost(
        build_calculation_input(quote),
        tariffs or TariffConfig.from_database(),
        currency_service,
    )
    with transaction.atomic():
        quote.calculation_data = breakdown.to_dict()
        quote.customer_currency = breakdown.customer_currency
        quote.total_usd = breakdown.total_usd
        quote.total_customer_currency = breakdown.total_customer_currency
        quote.calculated_at = timezone.now()
        quote.save(update_fields=[
            'calculation_data', 'customer_currency', 'total_usd',
            'total_customer_currency', 'calculated_at', 'updated_at',
        ])

    if quote.status == 'pending' and not breakdown.is_incomplete:
        handle_auto_calculation(quote.pk, metadata={'total_usd': str(breakdown.total_usd)}, changed_by=changed_by)
        quote.refresh_from_db(fields=['status'])
    return breakdown
