"""
Checkout: which gateways a quote can be paid with, and what happens after
one is chosen.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.db import transaction

from core.services.currency_service import CurrencyService
from pricing.services.utils import ZERO, d, pct_of, q2
from quotes.models import Quote
from quotes.services.status_engine import TransitionResult, handle_payment_received

from ..models import PaymentGateway, PaymentTransaction

logger = logging.getLogger(__name__)

# Post-selection flow per gateway
GATEWAY_FLOWS: Dict[str, str] = {
    'stripe': 'inline',
    'paypal': 'redirect',
    'payu': 'redirect',
    'esewa': 'redirect',
    'khalti': 'redirect',
    'bank_transfer': 'manual',
    'cod': 'manual',
}
DEFAULT_FLOW = 'redirect'

PAYABLE_STATUSES = ('approved', 'payment_pending')


class GatewayUnavailable(Exception):
    pass


def gateway_flow(code: str) -> str:
    return GATEWAY_FLOWS.get((code or '').lower(), DEFAULT_FLOW)


def available_gateways(country: str, currency: str) -> List[PaymentGateway]:
    # JSON list membership is filtered in Python so SQLite and PostgreSQL behave the same.
    return [g for g in PaymentGateway.objects.filter(is_active=True).order_by('priority', 'code')
            if g.supports(country, currency)]


def estimate_fee(gateway: PaymentGateway, amount) -> Decimal:
    return q2(pct_of(amount, gateway.fee_percent) + d(gateway.fee_fixed))


def checkout_options(quote: Quote, currency_service: Optional[CurrencyService] = None) -> Dict:
    svc = currency_service or CurrencyService()
    currency = quote.customer_currency or svc.get_currency_for_country(quote.destination_country)
    amount = d(quote.total_customer_currency)
    if currency == 'USD':
        amount = d(quote.total_usd)

    gateways = available_gateways(quote.destination_country, currency)
    if not gateways and currency != 'USD':
        logger.info("No gateway takes %s for %s; offering USD checkout", currency, quote.destination_country)
        currency, amount = 'USD', d(quote.total_usd)
        gateways = available_gateways(quote.destination_country, currency)

    minimum = svc.minimum_payment_amount(currency)
    meets_minimum = amount >= minimum
    options = [
        {
            'code': g.code,
            'name': g.name,
            'flow': gateway_flow(g.code),
            'fee_percent': g.fee_percent,
            'fee_fixed': g.fee_fixed,
            'estimated_fee_usd': estimate_fee(g, quote.total_usd),
        }
        for g in gateways
    ]
    codes = [o['code'] for o in options]
    recommended = quote.payment_gateway if quote.payment_gateway in codes else (codes[0] if codes else None)

    return {
        'quote_id': quote.pk,
        'currency': currency,
        'amount': amount,
        'formatted_amount': svc.format_amount(amount, currency),
        'minimum_amount': minimum,
        'meets_minimum': meets_minimum,
        'payable': quote.status in PAYABLE_STATUSES and meets_minimum and bool(options),
        'gateways': options,
        'recommended_gateway': recommended,
    }


def record_payment(
    quote: Quote,
    gateway_code: str,
    amount,
    currency: str,
    reference: str = '',
    metadata: Optional[dict] = None,
    recorded_by=None,
) -> Tuple[PaymentTransaction, Optional[TransitionResult]]:
    """
    Store a completed payment and move the quote to paid when it qualifies.
    A repeated (gateway, reference) pair returns the stored transaction untouched.
    """
    code = (gateway_code or '').lower()
    gateway = PaymentGateway.objects.filter(code=code, is_active=True).first()
    if gateway is None:
        raise GatewayUnavailable(f"Payment gateway {gateway_code!r} is not available")
    amount = d(amount)
    if amount <= ZERO:
        raise ValueError("Payment amount must be positive")

    if reference:
        existing = PaymentTransaction.objects.filter(gateway_code=code, gateway_reference=reference).first()
        if existing:
            logger.info("Payment %s/%s already recorded as #%s", code, reference, existing.pk)
            return existing, None

    with transaction.atomic():
        txn = PaymentTransaction.objects.create(
            quote=quote,
            gateway_code=code,
            amount=q2(amount),
            currency=(currency or 'USD').upper(),
            status='completed',
            gateway_reference=reference or '',
            metadata=metadata or {},
            recorded_by=recorded_by if getattr(recorded_by, 'pk', None) else None,
        )
    logger.info("Recorded %s payment #%s for quote %s: %s %s", code, txn.pk, quote.pk, txn.amount, txn.currency)

    result = handle_payment_received(
        quote.pk,
        metadata={'transaction_id': txn.pk, 'gateway': code, 'amount': str(txn.amount), 'currency': txn.currency},
        changed_by=recorded_by,
    )
    return txn, result
