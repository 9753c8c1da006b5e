from __future__ import annotations

import logging
from typing import Optional, Tuple

from django.conf import settings
from django.core.mail import send_mail
from django.template import Context, Template

from ..models import EmailSettings, EmailTemplate, Quote
from .status_config import StatusDefinition

logger = logging.getLogger(__name__)

CATEGORY_SETTING = {
    'quote': EmailSettings.QUOTES,
    'order': EmailSettings.ORDERS,
}

DEFAULT_SUBJECTS = {
    'quote_sent': "Your quote #{id} is ready",
    'quote_approved': "Quote #{id} approved",
    'quote_rejected': "Quote #{id} was rejected",
    'quote_expired': "Quote #{id} has expired",
    'payment_received': "Payment received for order #{id}",
    'order_placed': "Order #{id} has been placed",
    'order_shipped': "Order #{id} has shipped",
    'order_delivered': "Order #{id} was delivered",
    'order_cancelled': "Order #{id} was cancelled",
}

DEFAULT_BODY = (
    "Hello,\n\n"
    "The status of your {kind} #{id} is now: {label}.\n"
    "Total: {total} {currency}\n\n"
    "Thank you for shopping with iwishBag."
)


def notifications_enabled(category: str) -> bool:
    if not EmailSettings.is_enabled(EmailSettings.GLOBAL):
        return False
    key = CATEGORY_SETTING.get(category)
    return EmailSettings.is_enabled(key) if key else True


def recipient_for(quote: Quote) -> Optional[str]:
    if quote.customer_email:
        return quote.customer_email
    if quote.customer_id and quote.customer.email:
        return quote.customer.email
    return None


def render_status_email(quote: Quote, status: StatusDefinition) -> Tuple[str, str]:
    template = EmailTemplate.objects.filter(template_type=status.email_template, is_active=True).first()
    if template:
        ctx = Context({'quote': quote, 'status': status.name, 'status_label': status.label})
        return Template(template.subject).render(ctx).strip(), Template(template.body).render(ctx)

    subject = DEFAULT_SUBJECTS.get(status.email_template, "Update on #{id}").format(id=quote.pk)
    body = DEFAULT_BODY.format(
        kind='order' if status.counts_as_order else 'quote',
        id=quote.pk,
        label=status.label,
        total=quote.total_customer_currency,
        currency=quote.customer_currency,
    )
    return subject, body


def send_status_email(quote: Quote, status: StatusDefinition) -> bool:
    """
    Send the email configured for `status`. Returns True when a message went out.
    Mail errors propagate; the status engine isolates them.
    """
    if not status.triggers_email or not status.email_template:
        return False
    if not notifications_enabled(status.category):
        logger.info("Email notifications disabled for %s; skipping %s", status.category, status.email_template)
        return False
    to = recipient_for(quote)
    if not to:
        logger.info("Quote %s has no recipient email; skipping %s", quote.pk, status.email_template)
        return False
    subject, body = render_status_email(quote, status)
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to], fail_silently=False)
    logger.info("Sent %s email for quote %s to %s", status.email_template, quote.pk, to)
    return True
