"""
Status transition engine.

A transition validates the (from, to) pair against the workflow allow-list,
updates the quote row guarded on its current status, then appends a
StatusTransition row and sends the status email. The log row and the email are
best-effort: their failures are logged and never undo or fail the transition.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..models import Quote, StatusTransition
from .notifications import send_status_email
from .status_config import get_status_workflow

logger = logging.getLogger(__name__)

TRIGGERS = {choice for choice, _ in StatusTransition.TRIGGER_CHOICES}


class StatusTransitionError(Exception):
    pass


class InvalidTransition(StatusTransitionError):
    pass


class QuoteNotFound(StatusTransitionError):
    pass


class StatusConflict(StatusTransitionError):
    """The quote is no longer in the expected from-status."""
    pass


@dataclass
class TransitionResult:
    quote_id: int
    from_status: str
    to_status: str
    trigger: str
    logged: bool = False
    email_sent: bool = False
    share_token: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class BulkUpdateResult:
    succeeded: List[int] = field(default_factory=list)
    failed: List[Dict] = field(default_factory=list)


def _log_transition(quote_id, from_status, to_status, trigger, metadata, changed_by) -> bool:
    try:
        with transaction.atomic():
            StatusTransition.objects.create(
                quote_id=quote_id,
                from_status=from_status,
                to_status=to_status,
                trigger=trigger,
                metadata=metadata or {},
                changed_by=changed_by if getattr(changed_by, 'pk', None) else None,
            )
        return True
    except Exception:
        logger.exception("Could not log transition %s -> %s for quote %s", from_status, to_status, quote_id)
        return False


def _notify(quote_id, to_status) -> bool:
    try:
        definition = get_status_workflow().get(to_status)
        if definition is None or not definition.triggers_email:
            return False
        quote = Quote.objects.select_related('customer').get(pk=quote_id)
        return send_status_email(quote, definition)
    except Exception:
        logger.exception("Could not send %s email for quote %s", to_status, quote_id)
        return False


def transition(
    quote_id: int,
    from_status: str,
    to_status: str,
    trigger: str = 'manual',
    metadata: Optional[dict] = None,
    changed_by=None,
) -> TransitionResult:
    workflow = get_status_workflow()
    if not workflow.can_transition(from_status, to_status):
        raise InvalidTransition(f"Transition {from_status} -> {to_status} is not allowed")
    if trigger not in TRIGGERS:
        raise InvalidTransition(f"Unknown trigger: {trigger}")

    now = timezone.now()
    updates = {'status': to_status, 'updated_at': now}
    result = TransitionResult(quote_id, from_status, to_status, trigger)
    if to_status == 'sent':
        result.share_token = secrets.token_urlsafe(24)
        result.expires_at = now + timedelta(days=getattr(settings, 'QUOTE_VALIDITY_DAYS', 7))
        updates.update(share_token=result.share_token, expires_at=result.expires_at)

    with transaction.atomic():
        updated = Quote.objects.filter(pk=quote_id, status=from_status).update(**updates)
    if not updated:
        current = Quote.objects.filter(pk=quote_id).values_list('status', flat=True).first()
        if current is None:
            raise QuoteNotFound(f"Quote {quote_id} does not exist")
        raise StatusConflict(f"Quote {quote_id} is {current}, not {from_status}")

    logger.info("Quote %s: %s -> %s (%s)", quote_id, from_status, to_status, trigger)
    result.logged = _log_transition(quote_id, from_status, to_status, trigger, metadata, changed_by)
    result.email_sent = _notify(quote_id, to_status)
    return result


def _current_status(quote_id: int) -> str:
    current = Quote.objects.filter(pk=quote_id).values_list('status', flat=True).first()
    if current is None:
        raise QuoteNotFound(f"Quote {quote_id} does not exist")
    return current


def _auto(quote_id, qualifying, to_status, trigger, metadata=None, changed_by=None) -> Optional[TransitionResult]:
    current = _current_status(quote_id)
    if current not in qualifying:
        logger.info("Quote %s is %s; %s does not apply", quote_id, current, trigger)
        return None
    return transition(quote_id, current, to_status, trigger, metadata, changed_by)


def handle_payment_received(quote_id, metadata=None, changed_by=None):
    return _auto(quote_id, ('approved', 'payment_pending'), 'paid', 'payment_received', metadata, changed_by)


def handle_quote_sent(quote_id, metadata=None, changed_by=None):
    return _auto(quote_id, ('pending', 'calculated'), 'sent', 'quote_sent', metadata, changed_by)


def handle_order_shipped(quote_id, metadata=None, changed_by=None):
    return _auto(quote_id, ('paid', 'processing', 'ordered'), 'shipped', 'order_shipped', metadata, changed_by)


def handle_quote_expired(quote_id, metadata=None, changed_by=None):
    return _auto(quote_id, ('sent',), 'expired', 'quote_expired', metadata, changed_by)


def handle_auto_calculation(quote_id, metadata=None, changed_by=None):
    return _auto(quote_id, ('pending',), 'calculated', 'auto_calculation', metadata, changed_by)


def bulk_update_status(
    quote_ids: Iterable[int],
    to_status: str,
    trigger: str = 'manual',
    metadata: Optional[dict] = None,
    changed_by=None,
) -> BulkUpdateResult:
    """Row by row; one row failing does not stop the others."""
    result = BulkUpdateResult()
    for quote_id in quote_ids:
        try:
            with transaction.atomic():
                current = _current_status(quote_id)
                transition(quote_id, current, to_status, trigger, metadata, changed_by)
        except Exception as e:
            logger.warning("Bulk status update of quote %s to %s failed: %s", quote_id, to_status, e)
            result.failed.append({'id': quote_id, 'error': str(e)})
        else:
            result.succeeded.append(quote_id)
    return result


def expire_overdue_quotes(now: Optional[datetime] = None) -> BulkUpdateResult:
    now = now or timezone.now()
    ids = list(Quote.objects.filter(status='sent', expires_at__lt=now).values_list('pk', flat=True))
    result = BulkUpdateResult()
    for quote_id in ids:
        try:
            if handle_quote_expired(quote_id) is not None:
                result.succeeded.append(quote_id)
        except Exception as e:
            logger.warning("Could not expire quote %s: %s", quote_id, e)
            result.failed.append({'id': quote_id, 'error': str(e)})
    return result
