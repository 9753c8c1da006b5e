from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

from django.core import mail
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from accounts.models import CustomUser
from quotes.models import EmailSettings, EmailTemplate, Quote, StatusTransition
from quotes.services.status_config import clear_status_workflow_cache
from quotes.services.status_engine import (
    InvalidTransition,
    QuoteNotFound,
    StatusConflict,
    bulk_update_status,
    handle_auto_calculation,
    handle_order_shipped,
    handle_payment_received,
    handle_quote_expired,
    handle_quote_sent,
    transition,
)


def failing_log_insert(only_for=None):
    """A StatusTransition.create that hits a real NOT NULL violation."""
    real_create = StatusTransition.objects.create

    def create(**kwargs):
        if only_for is None or kwargs["quote_id"] == only_for:
            kwargs["from_status"] = None
        return real_create(**kwargs)
    return create


class StatusEngineTestBase(TestCase):
    def setUp(self):
        clear_status_workflow_cache()
        self.admin = CustomUser.objects.create_user("ops", password="pw", role="admin")

    def make_quote(self, status="pending", **kwargs):
        params = dict(status=status, origin_country="US", destination_country="NP",
                      customer_email="buyer@example.com")
        params.update(kwargs)
        return Quote.objects.create(**params)


class TransitionTests(StatusEngineTestBase):
    def test_allowed_transition_updates_and_logs(self):
        q = self.make_quote()
        result = transition(q.pk, "pending", "calculated", "auto_calculation", {"why": "test"}, self.admin)
        q.refresh_from_db()
        self.assertEqual(q.status, "calculated")
        self.assertTrue(result.logged)
        row = StatusTransition.objects.get(quote=q)
        self.assertEqual((row.from_status, row.to_status, row.trigger), ("pending", "calculated", "auto_calculation"))
        self.assertEqual(row.metadata, {"why": "test"})
        self.assertEqual(row.changed_by, self.admin)

    def test_pending_to_shipped_is_invalid(self):
        q = self.make_quote()
        with self.assertRaises(InvalidTransition):
            transition(q.pk, "pending", "shipped")
        q.refresh_from_db()
        self.assertEqual(q.status, "pending")
        self.assertFalse(StatusTransition.objects.exists())

    def test_terminal_statuses_cannot_move(self):
        for terminal in ("rejected", "expired", "delivered", "completed", "cancelled"):
            q = self.make_quote(status=terminal)
            with self.assertRaises(InvalidTransition):
                transition(q.pk, terminal, "pending")

    def test_unknown_trigger(self):
        q = self.make_quote()
        with self.assertRaises(InvalidTransition):
            transition(q.pk, "pending", "calculated", "magic")

    def test_stale_from_status_conflicts(self):
        q = self.make_quote(status="calculated")
        with self.assertRaises(StatusConflict):
            transition(q.pk, "pending", "sent")
        q.refresh_from_db()
        self.assertEqual(q.status, "calculated")

    def test_missing_quote(self):
        with self.assertRaises(QuoteNotFound):
            transition(999999, "pending", "sent")

    def test_sent_issues_share_token_and_expiry(self):
        q = self.make_quote(status="calculated")
        before = timezone.now()
        result = transition(q.pk, "calculated", "sent", "quote_sent")
        q.refresh_from_db()
        self.assertTrue(q.share_token)
        self.assertEqual(q.share_token, result.share_token)
        self.assertGreaterEqual(q.expires_at, before + timedelta(days=7) - timedelta(seconds=5))

    def test_transition_log_is_append_only(self):
        q = self.make_quote()
        transition(q.pk, "pending", "calculated")
        row = StatusTransition.objects.get(quote=q)
        row.to_status = "sent"
        with self.assertRaises(ValidationError):
            row.save()


class NotificationTests(StatusEngineTestBase):
    def test_email_sent_for_status_that_triggers_it(self):
        q = self.make_quote(status="calculated")
        result = transition(q.pk, "calculated", "sent", "quote_sent")
        self.assertTrue(result.email_sent)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])
        self.assertIn(f"#{q.pk}", mail.outbox[0].subject)

    def test_no_email_for_silent_status(self):
        q = self.make_quote()
        result = transition(q.pk, "pending", "calculated")
        self.assertFalse(result.email_sent)
        self.assertEqual(mail.outbox, [])

    def test_global_switch_disables_email(self):
        EmailSettings.objects.create(setting_key=EmailSettings.GLOBAL, setting_value=False)
        q = self.make_quote(status="calculated")
        self.assertFalse(transition(q.pk, "calculated", "sent").email_sent)
        self.assertEqual(mail.outbox, [])

    def test_category_switch_disables_only_that_category(self):
        EmailSettings.objects.create(setting_key=EmailSettings.ORDERS, setting_value=False)
        order = self.make_quote(status="approved")
        self.assertFalse(transition(order.pk, "approved", "paid", "payment_received").email_sent)
        quote = self.make_quote(status="calculated")
        self.assertTrue(transition(quote.pk, "calculated", "sent").email_sent)

    def test_custom_template_is_rendered(self):
        EmailTemplate.objects.create(
            template_type="quote_sent",
            subject="Quote {{ quote.id }} ready",
            body="Status: {{ status_label }}",
        )
        q = self.make_quote(status="calculated")
        transition(q.pk, "calculated", "sent")
        self.assertEqual(mail.outbox[0].subject, f"Quote {q.pk} ready")
        self.assertEqual(mail.outbox[0].body, "Status: Sent")

    def test_email_failure_does_not_fail_transition(self):
        q = self.make_quote(status="calculated")
        with patch("quotes.services.notifications.send_mail", side_effect=ConnectionRefusedError("smtp down")):
            with self.assertLogs("quotes.services.status_engine", level="ERROR"):
                result = transition(q.pk, "calculated", "sent")
        q.refresh_from_db()
        self.assertEqual(q.status, "sent")
        self.assertFalse(result.email_sent)
        self.assertTrue(result.logged)

    def test_log_failure_does_not_block_email(self):
        q = self.make_quote(status="calculated")
        with patch("quotes.services.status_engine.StatusTransition.objects.create", side_effect=RuntimeError("db")):
            with self.assertLogs("quotes.services.status_engine", level="ERROR"):
                result = transition(q.pk, "calculated", "sent")
        q.refresh_from_db()
        self.assertEqual(q.status, "sent")
        self.assertFalse(result.logged)
        self.assertTrue(result.email_sent)

    def test_database_error_in_log_does_not_break_the_transaction(self):
        q = self.make_quote(status="calculated")
        with patch.object(StatusTransition.objects, "create", side_effect=failing_log_insert()):
            with self.assertLogs("quotes.services.status_engine", level="ERROR") as cm:
                result = transition(q.pk, "calculated", "sent")
        self.assertIn("IntegrityError", "\n".join(cm.output))
        self.assertFalse(result.logged)
        self.assertTrue(result.email_sent)
        self.assertEqual(len(mail.outbox), 1)
        q.refresh_from_db()
        self.assertEqual(q.status, "sent")


class AutomaticHandlerTests(StatusEngineTestBase):
    def test_payment_received(self):
        for start in ("approved", "payment_pending"):
            q = self.make_quote(status=start)
            self.assertIsNotNone(handle_payment_received(q.pk))
            q.refresh_from_db()
            self.assertEqual(q.status, "paid")

    def test_handlers_ignore_non_qualifying_status(self):
        q = self.make_quote(status="sent")
        self.assertIsNone(handle_payment_received(q.pk))
        self.assertIsNone(handle_order_shipped(q.pk))
        self.assertIsNone(handle_auto_calculation(q.pk))
        q.refresh_from_db()
        self.assertEqual(q.status, "sent")
        self.assertFalse(StatusTransition.objects.exists())

    def test_sent_shipped_expired_and_calculated(self):
        q = self.make_quote()
        self.assertEqual(handle_auto_calculation(q.pk).to_status, "calculated")
        self.assertEqual(handle_quote_sent(q.pk).trigger, "quote_sent")
        self.assertEqual(handle_quote_expired(q.pk).to_status, "expired")
        order = self.make_quote(status="ordered")
        self.assertEqual(handle_order_shipped(order.pk).to_status, "shipped")

    def test_missing_quote_raises(self):
        with self.assertRaises(QuoteNotFound):
            handle_quote_sent(424242)


class BulkUpdateTests(StatusEngineTestBase):
    def test_database_error_on_one_row_does_not_poison_the_rest(self):
        first, second = self.make_quote(status="calculated"), self.make_quote(status="calculated")
        with patch.object(StatusTransition.objects, "create", side_effect=failing_log_insert(only_for=first.pk)):
            result = bulk_update_status([first.pk, second.pk], "sent", "quote_sent")
        self.assertEqual(result.succeeded, [first.pk, second.pk])
        self.assertEqual(Quote.objects.filter(status="sent").count(), 2)
        self.assertEqual(list(StatusTransition.objects.values_list("quote_id", flat=True)), [second.pk])
        self.assertEqual(len(mail.outbox), 2)

    def test_one_bad_row_does_not_stop_the_rest(self):
        good = [self.make_quote(status="calculated") for _ in range(3)]
        ids = [good[0].pk, 987654, good[1].pk, good[2].pk]
        result = bulk_update_status(ids, "sent", "quote_sent")
        self.assertEqual(result.succeeded, [q.pk for q in good])
        self.assertEqual([f["id"] for f in result.failed], [987654])
        self.assertEqual(Quote.objects.filter(status="sent").count(), 3)

    def test_invalid_rows_are_reported(self):
        ok = self.make_quote(status="paid")
        bad = self.make_quote(status="pending")
        result = bulk_update_status([ok.pk, bad.pk], "shipped", "order_shipped")
        self.assertEqual(result.succeeded, [ok.pk])
        self.assertIn("not allowed", result.failed[0]["error"])

    def test_row_lookup_failure_is_isolated(self):
        quotes = [self.make_quote(status="calculated") for _ in range(3)]
        real = Quote.objects.filter

        def flaky_filter(*args, **kwargs):
            if kwargs.get("pk") == quotes[1].pk and "status" not in kwargs:
                raise RuntimeError("connection reset")
            return real(*args, **kwargs)

        with patch.object(Quote.objects, "filter", side_effect=flaky_filter):
            result = bulk_update_status([q.pk for q in quotes], "sent")
        self.assertEqual(result.succeeded, [quotes[0].pk, quotes[2].pk])
        self.assertEqual(len(result.failed), 1)


class ExpireQuotesCommandTests(StatusEngineTestBase):
    def test_expires_only_overdue_sent_quotes(self):
        past = timezone.now() - timedelta(days=1)
        overdue = self.make_quote(status="sent", expires_at=past)
        fresh = self.make_quote(status="sent", expires_at=timezone.now() + timedelta(days=3))
        other = self.make_quote(status="approved", expires_at=past)
        call_command("expire_quotes")
        statuses = dict(Quote.objects.values_list("pk", "status"))
        self.assertEqual(statuses[overdue.pk], "expired")
        self.assertEqual(statuses[fresh.pk], "sent")
        self.assertEqual(statuses[other.pk], "approved")
