from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import requests
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from accounts.models import CustomUser
from core.fx import EnvProvider, refresh_rates
from core.fx_providers import RateRow, load
from core.fx_providers.http_json import HttpJsonProvider
from core.models import Country
from core.services.retry_policy import RetryPolicy

FEED = {
    "result": "success",
    "base_code": "USD",
    "time_last_update_unix": 1704110400,
    "rates": {"USD": 1, "INR": 83.1, "NPR": 133.0, "EUR": "0.91", "BAD": "n/a"},
}


class HttpJsonProviderTests(SimpleTestCase):
    def test_parses_requested_currencies(self):
        p = HttpJsonProvider(url="https://rates.test/latest", policy=RetryPolicy(attempts=1))
        with patch.object(HttpJsonProvider, "_fetch_json", return_value=FEED):
            rows = p.fetch(["inr", "EUR", "XYZ"])
        got = {r.currency: r.rate_from_usd for r in rows}
        self.assertEqual(got, {"INR": Decimal("83.1"), "EUR": Decimal("0.91")})
        self.assertEqual(rows[0].as_of_ts, datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

    def test_rejects_non_usd_base(self):
        p = HttpJsonProvider(url="https://rates.test/latest", policy=RetryPolicy(attempts=1))
        with patch.object(HttpJsonProvider, "_fetch_json", return_value={**FEED, "base_code": "EUR"}):
            with self.assertRaises(RuntimeError):
                p.fetch(["INR"])

    def test_retries_http_errors(self):
        policy = RetryPolicy(attempts=3, backoff=0, sleep=lambda s: None)
        p = HttpJsonProvider(url="https://rates.test/latest", policy=policy)
        with patch.object(
            HttpJsonProvider, "_fetch_json",
            side_effect=[requests.ConnectionError("boom"), requests.Timeout("slow"), FEED],
        ) as fetch:
            rows = p.fetch(["NPR"])
        self.assertEqual(fetch.call_count, 3)
        self.assertEqual(rows[0].rate_from_usd, Decimal("133.0"))

    def test_load_by_name(self):
        self.assertIsInstance(load("http"), HttpJsonProvider)
        self.assertIsInstance(load("env"), EnvProvider)
        self.assertIsInstance(load(None), EnvProvider)


class EnvProviderTests(SimpleTestCase):
    @patch.dict(os.environ, {"FX_RATES_FROM_USD": json.dumps({"INR": 83.5, "npr": 133})})
    def test_reads_table(self):
        p = EnvProvider()
        self.assertEqual(p.get_rate("INR"), Decimal("83.5"))
        self.assertEqual(p.get_rate("USD"), Decimal("1"))
        rows = p.fetch(["INR", "GBP"])
        self.assertEqual([r.currency for r in rows], ["INR"])

    @patch.dict(os.environ, {"FX_RATES_FROM_USD": "{not json"})
    def test_bad_json_is_empty_table(self):
        with self.assertLogs("core.fx", level="ERROR"):
            p = EnvProvider()
        self.assertEqual(p.table, {})


class StubProvider:
    def __init__(self, rates):
        self.rates = rates

    def fetch(self, currencies):
        ts = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        return [RateRow(ts, c, Decimal(self.rates[c]), "stub") for c in currencies if c in self.rates]


class RefreshRatesTests(TestCase):
    def setUp(self):
        Country.objects.create(code="IN", name="India", currency="INR", rate_from_usd=Decimal("80"))
        Country.objects.create(code="NP", name="Nepal", currency="NPR", rate_from_usd=Decimal("130"))
        Country.objects.create(code="DE", name="Germany", currency="EUR", rate_from_usd=Decimal("0.9"))
        Country.objects.create(code="FR", name="France", currency="EUR", rate_from_usd=Decimal("0.9"))

    def test_updates_every_country_with_the_currency(self):
        summary = refresh_rates(["EUR", "INR"], StubProvider({"EUR": "0.91", "INR": "83"}))
        self.assertEqual({r["currency"]: r["countries_updated"] for r in summary}, {"EUR": 2, "INR": 1})
        self.assertEqual(Country.objects.get(code="FR").rate_from_usd, Decimal("0.91"))
        self.assertIsNotNone(Country.objects.get(code="IN").rate_updated_at)

    def test_defaults_to_all_country_currencies(self):
        summary = refresh_rates(None, StubProvider({"EUR": "0.91", "INR": "83", "NPR": "133"}))
        self.assertEqual(sorted(r["currency"] for r in summary), ["EUR", "INR", "NPR"])

    def test_anomaly_is_logged(self):
        with self.assertLogs("core.fx", level="WARNING") as cm:
            refresh_rates(["INR"], StubProvider({"INR": "120"}))
        self.assertTrue(any("FX anomaly" in line for line in cm.output))

    def test_newest_row_is_the_baseline(self):
        recent = datetime.now(timezone.utc) - timedelta(hours=1)
        Country.objects.filter(code="DE").update(rate_from_usd=Decimal("0.5"), rate_updated_at=recent - timedelta(days=30))
        Country.objects.filter(code="FR").update(rate_updated_at=recent)
        with self.assertNoLogs("core.fx", level="WARNING"):
            summary = refresh_rates(["EUR"], StubProvider({"EUR": "0.91"}))
        self.assertEqual(summary[0]["previous_age_hours"], 1.0)

    @patch.dict(os.environ, {"FX_RATES_FROM_USD": json.dumps({"NPR": 134})})
    def test_http_failure_falls_back_to_env(self):
        with patch.object(HttpJsonProvider, "_fetch_json", side_effect=requests.ConnectionError("down")), \
                patch("core.fx_providers.http_json.RetryPolicy", return_value=RetryPolicy(attempts=1)):
            summary = refresh_rates(["NPR"], "http")
        self.assertEqual(summary[0]["source"], "env")
        self.assertEqual(Country.objects.get(code="NP").rate_from_usd, Decimal("134"))

    @patch.dict(os.environ, {"FX_RATES_FROM_USD": json.dumps({"INR": 84})})
    def test_command_is_idempotent(self):
        out = StringIO()
        call_command("refresh_rates", "--currencies", "INR", "--provider", "env", stdout=out)
        call_command("refresh_rates", "--currencies", "INR", "--provider", "env", stdout=out)
        self.assertEqual(Country.objects.filter(currency="INR", rate_from_usd=Decimal("84")).count(), 1)
        self.assertIn("USD->INR 84", out.getvalue())


class FxEndpointTests(TestCase):
    def setUp(self):
        Country.objects.create(code="IN", name="India", currency="INR", rate_from_usd=Decimal("80"))
        self.client = APIClient()

    def test_customer_is_forbidden(self):
        user = CustomUser.objects.create_user("cust", password="pw", role="customer")
        self.client.force_authenticate(user)
        resp = self.client.post("/api/fx/refresh", {"currencies": ["INR"]}, format="json")
        self.assertEqual(resp.status_code, 403)

    @patch.dict(os.environ, {"FX_RATES_FROM_USD": json.dumps({"INR": 83.7})})
    def test_finance_can_refresh(self):
        user = CustomUser.objects.create_user("fin", password="pw", role="finance")
        self.client.force_authenticate(user)
        resp = self.client.post("/api/fx/refresh", {"currencies": "INR", "provider": "env"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["updated"][0]["rate_from_usd"], "83.7")

    def test_rejects_bad_currency(self):
        user = CustomUser.objects.create_user("adm", password="pw", role="admin")
        self.client.force_authenticate(user)
        resp = self.client.post("/api/fx/refresh", {"currencies": ["RUPEES"]}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_countries_are_public(self):
        resp = self.client.get("/api/countries/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data[0]["currency"], "INR")
