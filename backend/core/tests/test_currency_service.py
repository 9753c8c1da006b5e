from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from core.models import Country
from core.services.currency_service import (
    CountryRateSource,
    CurrencyConversionError,
    CurrencyService,
    RateCache,
    RateSource,
    StaticRateSource,
)
from core.services.retry_policy import RetryPolicy

NO_SLEEP = RetryPolicy(attempts=2, backoff=0, sleep=lambda s: None)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FlakySource(RateSource):
    def __init__(self, table, fail=False):
        self.table = table
        self.fail = fail
        self.calls = 0

    def get_rate_from_usd(self, currency):
        self.calls += 1
        if self.fail:
            raise ConnectionError("rate store down")
        return self.table.get(currency)


class ConversionTests(SimpleTestCase):
    def setUp(self):
        self.svc = CurrencyService(
            StaticRateSource({"INR": "83.25", "NPR": "133.20", "EUR": "0.92"}),
            RateCache(ttl_seconds=300),
            NO_SLEEP,
        )

    def test_same_currency_is_identity(self):
        self.assertEqual(self.svc.get_exchange_rate("NPR", "NPR"), Decimal("1"))
        self.assertEqual(self.svc.convert_amount("12.34", "EUR", "EUR"), Decimal("12.34"))

    def test_cross_rate_goes_through_usd(self):
        rate = self.svc.get_exchange_rate("INR", "NPR")
        self.assertEqual(rate, Decimal("133.20") / Decimal("83.25"))
        self.assertEqual(self.svc.convert_amount(10, "USD", "INR"), Decimal("832.50"))

    def test_round_trip_is_close(self):
        there = self.svc.convert_amount(Decimal("57.31"), "EUR", "NPR")
        back = self.svc.convert_amount(there, "NPR", "EUR")
        self.assertAlmostEqual(float(back), 57.31, places=6)

    def test_unknown_currency_falls_back_to_one_to_one(self):
        with self.assertLogs("core.services.currency_service", level="WARNING"):
            self.assertEqual(self.svc.get_exchange_rate("USD", "XYZ"), Decimal("1"))

    def test_strict_unknown_currency_raises(self):
        with self.assertRaises(CurrencyConversionError):
            self.svc.convert_amount(5, "USD", "XYZ", strict=True)


class CacheAndFallbackTests(SimpleTestCase):
    def test_fresh_cache_skips_source(self):
        source = FlakySource({"INR": Decimal("80")})
        svc = CurrencyService(source, RateCache(ttl_seconds=60), NO_SLEEP)
        svc.get_exchange_rate("USD", "INR")
        svc.get_exchange_rate("USD", "INR")
        self.assertEqual(source.calls, 1)

    def test_expired_entry_refetches(self):
        clock = FakeClock()
        source = FlakySource({"INR": Decimal("80")})
        svc = CurrencyService(source, RateCache(ttl_seconds=60, clock=clock), NO_SLEEP)
        svc.get_exchange_rate("USD", "INR")
        clock.now = 61
        source.table["INR"] = Decimal("81")
        self.assertEqual(svc.get_exchange_rate("USD", "INR"), Decimal("81"))

    def test_failed_source_uses_last_known_rate(self):
        clock = FakeClock()
        source = FlakySource({"INR": Decimal("80")})
        svc = CurrencyService(source, RateCache(ttl_seconds=60, clock=clock), NO_SLEEP)
        svc.get_exchange_rate("USD", "INR")
        clock.now = 1000
        source.fail = True
        with self.assertLogs("core.services.currency_service", level="WARNING"):
            self.assertEqual(svc.get_exchange_rate("USD", "INR"), Decimal("80"))
        # retried once before falling back
        self.assertEqual(source.calls, 3)

    def test_failed_source_without_history(self):
        svc = CurrencyService(FlakySource({}, fail=True), RateCache(), NO_SLEEP)
        self.assertEqual(svc.convert_amount(7, "USD", "INR"), Decimal("7"))
        with self.assertRaises(CurrencyConversionError):
            svc.get_exchange_rate("USD", "INR", strict=True)


class FormattingTests(SimpleTestCase):
    def setUp(self):
        self.svc = CurrencyService(StaticRateSource({}), RateCache(), NO_SLEEP)

    def test_grouping_and_symbol(self):
        self.assertEqual(self.svc.format_amount(Decimal("1234.5"), "USD"), "$1,234.50")
        self.assertEqual(self.svc.format_amount(Decimal("1234567.891"), "INR"), "₹1,234,567.89")

    def test_zero_decimal_currency(self):
        self.assertEqual(self.svc.format_amount(Decimal("1234.56"), "JPY"), "¥1,235")
        self.assertEqual(self.svc.decimal_places("KRW"), 0)

    def test_eur_swaps_separators(self):
        self.assertEqual(self.svc.format_amount(Decimal("1234.5"), "EUR"), "€1.234,50")

    def test_unknown_currency_uses_code_as_symbol(self):
        self.assertEqual(self.svc.format_amount(5, "XYZ"), "XYZ5.00")

    def test_smart_rounding(self):
        self.assertEqual(self.svc.format_amount(Decimal("12345.67"), "NPR", smart_rounding=True), "₨12,300")
        self.assertEqual(self.svc.format_amount(Decimal("1234.56"), "NPR", smart_rounding=True), "₨1,230")
        self.assertEqual(self.svc.format_amount(Decimal("150.49"), "USD", smart_rounding=True), "$150")
        self.assertEqual(self.svc.format_amount(Decimal("15.49"), "USD", smart_rounding=True), "$15.49")
        self.assertEqual(self.svc.value_category("INR"), "low")
        self.assertEqual(self.svc.value_category("NPR"), "ultra_low")


class CountryBackedTests(TestCase):
    def setUp(self):
        Country.objects.create(code="np", name="Nepal", currency="npr", rate_from_usd=Decimal("133.2"),
                               minimum_payment_amount=Decimal("1500"))
        self.svc = CurrencyService(CountryRateSource(), RateCache(), NO_SLEEP)

    def test_country_rates_are_used(self):
        self.assertEqual(self.svc.convert_amount(2, "USD", "NPR"), Decimal("266.4"))

    def test_currency_for_country(self):
        self.assertEqual(self.svc.get_currency_for_country("np"), "NPR")
        self.assertEqual(self.svc.get_currency_for_country("IN"), "INR")  # built-in map
        self.assertEqual(self.svc.get_currency_for_country("ZZ"), "USD")

    def test_minimum_payment_amount(self):
        self.assertEqual(self.svc.minimum_payment_amount("NPR"), Decimal("1500"))
        self.assertEqual(self.svc.minimum_payment_amount("INR"), Decimal("750"))
        self.assertFalse(self.svc.is_valid_payment_amount(1000, "NPR"))
        self.assertTrue(self.svc.is_valid_payment_amount(10, "USD"))
