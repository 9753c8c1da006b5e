from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import Country
from payments.models import PaymentGateway

# code, name, currency, symbol, rate_from_usd, minimum payment, customs %, tax %, tax name
COUNTRIES = [
    ("US", "United States", "USD", "$", "1", "10", "0", "0", "Sales Tax"),
    ("IN", "India", "INR", "₹", "83.25", "750", "20", "18", "GST"),
    ("NP", "Nepal", "NPR", "₨", "133.20", "1200", "15", "13", "VAT"),
    ("CA", "Canada", "CAD", "C$", "1.36", "15", "5", "13", "GST/PST"),
    ("GB", "United Kingdom", "GBP", "£", "0.79", "8", "10", "20", "VAT"),
    ("AU", "Australia", "AUD", "A$", "1.52", "15", "5", "10", "GST"),
    ("DE", "Germany", "EUR", "€", "0.92", "10", None, None, ""),
    ("JP", "Japan", "JPY", "¥", "150", "1100", None, None, ""),
]

# code, name, countries, currencies, fee %, fee fixed, priority
GATEWAYS = [
    ("stripe", "Stripe", ["*"], ["USD", "EUR", "GBP", "CAD", "AUD", "INR", "JPY"], "2.9", "0.30", 10),
    ("paypal", "PayPal", ["*"], ["USD", "EUR", "GBP", "CAD", "AUD", "JPY"], "2.9", "0.30", 20),
    ("payu", "PayU", ["IN"], ["INR"], "2.0", "0", 5),
    ("esewa", "eSewa", ["NP"], ["NPR"], "2.0", "0", 5),
    ("khalti", "Khalti", ["NP"], ["NPR"], "2.5", "0", 6),
    ("bank_transfer", "Bank Transfer", ["*"], ["*"], "0", "0", 50),
    ("cod", "Cash on Delivery", ["IN", "NP"], ["INR", "NPR"], "0", "0", 60),
]


def _pct(value):
    return Decimal(value) if value is not None else None


class Command(BaseCommand):
    help = "Idempotently seed countries (currency, rates, taxes) and payment gateways."

    @transaction.atomic
    def handle(self, *args, **options):
        for code, name, currency, symbol, rate, minimum, customs, tax, tax_name in COUNTRIES:
            _, created = Country.objects.update_or_create(
                code=code,
                defaults={
                    "name": name,
                    "currency": currency,
                    "symbol": symbol,
                    "rate_from_usd": Decimal(rate),
                    "minimum_payment_amount": Decimal(minimum),
                    "customs_rate": _pct(customs),
                    "local_tax_rate": _pct(tax),
                    "local_tax_name": tax_name,
                },
            )
            self.stdout.write(f"{'Created' if created else 'Updated'} country {code}")

        for code, name, countries, currencies, fee_pct, fee_fixed, priority in GATEWAYS:
            PaymentGateway.objects.update_or_create(
                code=code,
                defaults={
                    "name": name,
                    "supported_countries": countries,
                    "supported_currencies": currencies,
                    "fee_percent": Decimal(fee_pct),
                    "fee_fixed": Decimal(fee_fixed),
                    "priority": priority,
                    "is_active": True,
                },
            )
        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(COUNTRIES)} countries and {len(GATEWAYS)} payment gateways"
        ))
