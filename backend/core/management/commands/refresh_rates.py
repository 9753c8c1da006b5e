from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from core.fx import refresh_rates


class Command(BaseCommand):
    help = "Refresh USD-based exchange rates on Country rows using the configured provider (FX_PROVIDER)."

    def add_arguments(self, parser):
        parser.add_argument("--currencies", type=str, help="Comma-separated ISO codes, e.g. INR,NPR. Defaults to every country currency")
        parser.add_argument("--provider", type=str, default=None, help="FX provider to use (http|env)")

    def handle(self, *args, **options):
        currencies = []
        for part in (options.get("currencies") or "").split(","):
            part = part.strip().upper()
            if not part:
                continue
            if len(part) != 3 or not part.isalpha():
                raise CommandError(f"Invalid currency '{part}'. Use ISO codes, e.g. INR,NPR")
            currencies.append(part)

        summary = refresh_rates(currencies, options.get("provider"))
        if not summary:
            self.stdout.write(self.style.WARNING("No rates were updated"))
        for row in summary:
            self.stdout.write(self.style.SUCCESS(
                f"Saved USD->{row['currency']} {row['rate_from_usd']} @ {row['as_of']} "
                f"[{row['source']}] ({row['countries_updated']} countries)"
            ))
