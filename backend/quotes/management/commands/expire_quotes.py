from django.core.management.base import BaseCommand

from quotes.services.status_engine import expire_overdue_quotes


class Command(BaseCommand):
    help = "Move every sent quote whose expires_at has passed to expired."

    def handle(self, *args, **options):
        result = expire_overdue_quotes()
        for failure in result.failed:
            self.stderr.write(f"Quote {failure['id']}: {failure['error']}")
        self.stdout.write(self.style.SUCCESS(
            f"Expired {len(result.succeeded)} quote(s); {len(result.failed)} failed"
        ))
