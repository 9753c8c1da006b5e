from decimal import Decimal

from django.conf import settings
from django.db import models


class PaymentGateway(models.Model):
    """
    Reference data. supported_countries / supported_currencies are lists of ISO
    codes; "*" matches anything.
    """
    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=64)
    supported_countries = models.JSONField(default=list, blank=True)
    supported_currencies = models.JSONField(default=list, blank=True)
    fee_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    fee_fixed = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    priority = models.PositiveIntegerField(default=100, help_text="Lower comes first")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'payment_gateways'
        ordering = ['priority', 'code']

    def __str__(self):
        return self.name

    def supports(self, country: str, currency: str) -> bool:
        countries = [c.upper() for c in (self.supported_countries or [])]
        currencies = [c.upper() for c in (self.supported_currencies or [])]
        return (
            ('*' in countries or (country or '').upper() in countries)
            and ('*' in currencies or (currency or '').upper() in currencies)
        )


class PaymentTransaction(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    quote = models.ForeignKey('quotes.Quote', on_delete=models.PROTECT, related_name='payments')
    gateway_code = models.CharField(max_length=32)
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='completed')
    gateway_reference = models.CharField(max_length=128, blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    recorded_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                    on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_transactions'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['gateway_code', 'gateway_reference'],
                condition=~models.Q(gateway_reference=''),
                name='uniq_gateway_reference',
            ),
        ]

    def __str__(self):
        return f"{self.gateway_code} {self.amount} {self.currency} ({self.status})"
