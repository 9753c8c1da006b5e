from decimal import Decimal

from django.db import models


class Country(models.Model):
    """
    Reference data per country: currency, USD rate and the default tax schedule.
    rate_from_usd is how many units of `currency` one USD buys.
    """
    code = models.CharField(max_length=2, unique=True)
    name = models.CharField(max_length=128)
    currency = models.CharField(max_length=3)
    symbol = models.CharField(max_length=8, blank=True, default='')
    rate_from_usd = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal('1'))
    rate_updated_at = models.DateTimeField(blank=True, null=True)
    minimum_payment_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('10'))
    shipping_allowed = models.BooleanField(default=True)
    customs_rate = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True,
                                       help_text="Default customs duty, percent")
    local_tax_rate = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True,
                                         help_text="GST / VAT, percent")
    local_tax_name = models.CharField(max_length=32, blank=True, default='')

    class Meta:
        db_table = 'countries'
        ordering = ['code']
        verbose_name_plural = 'countries'

    def save(self, *args, **kwargs):
        self.code = (self.code or '').upper()
        self.currency = (self.currency or '').upper()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.code} ({self.name}, {self.currency})"
