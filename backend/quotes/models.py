from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class Quote(models.Model):
    SHIPPING_METHOD_CHOICES = [('standard', 'Standard'), ('express', 'Express'), ('economy', 'Economy')]
    HANDLING_FEE_CHOICES = [('fixed', 'Fixed'), ('percentage', 'Percentage'), ('both', 'Both')]

    # Allowed values come from the status workflow config, not a choices list.
    status = models.CharField(max_length=32, default='pending', db_index=True)
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                 on_delete=models.SET_NULL, related_name='quotes')
    customer_email = models.EmailField(blank=True, default='')
    origin_country = models.CharField(max_length=2)
    destination_country = models.CharField(max_length=2)
    shipping_method = models.CharField(max_length=20, choices=SHIPPING_METHOD_CHOICES, default='standard')
    payment_gateway = models.CharField(max_length=32, default='stripe')
    insurance_required = models.BooleanField(default=True)
    handling_fee_type = models.CharField(max_length=12, choices=HANDLING_FEE_CHOICES, default='both')
    order_discount = models.JSONField(null=True, blank=True)
    shipping_discount = models.JSONField(null=True, blank=True)
    calculation_data = models.JSONField(null=True, blank=True)
    customer_currency = models.CharField(max_length=3, default='USD')
    total_usd = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    total_customer_currency = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    share_token = models.CharField(max_length=64, null=True, blank=True, unique=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    calculated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quotes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', '-created_at'], name='quotes_custome_2a9c1e_idx'),
            models.Index(fields=['status', 'expires_at'], name='quotes_status_5b7d0f_idx'),
        ]

    def __str__(self):
        return f"Quote #{self.pk} ({self.status})"

    @property
    def is_order(self) -> bool:
        from .services.status_config import get_status_workflow
        return get_status_workflow().counts_as_order(self.status)


class QuoteItem(models.Model):
    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name='items')
    name = models.CharField(max_length=255)
    product_url = models.URLField(max_length=1024, blank=True, default='')
    quantity = models.PositiveIntegerField(default=1)
    unit_price_usd = models.DecimalField(max_digits=12, decimal_places=2)
    weight_kg = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    hsn_code = models.CharField(max_length=16, null=True, blank=True)
    use_hsn_rates = models.BooleanField(default=False)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))

    class Meta:
        db_table = 'quote_items'
        ordering = ['id']

    def __str__(self):
        return f"{self.name} x{self.quantity}"


class StatusTransition(models.Model):
    """Append-only audit log of status changes."""
    TRIGGER_CHOICES = [
        ('payment_received', 'Payment received'),
        ('quote_sent', 'Quote sent'),
        ('order_shipped', 'Order shipped'),
        ('quote_expired', 'Quote expired'),
        ('manual', 'Manual'),
        ('auto_calculation', 'Auto calculation'),
    ]

    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name='transitions')
    from_status = models.CharField(max_length=32)
    to_status = models.CharField(max_length=32)
    trigger = models.CharField(max_length=32, choices=TRIGGER_CHOICES, default='manual')
    metadata = models.JSONField(default=dict, blank=True)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                   on_delete=models.SET_NULL, related_name='+')
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'status_transitions'
        ordering = ['changed_at', 'id']
        indexes = [
            models.Index(fields=['quote', 'changed_at'], name='status_tran_quote_i_8e4f2a_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Status transitions are append-only and cannot be modified.")
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quote_id}: {self.from_status} -> {self.to_status} ({self.trigger})"


class EmailSettings(models.Model):
    GLOBAL = 'email_notifications_enabled'
    QUOTES = 'quote_notifications_enabled'
    ORDERS = 'order_notifications_enabled'
    KEY_CHOICES = [(GLOBAL, 'All email notifications'), (QUOTES, 'Quote emails'), (ORDERS, 'Order emails')]

    setting_key = models.CharField(max_length=64, unique=True, choices=KEY_CHOICES)
    setting_value = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'email_settings'
        verbose_name_plural = 'email settings'

    def __str__(self):
        return f"{self.setting_key}={self.setting_value}"

    @classmethod
    def is_enabled(cls, key: str) -> bool:
        """Missing rows count as enabled."""
        value = cls.objects.filter(setting_key=key).values_list('setting_value', flat=True).first()
        return True if value is None else bool(value)


class EmailTemplate(models.Model):
    template_type = models.CharField(max_length=64, unique=True)
    subject = models.CharField(max_length=255)
    body = models.TextField(help_text="Django template syntax; context has quote, status, status_label")
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'email_templates'

    def __str__(self):
        return self.template_type
