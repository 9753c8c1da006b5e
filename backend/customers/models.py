from django.conf import settings
from django.db import models


class DeliveryAddress(models.Model):
    """
    Most countries use the flat fields (address_line1/2, city, state, postal code).
    Nepal addresses are hierarchical: province -> district -> municipality -> ward.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='addresses')
    recipient_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True, default='')
    country = models.CharField(max_length=2)

    address_line1 = models.CharField(max_length=255, blank=True, default='')
    address_line2 = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=128, blank=True, default='')
    state_province_region = models.CharField(max_length=128, blank=True, default='')
    postal_code = models.CharField(max_length=20, blank=True, default='')

    province = models.CharField(max_length=32, blank=True, default='')
    district = models.CharField(max_length=64, blank=True, default='')
    municipality = models.CharField(max_length=128, blank=True, default='')
    ward = models.PositiveSmallIntegerField(null=True, blank=True)

    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'delivery_addresses'
        ordering = ['-is_default', '-updated_at']
        verbose_name_plural = 'delivery addresses'

    def __str__(self):
        return f"{self.recipient_name}, {self.country}"

    def save(self, *args, **kwargs):
        self.country = (self.country or '').upper()
        super().save(*args, **kwargs)
        if self.is_default:
            DeliveryAddress.objects.filter(user_id=self.user_id, is_default=True).exclude(pk=self.pk).update(
                is_default=False
            )
