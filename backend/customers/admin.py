from django.contrib import admin

from .models import DeliveryAddress


@admin.register(DeliveryAddress)
class DeliveryAddressAdmin(admin.ModelAdmin):
    list_display = ('recipient_name', 'user', 'country', 'city', 'province', 'is_default', 'updated_at')
    list_filter = ('country', 'is_default')
    search_fields = ('recipient_name', 'user__username', 'city', 'district')
