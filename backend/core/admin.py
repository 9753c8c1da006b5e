from django.contrib import admin

from .models import Country


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "currency", "rate_from_usd", "rate_updated_at", "shipping_allowed")
    list_filter = ("shipping_allowed", "currency")
    search_fields = ("code", "name", "currency")
    readonly_fields = ("rate_updated_at",)
