from django.contrib import admin

from .models import PaymentGateway, PaymentTransaction


@admin.register(PaymentGateway)
class PaymentGatewayAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "fee_percent", "fee_fixed", "priority", "is_active")
    list_filter = ("is_active",)
    list_editable = ("priority", "is_active")


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "quote", "gateway_code", "amount", "currency", "status", "gateway_reference", "created_at")
    list_filter = ("gateway_code", "status", "currency")
    search_fields = ("gateway_reference", "quote__id")
    readonly_fields = ("created_at",)
