from django.contrib import admin

from .models import EmailSettings, EmailTemplate, Quote, QuoteItem, StatusTransition


class QuoteItemInline(admin.TabularInline):
    model = QuoteItem
    extra = 0


class StatusTransitionInline(admin.TabularInline):
    model = StatusTransition
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "trigger", "metadata", "changed_by", "changed_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "status", "origin_country", "destination_country",
                    "total_usd", "customer_currency", "total_customer_currency", "created_at")
    list_filter = ("status", "destination_country", "shipping_method", "created_at")
    search_fields = ("id", "customer__username", "customer_email")
    date_hierarchy = "created_at"
    # status changes go through the transition engine
    readonly_fields = ("status", "calculation_data", "share_token", "expires_at", "calculated_at",
                       "total_usd", "total_customer_currency", "customer_currency")
    inlines = [QuoteItemInline, StatusTransitionInline]


@admin.register(StatusTransition)
class StatusTransitionAdmin(admin.ModelAdmin):
    list_display = ("quote", "from_status", "to_status", "trigger", "changed_by", "changed_at")
    list_filter = ("trigger", "to_status")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EmailSettings)
class EmailSettingsAdmin(admin.ModelAdmin):
    list_display = ("setting_key", "setting_value", "updated_at")


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ("template_type", "subject", "is_active", "updated_at")
    list_filter = ("is_active",)
