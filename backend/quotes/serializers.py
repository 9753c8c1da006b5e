from __future__ import annotations

from django.db import transaction
from rest_framework import serializers

from pricing.serializers import DiscountSerializer

from .models import Quote, QuoteItem, StatusTransition
from .services.status_config import get_status_workflow


class QuoteItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuoteItem
        exclude = ("quote",)


class QuoteSerializer(serializers.ModelSerializer):
    items = QuoteItemSerializer(many=True, required=False)
    status_label = serializers.SerializerMethodField(read_only=True)
    is_order = serializers.BooleanField(read_only=True)

    class Meta:
        model = Quote
        fields = [
            "id", "status", "status_label", "is_order",
            "customer", "customer_email",
            "origin_country", "destination_country",
            "shipping_method", "payment_gateway", "insurance_required", "handling_fee_type",
            "order_discount", "shipping_discount",
            "items",
            "calculation_data", "customer_currency", "total_usd", "total_customer_currency",
            "share_token", "expires_at", "calculated_at", "created_at", "updated_at",
        ]
        read_only_fields = [
            "status", "customer", "calculation_data", "customer_currency",
            "total_usd", "total_customer_currency",
            "share_token", "expires_at", "calculated_at", "created_at", "updated_at",
        ]

    # Pricing terms only the back office may set.
    BACK_OFFICE_FIELDS = ("order_discount", "shipping_discount", "handling_fee_type")

    def get_fields(self):
        fields = super().get_fields()
        request = self.context.get("request")
        if request is None or not getattr(request.user, "is_back_office", False):
            for name in self.BACK_OFFICE_FIELDS:
                fields[name].read_only = True
        return fields

    def get_status_label(self, obj):
        definition = get_status_workflow().get(obj.status)
        return definition.label if definition else obj.status

    def validate_origin_country(self, value):
        return value.upper()

    def validate_destination_country(self, value):
        return value.upper()

    def _validate_discount(self, value, allow_free):
        if not value:
            return None
        ser = DiscountSerializer(data=value)
        ser.is_valid(raise_exception=True)
        if ser.validated_data["type"] == "free" and not allow_free:
            raise serializers.ValidationError("Order discount must be 'percentage' or 'fixed'.")
        return {"type": ser.validated_data["type"], "value": str(ser.validated_data["value"])}

    def validate_order_discount(self, value):
        return self._validate_discount(value, allow_free=False)

    def validate_shipping_discount(self, value):
        return self._validate_discount(value, allow_free=True)

    @transaction.atomic
    def create(self, validated_data):
        items = validated_data.pop("items", [])
        quote = Quote.objects.create(**validated_data)
        for item in items:
            QuoteItem.objects.create(quote=quote, **item)
        return quote

    @transaction.atomic
    def update(self, instance, validated_data):
        items = validated_data.pop("items", None)
        instance = super().update(instance, validated_data)
        if items is not None:
            # Items are replaced as a whole
            instance.items.all().delete()
            for item in items:
                QuoteItem.objects.create(quote=instance, **item)
        return instance


class SharedQuoteSerializer(serializers.ModelSerializer):
    """What a share link exposes: no customer identity."""
    items = QuoteItemSerializer(many=True, read_only=True)

    class Meta:
        model = Quote
        fields = [
            "id", "status", "origin_country", "destination_country", "shipping_method",
            "items", "calculation_data", "customer_currency", "total_usd",
            "total_customer_currency", "expires_at",
        ]
        read_only_fields = fields


class StatusTransitionSerializer(serializers.ModelSerializer):
    changed_by = serializers.StringRelatedField()

    class Meta:
        model = StatusTransition
        fields = ["id", "from_status", "to_status", "trigger", "metadata", "changed_by", "changed_at"]
        read_only_fields = fields


class TransitionRequestSerializer(serializers.Serializer):
    to_status = serializers.CharField()
    from_status = serializers.CharField(required=False)
    trigger = serializers.ChoiceField(choices=StatusTransition.TRIGGER_CHOICES, default="manual")
    metadata = serializers.DictField(required=False, default=dict)


class BulkStatusSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False, max_length=500)
    to_status = serializers.CharField()
    trigger = serializers.ChoiceField(choices=StatusTransition.TRIGGER_CHOICES, default="manual")
