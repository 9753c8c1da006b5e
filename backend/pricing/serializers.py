from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from .dataclasses import (
    BREAKDOWN_KIND,
    BREAKDOWN_SCHEMA_VERSION,
    CalculationInput,
    CostBreakdown,
    Discount,
    ItemBreakdown,
    ItemInput,
)


class BreakdownSchemaError(Exception):
    """Stored calculation_data is not a landed-cost breakdown this code can read."""
    pass


def _money(**kwargs):
    return serializers.DecimalField(max_digits=18, decimal_places=2, **kwargs)


def _rate(**kwargs):
    return serializers.DecimalField(max_digits=9, decimal_places=4, **kwargs)


# ---------- REQUEST ----------
class DiscountSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=["percentage", "fixed", "free"])
    value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False, default=Decimal("0"))

    def validate(self, attrs):
        if attrs["type"] == "percentage" and attrs["value"] > 100:
            raise serializers.ValidationError({"value": "Percentage discount cannot exceed 100."})
        return attrs


class ItemInputSerializer(serializers.Serializer):
    # Invalid items are tolerated here; the calculator excludes them and counts them.
    name = serializers.CharField(allow_blank=True, default="")
    product_url = serializers.CharField(allow_blank=True, required=False, default="")
    unit_price_usd = serializers.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    quantity = serializers.IntegerField(default=1)
    weight_kg = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    hsn_code = serializers.CharField(max_length=16, required=False, allow_blank=True, allow_null=True)
    use_hsn_rates = serializers.BooleanField(default=False)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"), default=Decimal("0"),
    )


class CalculationRequestSerializer(serializers.Serializer):
    items = ItemInputSerializer(many=True)
    origin_country = serializers.CharField(max_length=2)
    destination_country = serializers.CharField(max_length=2)
    shipping_method = serializers.CharField(default="standard")
    insurance_required = serializers.BooleanField(default=True)
    handling_fee_type = serializers.ChoiceField(choices=["fixed", "percentage", "both"], default="both")
    payment_gateway = serializers.CharField(default="stripe")
    order_discount = DiscountSerializer(required=False, allow_null=True)
    shipping_discount = DiscountSerializer(required=False, allow_null=True)
    insurance_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True)
    customer_currency = serializers.CharField(max_length=3, required=False, allow_null=True, allow_blank=True)

    def validate_order_discount(self, value):
        if value and value.get("type") == "free":
            raise serializers.ValidationError("Order discount must be 'percentage' or 'fixed'.")
        return value

    def to_input(self) -> CalculationInput:
        data = self.validated_data
        return CalculationInput(
            items=[ItemInput(**item) for item in data["items"]],
            origin_country=data["origin_country"].upper(),
            destination_country=data["destination_country"].upper(),
            shipping_method=data["shipping_method"],
            insurance_required=data["insurance_required"],
            handling_fee_type=data["handling_fee_type"],
            payment_gateway=data["payment_gateway"],
            order_discount=Discount.from_dict(data.get("order_discount")),
            shipping_discount=Discount.from_dict(data.get("shipping_discount")),
            insurance_rate=data.get("insurance_rate"),
            customer_currency=(data.get("customer_currency") or None),
        )


# ---------- BREAKDOWN (stored / returned) ----------
class ItemBreakdownSerializer(serializers.Serializer):
    name = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price_usd = _money()
    discount_percentage = _rate()
    subtotal = _money()
    weight_kg = serializers.DecimalField(max_digits=10, decimal_places=3)
    hsn_code = serializers.CharField(allow_null=True, allow_blank=True, required=False, default=None)
    duty_rate = _rate()
    duty = _money()


class BreakdownSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=[BREAKDOWN_KIND])
    schema_version = serializers.ChoiceField(choices=[BREAKDOWN_SCHEMA_VERSION])
    origin_country = serializers.CharField(allow_blank=True)
    destination_country = serializers.CharField()
    shipping_method = serializers.CharField()
    payment_gateway = serializers.CharField()
    handling_fee_type = serializers.CharField()
    items_subtotal = _money()
    item_discounts = _money()
    total_weight_kg = serializers.DecimalField(max_digits=12, decimal_places=3)
    shipping_base = _money()
    shipping_discount = _money()
    shipping_cost = _money()
    customs_rate = _rate()
    customs_duty = _money()
    local_tax_name = serializers.CharField(allow_blank=True)
    local_tax_rate = _rate()
    local_tax = _money()
    handling_fee = _money()
    gateway_fee_percent = _rate()
    gateway_fee_fixed = _money()
    gateway_fee = _money()
    insurance_rate = _rate()
    insurance = _money()
    order_discount = _money()
    total_usd = _money(min_value=Decimal("0"))
    customer_currency = serializers.CharField(max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=None, decimal_places=None)
    total_customer_currency = _money()
    conversion_fallback = serializers.BooleanField()
    valid_items = serializers.IntegerField(min_value=0)
    excluded_items = serializers.IntegerField(min_value=0)
    is_incomplete = serializers.BooleanField()
    items = ItemBreakdownSerializer(many=True)
    warnings = serializers.ListField(child=serializers.CharField(), allow_empty=True)


def parse_breakdown(data) -> CostBreakdown:
    """
    Validate stored calculation_data and rebuild the CostBreakdown.
    Raises BreakdownSchemaError for foreign or malformed payloads.
    """
    if not isinstance(data, dict):
        raise BreakdownSchemaError("calculation_data must be an object")
    if data.get("kind") != BREAKDOWN_KIND or data.get("schema_version") != BREAKDOWN_SCHEMA_VERSION:
        raise BreakdownSchemaError(
            f"Unsupported breakdown {data.get('kind')!r}/{data.get('schema_version')!r}"
        )
    ser = BreakdownSerializer(data=data)
    if not ser.is_valid():
        raise BreakdownSchemaError(f"Malformed breakdown: {ser.errors}")
    values = dict(ser.validated_data)
    values["items"] = [ItemBreakdown(**dict(row)) for row in values["items"]]
    values["warnings"] = list(values["warnings"])
    return CostBreakdown(**values)
