from decimal import Decimal

from rest_framework import serializers

from .models import PaymentGateway, PaymentTransaction
from .services.gateway_selection import gateway_flow


class PaymentGatewaySerializer(serializers.ModelSerializer):
    flow = serializers.SerializerMethodField()

    class Meta:
        model = PaymentGateway
        fields = ["code", "name", "supported_countries", "supported_currencies",
                  "fee_percent", "fee_fixed", "priority", "is_active", "flow"]

    def get_flow(self, obj):
        return gateway_flow(obj.code)


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = ["id", "quote", "gateway_code", "amount", "currency", "status",
                  "gateway_reference", "metadata", "created_at"]
        read_only_fields = fields


class RecordPaymentSerializer(serializers.Serializer):
    gateway_code = serializers.CharField(max_length=32)
    amount = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=Decimal("0.01"))
    currency = serializers.CharField(max_length=3)
    gateway_reference = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    metadata = serializers.DictField(required=False, default=dict)
