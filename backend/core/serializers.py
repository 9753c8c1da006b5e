from rest_framework import serializers

from .models import Country


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            "code", "name", "currency", "symbol",
            "rate_from_usd", "rate_updated_at",
            "minimum_payment_amount", "shipping_allowed",
            "customs_rate", "local_tax_rate", "local_tax_name",
        ]
