from rest_framework import serializers

from .models import DeliveryAddress

NEPAL_PROVINCES = ["Koshi", "Madhesh", "Bagmati", "Gandaki", "Lumbini", "Karnali", "Sudurpashchim"]
MAX_WARD = 35


class DeliveryAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryAddress
        fields = [
            "id", "recipient_name", "phone", "country",
            "address_line1", "address_line2", "city", "state_province_region", "postal_code",
            "province", "district", "municipality", "ward",
            "is_default", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_country(self, value):
        value = (value or "").strip().upper()
        if len(value) != 2 or not value.isalpha():
            raise serializers.ValidationError("Use a 2-letter ISO country code.")
        return value

    def validate(self, attrs):
        # Partial updates are validated against the stored row.
        merged = {}
        if self.instance is not None:
            merged = {f: getattr(self.instance, f) for f in self.Meta.fields if hasattr(self.instance, f)}
        merged.update(attrs)

        errors = {}
        if merged.get("country") == "NP":
            province = (merged.get("province") or "").strip()
            match = next((p for p in NEPAL_PROVINCES if p.lower() == province.lower()), None)
            if match is None:
                errors["province"] = f"Choose one of: {', '.join(NEPAL_PROVINCES)}."
            else:
                attrs["province"] = match
            for field in ("district", "municipality"):
                if not (merged.get(field) or "").strip():
                    errors[field] = "This field is required for Nepal addresses."
            ward = merged.get("ward")
            if ward is None or not 1 <= ward <= MAX_WARD:
                errors["ward"] = f"Ward must be between 1 and {MAX_WARD}."
        else:
            for field in ("address_line1", "city"):
                if not (merged.get(field) or "").strip():
                    errors[field] = "This field is required."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
