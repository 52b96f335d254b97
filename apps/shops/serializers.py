from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from apps.shops.models import ShopPolicy


class ShopPolicySerializer(serializers.ModelSerializer):
    interest_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
    grace_days = serializers.IntegerField(min_value=0, max_value=60)
    max_tenor_days = serializers.IntegerField(min_value=1, max_value=365)
    late_fee_fixed = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    late_fee_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, required=False, allow_null=True
    )

    class Meta:
        model = ShopPolicy
        fields = [
            "id",
            "interest_type",
            "interest_rate",
            "grace_days",
            "max_tenor_days",
            "late_fee_fixed",
            "late_fee_rate",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        try:
            ShopPolicy(**attrs).clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)
        return attrs
