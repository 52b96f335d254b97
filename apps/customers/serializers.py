from rest_framework import serializers

from apps.customers.models import Customer, normalize_phone


class CustomerSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    assigned_collector_name = serializers.CharField(
        source="assigned_collector.user.display_name", read_only=True, default=None
    )

    class Meta:
        model = Customer
        fields = [
            "id",
            "first_name",
            "last_name",
            "full_name",
            "phone",
            "phone_normalized",
            "email",
            "id_type",
            "id_number",
            "address",
            "city",
            "region",
            "preferred_payment",
            "assigned_collector",
            "assigned_collector_name",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "phone_normalized", "assigned_collector", "created_at", "updated_at"]

    def validate_phone(self, value):
        if not normalize_phone(value):
            raise serializers.ValidationError("Phone is required.")
        return value.strip()


class AssignCollectorSerializer(serializers.Serializer):
    collector = serializers.UUIDField(allow_null=True)
