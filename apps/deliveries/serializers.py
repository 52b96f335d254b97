from rest_framework import serializers

from apps.deliveries.models import Waybill, WaybillItem


class WaybillItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = WaybillItem
        fields = ["id", "product", "product_name", "sku", "quantity", "unit_price"]
        read_only_fields = fields


class WaybillSerializer(serializers.ModelSerializer):
    purchase_number = serializers.CharField(source="purchase.purchase_number", read_only=True)
    delivery_status = serializers.CharField(source="purchase.delivery_status", read_only=True)
    generated_by_name = serializers.CharField(source="generated_by.display_name", read_only=True)
    items = WaybillItemSerializer(many=True, read_only=True)

    class Meta:
        model = Waybill
        fields = [
            "id",
            "waybill_number",
            "purchase",
            "purchase_number",
            "delivery_status",
            "recipient_name",
            "recipient_phone",
            "delivery_address",
            "delivery_city",
            "delivery_region",
            "special_instructions",
            "generated_by",
            "generated_by_name",
            "generated_at",
            "received_by",
            "items",
        ]
        read_only_fields = fields


class WaybillIssueSerializer(serializers.Serializer):
    recipient_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    recipient_phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    delivery_address = serializers.CharField(required=False, allow_blank=True)
    delivery_city = serializers.CharField(required=False, allow_blank=True, max_length=120)
    delivery_region = serializers.CharField(required=False, allow_blank=True, max_length=120)
    special_instructions = serializers.CharField(required=False, allow_blank=True)
