from rest_framework import serializers

from apps.deliveries.models import DeliveryStatus
from apps.purchases.models import Payment, PaymentMethod, Purchase, PurchaseItem, PurchaseType
from apps.purchases.payments import OverpaymentPolicy


class PurchaseItemSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = PurchaseItem
        fields = [
            "id",
            "product",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
            "interest_amount",
            "total_amount",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    purchase_number = serializers.CharField(source="purchase.purchase_number", read_only=True)
    collector_name = serializers.CharField(source="collector.user.display_name", read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            "id",
            "purchase",
            "purchase_number",
            "amount",
            "method",
            "status",
            "is_confirmed",
            "confirmed_at",
            "confirmed_by",
            "collector",
            "collector_name",
            "recorded_by",
            "reference",
            "notes",
            "excess_amount",
            "rejection_reason",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class PurchaseSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.full_name", read_only=True)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True)
    items = PurchaseItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    waybill_number = serializers.SerializerMethodField()

    class Meta:
        model = Purchase
        fields = [
            "id",
            "purchase_number",
            "customer",
            "customer_name",
            "customer_phone",
            "purchase_type",
            "status",
            "subtotal",
            "interest_amount",
            "total_amount",
            "down_payment",
            "amount_paid",
            "outstanding_balance",
            "interest_type",
            "interest_rate",
            "tenor_days",
            "installments",
            "start_date",
            "due_date",
            "completed_at",
            "delivery_status",
            "scheduled_delivery",
            "delivered_at",
            "delivered_by",
            "delivery_address",
            "waybill_number",
            "notes",
            "created_by",
            "created_at",
            "updated_at",
            "items",
            "payments",
        ]
        read_only_fields = fields

    def get_waybill_number(self, obj):
        waybill = getattr(obj, "waybill", None)
        return waybill.waybill_number if waybill else None


class PurchaseLineInputSerializer(serializers.Serializer):
    product = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class PurchaseCreateSerializer(serializers.Serializer):
    customer = serializers.UUIDField()
    purchase_type = serializers.ChoiceField(choices=PurchaseType.choices)
    tenor_days = serializers.IntegerField(min_value=1)
    down_payment = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    down_payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PurchaseLineInputSerializer(many=True, allow_empty=False)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    overpayment = serializers.ChoiceField(choices=OverpaymentPolicy.choices, default=OverpaymentPolicy.REJECT)


class CollectionCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentConfirmSerializer(serializers.Serializer):
    overpayment = serializers.ChoiceField(choices=OverpaymentPolicy.choices, default=OverpaymentPolicy.REJECT)


class PaymentRejectSerializer(serializers.Serializer):
    reason = serializers.CharField()


class PaymentResultSerializer(serializers.Serializer):
    payment = PaymentSerializer(read_only=True)
    new_amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    new_balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    completed = serializers.BooleanField(read_only=True)
    excess_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class DeliveryStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DeliveryStatus.choices)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
