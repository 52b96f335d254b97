from rest_framework import serializers

from apps.catalog.models import Product

PRICE_FIELDS = ("price", "cash_price", "layaway_price", "credit_price")


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "price",
            "cash_price",
            "layaway_price",
            "credit_price",
            "stock_quantity",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {name: {"min_value": 0} for name in PRICE_FIELDS}

    def validate(self, attrs):
        if self.instance is not None and "stock_quantity" in attrs:
            if attrs["stock_quantity"] != self.instance.stock_quantity:
                raise serializers.ValidationError({"stock_quantity": "Stock only changes through sales."})
            attrs.pop("stock_quantity")
        return attrs

    def snapshot(self, product):
        return {
            "sku": product.sku,
            "name": product.name,
            **{name: str(getattr(product, name)) for name in PRICE_FIELDS},
            "stock_quantity": product.stock_quantity,
            "is_active": product.is_active,
        }
