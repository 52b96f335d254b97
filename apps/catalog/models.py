import uuid

from django.db import models


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="products")
    sku = models.CharField(max_length=64, blank=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cash_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    layaway_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    credit_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["shop", "is_active"], name="product_shop_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(stock_quantity__gte=0), name="product_stock_gte_zero"),
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_gte_zero"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}" if self.sku else self.name
