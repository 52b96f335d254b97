import uuid

from django.db import models


class DeliveryStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    SCHEDULED = "SCHEDULED", "Scheduled"
    IN_TRANSIT = "IN_TRANSIT", "In Transit"
    DELIVERED = "DELIVERED", "Delivered"
    FAILED = "FAILED", "Failed"


class Waybill(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # One waybill per purchase, enforced by the unique column.
    purchase = models.OneToOneField("purchases.Purchase", on_delete=models.PROTECT, related_name="waybill")
    waybill_number = models.CharField(max_length=32, unique=True)
    recipient_name = models.CharField(max_length=255)
    recipient_phone = models.CharField(max_length=50)
    delivery_address = models.TextField()
    delivery_city = models.CharField(max_length=120, blank=True, default="")
    delivery_region = models.CharField(max_length=120, blank=True, default="")
    special_instructions = models.TextField(blank=True, default="")
    generated_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="waybills_generated")
    generated_at = models.DateTimeField(auto_now_add=True)
    received_by = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-generated_at"]

    def __str__(self):
        return self.waybill_number


class WaybillItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    waybill = models.ForeignKey(Waybill, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="waybill_items")
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, blank=True, default="")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
