import uuid

from django.core.exceptions import ValidationError
from django.db import models


class MovementType(models.TextChoices):
    OPENING = "OPENING", "Opening stock"
    SALE = "SALE", "Sale"


class InventoryMovement(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="movements")
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity_delta = models.IntegerField()
    balance_after = models.PositiveIntegerField()
    reference_type = models.CharField(max_length=64)
    reference_id = models.CharField(max_length=64)
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        "accounts.User", on_delete=models.PROTECT, null=True, blank=True, related_name="inventory_movements"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["reference_type", "reference_id", "product"],
                name="unique_inventory_reference_product",
            )
        ]

    def clean(self):
        if self.quantity_delta == 0:
            raise ValidationError("quantity_delta cannot be zero")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
