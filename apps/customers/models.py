import re
import uuid

from django.core.exceptions import ValidationError
from django.db import models


def normalize_phone(value):
    raw = str(value or "").strip()
    normalized = re.sub(r"\D+", "", raw)
    return normalized or raw


class PaymentPreference(models.TextChoices):
    CASH = "CASH", "Cash"
    MOBILE_MONEY = "MOBILE_MONEY", "Mobile Money"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CARD = "CARD", "Card"


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="customers")
    first_name = models.CharField(max_length=120)
    last_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=50)
    phone_normalized = models.CharField(max_length=50)
    email = models.EmailField(blank=True)
    id_type = models.CharField(max_length=40, blank=True)
    id_number = models.CharField(max_length=80, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120, blank=True)
    region = models.CharField(max_length=120, blank=True)
    preferred_payment = models.CharField(
        max_length=20, choices=PaymentPreference.choices, default=PaymentPreference.CASH
    )
    # Plain reference to a collector membership; deleting the membership only clears it.
    assigned_collector = models.ForeignKey(
        "shops.ShopMembership",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_customers",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["shop", "phone_normalized"], name="customer_shop_phone_idx"),
            models.Index(fields=["shop", "assigned_collector"], name="customer_shop_collector_idx"),
        ]

    def clean(self):
        if not self.phone:
            raise ValidationError("phone is required")
        if not normalize_phone(self.phone):
            raise ValidationError("phone must contain at least one digit")

    def save(self, *args, **kwargs):
        self.first_name = str(self.first_name or "").strip()
        self.last_name = str(self.last_name or "").strip()
        self.phone = str(self.phone or "").strip()
        self.phone_normalized = normalize_phone(self.phone)
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"{self.full_name} ({self.phone})"
