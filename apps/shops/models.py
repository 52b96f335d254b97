import uuid

from django.core.exceptions import ValidationError
from django.db import models


class StaffRole(models.TextChoices):
    SHOP_ADMIN = "SHOP_ADMIN", "Shop Admin"
    SALES_STAFF = "SALES_STAFF", "Sales Staff"
    COLLECTOR = "COLLECTOR", "Collector"


class InterestType(models.TextChoices):
    FLAT = "FLAT", "Flat"
    MONTHLY = "MONTHLY", "Monthly"


class Shop(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=80, unique=True)
    currency = models.CharField(max_length=8, default="GHS")
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class ShopMembership(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(Shop, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey("accounts.User", on_delete=models.CASCADE, related_name="shop_memberships")
    role = models.CharField(max_length=20, choices=StaffRole.choices)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["shop", "user"], name="unique_shop_membership"),
        ]
        indexes = [
            models.Index(fields=["shop", "role"], name="membership_shop_role_idx"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.shop} ({self.role})"


class ShopPolicy(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.OneToOneField(Shop, on_delete=models.CASCADE, related_name="policy")
    interest_type = models.CharField(max_length=16, choices=InterestType.choices, default=InterestType.FLAT)
    interest_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    grace_days = models.PositiveIntegerField(default=3)
    max_tenor_days = models.PositiveIntegerField(default=60)
    late_fee_fixed = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    late_fee_rate = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "shop policies"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(interest_rate__gte=0) & models.Q(interest_rate__lte=100),
                name="policy_interest_rate_range",
            ),
            models.CheckConstraint(condition=models.Q(max_tenor_days__gte=1), name="policy_max_tenor_gte_one"),
        ]

    def clean(self):
        if self.interest_rate is None or not 0 <= self.interest_rate <= 100:
            raise ValidationError("Interest rate must be between 0 and 100")
        if not 0 <= self.grace_days <= 60:
            raise ValidationError("Grace days must be between 0 and 60")
        if not 1 <= self.max_tenor_days <= 365:
            raise ValidationError("Max tenor days must be between 1 and 365")
        if self.late_fee_fixed is not None and self.late_fee_fixed < 0:
            raise ValidationError("Late fee fixed amount must be 0 or greater")
        if self.late_fee_rate is not None and self.late_fee_rate < 0:
            raise ValidationError("Late fee rate must be 0 or greater")

    def as_payload(self):
        return {
            "interest_type": self.interest_type,
            "interest_rate": str(self.interest_rate),
            "grace_days": self.grace_days,
            "max_tenor_days": self.max_tenor_days,
            "late_fee_fixed": str(self.late_fee_fixed) if self.late_fee_fixed is not None else None,
            "late_fee_rate": str(self.late_fee_rate) if self.late_fee_rate is not None else None,
        }
