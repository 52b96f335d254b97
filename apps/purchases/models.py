import uuid

from django.db import models

from apps.deliveries.models import DeliveryStatus
from apps.shops.models import InterestType


class PurchaseType(models.TextChoices):
    CASH = "CASH", "Cash"
    LAYAWAY = "LAYAWAY", "Layaway"
    CREDIT = "CREDIT", "Credit"


class PurchaseStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"
    OVERDUE = "OVERDUE", "Overdue"


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    MOBILE_MONEY = "MOBILE_MONEY", "Mobile Money"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CARD = "CARD", "Card"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    REJECTED = "REJECTED", "Rejected"


class Purchase(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="purchases")
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="purchases")
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="purchases_created")
    purchase_number = models.CharField(max_length=20)
    purchase_type = models.CharField(max_length=16, choices=PurchaseType.choices)
    status = models.CharField(max_length=16, choices=PurchaseStatus.choices, default=PurchaseStatus.ACTIVE)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    interest_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    down_payment = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    outstanding_balance = models.DecimalField(max_digits=12, decimal_places=2)

    interest_type = models.CharField(max_length=16, choices=InterestType.choices)
    interest_rate = models.DecimalField(max_digits=5, decimal_places=2)
    tenor_days = models.PositiveIntegerField()
    installments = models.PositiveIntegerField(default=1)
    start_date = models.DateField()
    due_date = models.DateField()
    completed_at = models.DateTimeField(null=True, blank=True)

    delivery_status = models.CharField(max_length=16, choices=DeliveryStatus.choices, default=DeliveryStatus.PENDING)
    scheduled_delivery = models.DateField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    delivered_by = models.ForeignKey(
        "shops.ShopMembership",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="deliveries_made",
    )
    delivery_address = models.TextField(blank=True, default="")

    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["customer", "purchase_number"], name="unique_customer_purchase_number"),
            models.CheckConstraint(condition=models.Q(amount_paid__gte=0), name="purchase_amount_paid_gte_zero"),
            models.CheckConstraint(
                condition=models.Q(outstanding_balance__gte=0), name="purchase_outstanding_gte_zero"
            ),
            models.CheckConstraint(condition=models.Q(tenor_days__gte=1), name="purchase_tenor_gte_one"),
        ]
        indexes = [
            models.Index(fields=["shop", "status"], name="purchase_shop_status_idx"),
            models.Index(fields=["shop", "delivery_status"], name="purchase_shop_delivery_idx"),
            models.Index(fields=["status", "due_date"], name="purchase_status_due_idx"),
        ]

    def __str__(self):
        return f"{self.purchase_number} ({self.customer_id})"


class PurchaseItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="purchase_items")
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    interest_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="purchase_item_qty_gte_one"),
            models.UniqueConstraint(fields=["purchase", "product"], name="unique_purchase_product"),
        ]


class Payment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase = models.ForeignKey(Purchase, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    is_confirmed = models.BooleanField(default=False)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="payments_confirmed"
    )
    collector = models.ForeignKey(
        "shops.ShopMembership", null=True, blank=True, on_delete=models.SET_NULL, related_name="collections"
    )
    recorded_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="payments_recorded"
    )
    reference = models.CharField(max_length=120, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    excess_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rejection_reason = models.TextField(blank=True, default="")
    paid_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-paid_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="payment_amount_gt_zero"),
            models.CheckConstraint(condition=models.Q(excess_amount__gte=0), name="payment_excess_gte_zero"),
        ]
        indexes = [
            models.Index(fields=["purchase", "is_confirmed"], name="payment_purchase_confirmed_idx"),
            models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
        ]
