import logging
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.common.exceptions import (
    CustomerNotFoundError,
    InsufficientStockError,
    LedgerValidationError,
    ProductUnavailableError,
)
from apps.common.lookups import parse_uuid
from apps.common.sequences import next_value, purchase_sequence_key
from apps.customers.models import Customer
from apps.inventory.services import decrement_stock
from apps.purchases.models import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
    PurchaseType,
)
from apps.purchases.pricing import (
    compute_terms,
    ensure_policy_allows,
    installments_for,
    quantize_money,
    resolve_price,
    sum_terms,
)
from apps.shops.models import ShopPolicy

logger = logging.getLogger(__name__)

DOWN_PAYMENT_NOTE = "Down payment at time of purchase"


class PreparedPurchase:
    """A validated and fully priced purchase request, ready to be committed."""

    def __init__(self, *, shop, customer, policy, purchase_type, tenor_days, lines, down_payment,
                 down_payment_method, delivery_address, notes):
        self.shop = shop
        self.customer = customer
        self.policy = policy
        self.purchase_type = purchase_type
        self.tenor_days = tenor_days
        self.lines = lines
        self.down_payment = down_payment
        self.down_payment_method = down_payment_method
        self.delivery_address = delivery_address
        self.notes = notes

    @property
    def terms(self):
        return sum_terms(line["terms"] for line in self.lines)


def format_purchase_number(value):
    return f"HP-{value:04d}"


def _money(value, field):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerValidationError(f"{field} must be a number.", fields={field: str(value)})
    if not amount.is_finite():
        raise LedgerValidationError(f"{field} must be a number.", fields={field: str(value)})
    return quantize_money(amount)


def _positive_int(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise LedgerValidationError(f"{field} must be a whole number of at least 1.", fields={field: value})
    return value


def prepare_purchase(
    *,
    shop,
    customer_id,
    items,
    down_payment,
    purchase_type,
    tenor_days,
    delivery_address="",
    notes="",
    down_payment_method=PaymentMethod.CASH,
):
    """Check every precondition and price each line without writing anything."""
    if purchase_type not in PurchaseType.values:
        raise LedgerValidationError("Unknown purchase type.", fields={"purchase_type": purchase_type})
    if down_payment_method not in PaymentMethod.values:
        raise LedgerValidationError("Unknown payment method.", fields={"down_payment_method": down_payment_method})
    tenor_days = _positive_int(tenor_days, "tenor_days")
    down_payment = _money(down_payment, "down_payment")
    if down_payment < 0:
        raise LedgerValidationError("Down payment cannot be negative.", fields={"down_payment": str(down_payment)})
    if not items:
        raise LedgerValidationError("At least one item is required.", fields={"items": []})

    customer_id = parse_uuid(customer_id, CustomerNotFoundError, field="customer_id")
    customer = Customer.objects.filter(pk=customer_id, shop=shop).first()
    if customer is None:
        raise CustomerNotFoundError(fields={"customer_id": str(customer_id)})

    policy = ShopPolicy.objects.filter(shop=shop).first()
    ensure_policy_allows(policy, tenor_days)

    lines = []
    seen_products = set()
    for item in items:
        product_id = item.get("product")
        if isinstance(product_id, Product):
            product_id = product_id.pk
        product_id = parse_uuid(product_id, ProductUnavailableError, field="product")
        quantity = _positive_int(item.get("quantity"), "quantity")
        product = Product.objects.filter(pk=product_id, shop=shop, is_active=True).first()
        if product is None:
            raise ProductUnavailableError(fields={"product": str(product_id)})
        if product.pk in seen_products:
            raise LedgerValidationError(
                "Each product may appear only once per purchase.", fields={"product": str(product.pk)}
            )
        seen_products.add(product.pk)
        if product.stock_quantity < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}. Only {product.stock_quantity} available.",
                fields={"product": str(product.pk), "available": product.stock_quantity},
            )

        if item.get("unit_price") is not None:
            unit_price = _money(item["unit_price"], "unit_price")
            if unit_price <= 0:
                raise LedgerValidationError(
                    "Unit price must be greater than 0.", fields={"unit_price": str(unit_price)}
                )
        else:
            unit_price = resolve_price(product, purchase_type)

        lines.append(
            {
                "product": product,
                "quantity": quantity,
                "unit_price": unit_price,
                "terms": compute_terms(unit_price, quantity, purchase_type, policy, tenor_days),
            }
        )

    return PreparedPurchase(
        shop=shop,
        customer=customer,
        policy=policy,
        purchase_type=purchase_type,
        tenor_days=tenor_days,
        lines=lines,
        down_payment=down_payment,
        down_payment_method=down_payment_method,
        delivery_address=delivery_address or "",
        notes=notes or "",
    )


def commit_purchase(prepared, *, actor):
    """Write a prepared purchase in one transaction.

    Stock is taken with a conditional decrement, so a sale that lost the last
    units to a concurrent writer raises StockConflictError and leaves no trace.
    """
    purchase_id = uuid.uuid4()
    terms = prepared.terms
    down_payment = min(prepared.down_payment, terms.total_amount)
    outstanding = terms.total_amount - down_payment
    now = timezone.now()
    start_date = timezone.localdate()

    with transaction.atomic():
        for line in prepared.lines:
            decrement_stock(
                product=line["product"],
                quantity=line["quantity"],
                actor=actor,
                reference_type="purchase",
                reference_id=purchase_id,
                note="Hire purchase sale",
            )

        sequence = next_value(purchase_sequence_key(prepared.customer.pk))
        completed = outstanding == 0
        purchase = Purchase.objects.create(
            id=purchase_id,
            shop=prepared.shop,
            customer=prepared.customer,
            created_by=actor,
            purchase_number=format_purchase_number(sequence),
            purchase_type=prepared.purchase_type,
            status=PurchaseStatus.COMPLETED if completed else PurchaseStatus.ACTIVE,
            subtotal=terms.subtotal,
            interest_amount=terms.interest_amount,
            total_amount=terms.total_amount,
            down_payment=down_payment,
            amount_paid=down_payment,
            outstanding_balance=outstanding,
            interest_type=prepared.policy.interest_type,
            interest_rate=prepared.policy.interest_rate,
            tenor_days=prepared.tenor_days,
            installments=installments_for(prepared.purchase_type, prepared.tenor_days),
            start_date=start_date,
            due_date=start_date + timedelta(days=prepared.tenor_days),
            completed_at=now if completed else None,
            delivery_address=prepared.delivery_address,
            notes=prepared.notes,
        )

        for line in prepared.lines:
            PurchaseItem.objects.create(
                purchase=purchase,
                product=line["product"],
                product_name=line["product"].name,
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                subtotal=line["terms"].subtotal,
                interest_amount=line["terms"].interest_amount,
                total_amount=line["terms"].total_amount,
            )

        if down_payment > 0:
            Payment.objects.create(
                purchase=purchase,
                amount=down_payment,
                method=prepared.down_payment_method,
                status=PaymentStatus.COMPLETED,
                is_confirmed=True,
                confirmed_at=now,
                confirmed_by=actor,
                recorded_by=actor,
                notes=DOWN_PAYMENT_NOTE,
                paid_at=now,
            )

        record_audit(
            actor=actor,
            action="purchase.create",
            entity_type="purchase",
            entity_id=purchase.id,
            shop=prepared.shop,
            payload={
                "purchase_number": purchase.purchase_number,
                "customer_id": str(prepared.customer.pk),
                "purchase_type": prepared.purchase_type,
                "items": [
                    {"product_id": str(line["product"].pk), "quantity": line["quantity"]} for line in prepared.lines
                ],
                "total_amount": str(terms.total_amount),
                "down_payment": str(down_payment),
            },
        )

    logger.info(
        "purchase %s created for customer %s: total %s, balance %s",
        purchase.purchase_number,
        prepared.customer.pk,
        purchase.total_amount,
        purchase.outstanding_balance,
    )
    return purchase


def create_purchase(*, shop, actor, **request):
    prepared = prepare_purchase(shop=shop, **request)
    return commit_purchase(prepared, actor=actor)


def mark_overdue_purchases(*, today=None):
    """Flag ACTIVE purchases with a balance left after due date plus grace days."""
    today = today or timezone.localdate()
    candidates = (
        Purchase.objects.filter(status=PurchaseStatus.ACTIVE, outstanding_balance__gt=0, due_date__lt=today)
        .select_related("shop")
        .order_by("due_date")
    )
    grace_by_shop = dict(ShopPolicy.objects.values_list("shop_id", "grace_days"))

    marked = []
    for candidate in candidates:
        grace_days = grace_by_shop.get(candidate.shop_id, 0)
        if candidate.due_date + timedelta(days=grace_days) >= today:
            continue
        with transaction.atomic():
            purchase = Purchase.objects.select_for_update().get(pk=candidate.pk)
            if purchase.status != PurchaseStatus.ACTIVE or purchase.outstanding_balance <= 0:
                continue
            purchase.status = PurchaseStatus.OVERDUE
            purchase.save(update_fields=["status", "updated_at"])
            record_audit(
                actor=None,
                action="purchase.overdue",
                entity_type="purchase",
                entity_id=purchase.id,
                shop=candidate.shop,
                payload={
                    "due_date": purchase.due_date.isoformat(),
                    "grace_days": grace_days,
                    "outstanding_balance": str(purchase.outstanding_balance),
                },
            )
        marked.append(purchase)

    if marked:
        logger.info("marked %s purchases overdue", len(marked))
    return marked
