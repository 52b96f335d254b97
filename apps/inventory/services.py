import logging

from django.db import transaction
from django.db.models import F

from apps.catalog.models import Product
from apps.common.exceptions import LedgerValidationError, StockConflictError
from apps.inventory.models import InventoryMovement, MovementType

logger = logging.getLogger(__name__)


def available_stock(product_id):
    return Product.objects.filter(pk=product_id).values_list("stock_quantity", flat=True).first() or 0


def decrement_stock(*, product, quantity, actor, reference_type, reference_id, note=""):
    """Take ``quantity`` units out of stock with a conditional write.

    The ``stock_quantity >= quantity`` guard is evaluated by the database in
    the same statement as the decrement, so concurrent sales can never drive
    stock below zero: the loser updates no row and gets StockConflictError.
    """
    if quantity < 1:
        raise LedgerValidationError("Quantity must be at least 1")
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("decrement_stock() must run inside the sale transaction.")

    updated = Product.objects.filter(pk=product.pk, stock_quantity__gte=quantity).update(
        stock_quantity=F("stock_quantity") - quantity
    )
    if updated == 0:
        remaining = available_stock(product.pk)
        logger.warning(
            "stock conflict on product %s: wanted %s, %s left", product.pk, quantity, remaining
        )
        raise StockConflictError(
            f"Insufficient stock for {product.name}. Only {remaining} available.",
            fields={"product": str(product.pk), "available": remaining},
        )

    balance_after = available_stock(product.pk)
    product.stock_quantity = balance_after
    return InventoryMovement.objects.create(
        product=product,
        movement_type=MovementType.SALE,
        quantity_delta=-quantity,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=str(reference_id),
        note=note,
        created_by=actor,
    )


def record_opening_stock(*, product, actor):
    if product.stock_quantity <= 0:
        return None
    return InventoryMovement.objects.create(
        product=product,
        movement_type=MovementType.OPENING,
        quantity_delta=product.stock_quantity,
        balance_after=product.stock_quantity,
        reference_type="product_create",
        reference_id=str(product.pk),
        note="Opening stock",
        created_by=actor,
    )
