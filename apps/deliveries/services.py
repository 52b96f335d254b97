import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import LedgerValidationError, PurchaseNotFoundError, WaybillExistsError
from apps.common.lookups import parse_uuid
from apps.common.sequences import WAYBILL_SEQUENCE_KEY, next_value
from apps.deliveries.models import DeliveryStatus, Waybill, WaybillItem
from apps.deliveries.state import check_transition
from apps.purchases.models import Purchase
from apps.shops.models import ShopMembership

logger = logging.getLogger(__name__)

MISSING_ADDRESS = "N/A"
WAYBILL_OVERRIDE_FIELDS = (
    "recipient_name",
    "recipient_phone",
    "delivery_address",
    "delivery_city",
    "delivery_region",
    "special_instructions",
)


def format_waybill_number(year, value):
    return f"WB-{year}-{value:05d}"


def _lock_purchase(shop, purchase_id):
    purchase_id = parse_uuid(purchase_id, PurchaseNotFoundError, field="purchase_id")
    purchase = Purchase.objects.select_for_update().filter(pk=purchase_id, shop=shop).first()
    if purchase is None:
        raise PurchaseNotFoundError(fields={"purchase_id": str(purchase_id)})
    return purchase


def set_delivery_status(*, shop, purchase_id, target_status, actor, scheduled_date=None, membership=None):
    with transaction.atomic():
        purchase = _lock_purchase(shop, purchase_id)
        previous = purchase.delivery_status
        has_waybill = Waybill.objects.filter(purchase=purchase).exists()
        target = check_transition(previous, target_status, has_waybill=has_waybill)

        purchase.delivery_status = target
        update_fields = ["delivery_status", "updated_at"]
        if target == DeliveryStatus.SCHEDULED and scheduled_date is not None:
            purchase.scheduled_delivery = scheduled_date
            update_fields.append("scheduled_delivery")
        if target == DeliveryStatus.DELIVERED:
            if membership is None:
                membership = ShopMembership.objects.filter(shop=shop, user=actor).first()
            purchase.delivered_at = timezone.now()
            purchase.delivered_by = membership
            update_fields += ["delivered_at", "delivered_by"]
        purchase.save(update_fields=update_fields)

        record_audit(
            actor=actor,
            action="delivery.status",
            entity_type="purchase",
            entity_id=purchase.id,
            shop=shop,
            payload={
                "from": previous,
                "to": target.value,
                "scheduled_date": scheduled_date.isoformat() if scheduled_date else None,
            },
        )

    logger.info("delivery of %s moved %s -> %s", purchase.purchase_number, previous, target.value)
    return purchase


def mark_delivered(*, shop, purchase_id, actor, membership=None):
    return set_delivery_status(
        shop=shop,
        purchase_id=purchase_id,
        target_status=DeliveryStatus.DELIVERED,
        actor=actor,
        membership=membership,
    )


def _waybill_fields(purchase, overrides):
    unknown = set(overrides) - set(WAYBILL_OVERRIDE_FIELDS)
    if unknown:
        raise LedgerValidationError(
            "Unknown waybill fields.", fields={name: "Not a waybill field." for name in sorted(unknown)}
        )

    customer = purchase.customer
    fields = {
        "recipient_name": customer.full_name,
        "recipient_phone": customer.phone,
        "delivery_address": purchase.delivery_address or customer.address or MISSING_ADDRESS,
        "delivery_city": customer.city,
        "delivery_region": customer.region,
        "special_instructions": "",
    }
    for name, value in overrides.items():
        if value not in (None, ""):
            fields[name] = str(value).strip()
    return fields


def issue_waybill(*, shop, purchase_id, actor, overrides=None):
    """Create the one waybill a purchase may have.

    Recipient and address default from the customer and purchase; each
    override replaces only its own field. A PENDING delivery becomes SCHEDULED.
    """
    overrides = overrides or {}
    try:
        with transaction.atomic():
            purchase = _lock_purchase(shop, purchase_id)
            if Waybill.objects.filter(purchase=purchase).exists():
                raise WaybillExistsError(fields={"purchase_id": str(purchase.id)})

            fields = _waybill_fields(purchase, overrides)
            number = format_waybill_number(timezone.localdate().year, next_value(WAYBILL_SEQUENCE_KEY))
            waybill = Waybill.objects.create(
                purchase=purchase,
                waybill_number=number,
                generated_by=actor,
                **fields,
            )
            for item in purchase.items.select_related("product"):
                WaybillItem.objects.create(
                    waybill=waybill,
                    product=item.product,
                    product_name=item.product_name,
                    sku=item.product.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )

            previous = purchase.delivery_status
            if previous == DeliveryStatus.PENDING:
                purchase.delivery_status = DeliveryStatus.SCHEDULED
                purchase.save(update_fields=["delivery_status", "updated_at"])

            record_audit(
                actor=actor,
                action="waybill.issue",
                entity_type="waybill",
                entity_id=waybill.id,
                shop=shop,
                payload={
                    "purchase_id": str(purchase.id),
                    "waybill_number": number,
                    "delivery_status_from": previous,
                    "delivery_status_to": purchase.delivery_status,
                },
            )
    except IntegrityError:
        if Waybill.objects.filter(purchase_id=purchase_id).exists():
            logger.warning("concurrent waybill issue for purchase %s", purchase_id)
            raise WaybillExistsError(fields={"purchase_id": str(purchase_id)})
        raise

    logger.info("waybill %s issued for %s", waybill.waybill_number, purchase.purchase_number)
    return waybill
