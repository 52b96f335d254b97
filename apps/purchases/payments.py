import logging
from collections import namedtuple
from decimal import Decimal, InvalidOperation

from django.db import models, transaction
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import (
    InvalidPaymentAmountError,
    LedgerValidationError,
    OverpaymentError,
    PaymentNotFoundError,
    PaymentStateError,
    PurchaseAlreadySettledError,
    PurchaseNotFoundError,
)
from apps.common.lookups import parse_uuid
from apps.purchases.models import Payment, PaymentMethod, PaymentStatus, Purchase, PurchaseStatus
from apps.purchases.pricing import quantize_money

logger = logging.getLogger(__name__)

MONEY_FIELD = DecimalField(max_digits=12, decimal_places=2)

PaymentResult = namedtuple(
    "PaymentResult", ["payment", "new_amount_paid", "new_balance", "completed", "excess_amount"]
)


class OverpaymentPolicy(models.TextChoices):
    REJECT = "REJECT", "Reject"
    CAP = "CAP", "Cap at balance"


def _coerce_amount(amount):
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPaymentAmountError(fields={"amount": str(amount)})
    if not value.is_finite() or value <= 0:
        raise InvalidPaymentAmountError(fields={"amount": str(amount)})
    value = quantize_money(value)
    if value <= 0:
        raise InvalidPaymentAmountError(fields={"amount": str(amount)})
    return value


def _check_method(method):
    if method not in PaymentMethod.values:
        raise LedgerValidationError("Unknown payment method.", fields={"method": method})


def confirmed_total(purchase_id):
    return Payment.objects.filter(purchase_id=purchase_id, is_confirmed=True).aggregate(
        total=Coalesce(Sum("amount"), Value(Decimal("0.00")), output_field=MONEY_FIELD)
    )["total"]


def _lock_purchase(*, shop, purchase_id, **filters):
    purchase_id = parse_uuid(purchase_id, PurchaseNotFoundError, field="purchase_id")
    purchase = Purchase.objects.select_for_update().filter(pk=purchase_id, shop=shop, **filters).first()
    if purchase is None:
        raise PurchaseNotFoundError(fields={"purchase_id": str(purchase_id)})
    return purchase


def _settle_amount(purchase, amount, overpayment):
    """Return (applied, excess) for a payment against the purchase's live balance."""
    if purchase.status == PurchaseStatus.COMPLETED:
        raise PurchaseAlreadySettledError(purchase.status)
    balance = purchase.total_amount - confirmed_total(purchase.pk)
    if balance <= 0:
        raise PurchaseAlreadySettledError(purchase.status)
    if amount <= balance:
        return amount, Decimal("0.00")
    if OverpaymentPolicy(overpayment) == OverpaymentPolicy.REJECT:
        raise OverpaymentError(amount, balance)
    return balance, amount - balance


def recompute_balance(purchase):
    """Rewrite amount_paid and the balance from the confirmed payments.

    Must run with the purchase row locked. Flips the purchase to COMPLETED
    when nothing is left to pay.
    """
    amount_paid = confirmed_total(purchase.pk)
    purchase.amount_paid = amount_paid
    purchase.outstanding_balance = purchase.total_amount - amount_paid
    update_fields = ["amount_paid", "outstanding_balance", "updated_at"]
    if purchase.outstanding_balance == 0 and purchase.status != PurchaseStatus.COMPLETED:
        purchase.status = PurchaseStatus.COMPLETED
        purchase.completed_at = timezone.now()
        update_fields += ["status", "completed_at"]
    purchase.save(update_fields=update_fields)
    return purchase


def _result(payment, purchase, excess):
    return PaymentResult(
        payment=payment,
        new_amount_paid=purchase.amount_paid,
        new_balance=purchase.outstanding_balance,
        completed=purchase.status == PurchaseStatus.COMPLETED,
        excess_amount=excess,
    )


def apply_payment(
    *,
    shop,
    purchase_id,
    amount,
    method,
    actor,
    overpayment=OverpaymentPolicy.REJECT,
    reference="",
    notes="",
    collector=None,
):
    amount = _coerce_amount(amount)
    _check_method(method)

    with transaction.atomic():
        purchase = _lock_purchase(shop=shop, purchase_id=purchase_id)
        applied, excess = _settle_amount(purchase, amount, overpayment)
        now = timezone.now()
        payment = Payment.objects.create(
            purchase=purchase,
            amount=applied,
            method=method,
            status=PaymentStatus.COMPLETED,
            is_confirmed=True,
            confirmed_at=now,
            confirmed_by=actor,
            collector=collector,
            recorded_by=actor,
            reference=reference or "",
            notes=notes or "",
            excess_amount=excess,
            paid_at=now,
        )
        recompute_balance(purchase)
        record_audit(
            actor=actor,
            action="payment.apply",
            entity_type="purchase",
            entity_id=purchase.id,
            shop=shop,
            payload={
                "payment_id": str(payment.id),
                "amount": str(applied),
                "excess_amount": str(excess),
                "new_amount_paid": str(purchase.amount_paid),
                "new_balance": str(purchase.outstanding_balance),
            },
        )

    if excess:
        logger.warning("payment on %s capped at balance, excess %s not applied", purchase.purchase_number, excess)
    logger.info(
        "payment %s applied to %s, balance now %s", applied, purchase.purchase_number, purchase.outstanding_balance
    )
    return _result(payment, purchase, excess)


def record_collection(*, shop, purchase_id, amount, method, collector, reference="", notes=""):
    """Log money taken in the field; it only counts once a shop admin confirms it."""
    amount = _coerce_amount(amount)
    _check_method(method)

    with transaction.atomic():
        purchase = _lock_purchase(shop=shop, purchase_id=purchase_id, customer__assigned_collector=collector)
        _settle_amount(purchase, amount, OverpaymentPolicy.REJECT)
        payment = Payment.objects.create(
            purchase=purchase,
            amount=amount,
            method=method,
            status=PaymentStatus.PENDING,
            is_confirmed=False,
            collector=collector,
            recorded_by=collector.user,
            reference=reference or "",
            notes=notes or "",
            paid_at=timezone.now(),
        )
        record_audit(
            actor=collector.user,
            action="payment.collect",
            entity_type="payment",
            entity_id=payment.id,
            shop=shop,
            payload={"purchase_id": str(purchase.id), "amount": str(amount)},
        )

    logger.info("collection of %s recorded on %s pending review", amount, purchase.purchase_number)
    return payment


def _get_pending_payment(*, shop, payment_id, target):
    payment_id = parse_uuid(payment_id, PaymentNotFoundError, field="payment_id")
    payment = Payment.objects.select_for_update().filter(pk=payment_id, purchase__shop=shop).first()
    if payment is None:
        raise PaymentNotFoundError(fields={"payment_id": str(payment_id)})
    if payment.status != PaymentStatus.PENDING:
        raise PaymentStateError(payment.status, target)
    return payment


def confirm_payment(*, shop, payment_id, actor, overpayment=OverpaymentPolicy.REJECT):
    payment_id = parse_uuid(payment_id, PaymentNotFoundError, field="payment_id")
    purchase_id = Payment.objects.filter(pk=payment_id, purchase__shop=shop).values_list("purchase_id", flat=True).first()
    if purchase_id is None:
        raise PaymentNotFoundError(fields={"payment_id": str(payment_id)})

    with transaction.atomic():
        # Purchase first, then payment: same lock order as apply_payment.
        purchase = _lock_purchase(shop=shop, purchase_id=purchase_id)
        payment = _get_pending_payment(shop=shop, payment_id=payment_id, target=PaymentStatus.COMPLETED)
        applied, excess = _settle_amount(purchase, payment.amount, overpayment)

        payment.amount = applied
        payment.excess_amount = excess
        payment.status = PaymentStatus.COMPLETED
        payment.is_confirmed = True
        payment.confirmed_at = timezone.now()
        payment.confirmed_by = actor
        payment.save(
            update_fields=["amount", "excess_amount", "status", "is_confirmed", "confirmed_at", "confirmed_by"]
        )
        recompute_balance(purchase)
        record_audit(
            actor=actor,
            action="payment.confirm",
            entity_type="payment",
            entity_id=payment.id,
            shop=shop,
            payload={
                "purchase_id": str(purchase.id),
                "amount": str(applied),
                "excess_amount": str(excess),
                "new_balance": str(purchase.outstanding_balance),
            },
        )

    logger.info("payment %s confirmed on %s", payment.id, purchase.purchase_number)
    return _result(payment, purchase, excess)


def reject_payment(*, shop, payment_id, actor, reason):
    reason = str(reason or "").strip()
    if not reason:
        raise LedgerValidationError("A rejection reason is required.", fields={"reason": reason})

    with transaction.atomic():
        payment = _get_pending_payment(shop=shop, payment_id=payment_id, target=PaymentStatus.REJECTED)
        payment.status = PaymentStatus.REJECTED
        payment.rejection_reason = reason
        payment.save(update_fields=["status", "rejection_reason"])
        record_audit(
            actor=actor,
            action="payment.reject",
            entity_type="payment",
            entity_id=payment.id,
            shop=shop,
            payload={"purchase_id": str(payment.purchase_id), "reason": reason},
        )

    logger.info("payment %s rejected", payment.id)
    return payment
