import math
from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal

from apps.common.exceptions import PolicyMissingError, TenorExceedsMaxError
from apps.purchases.models import PurchaseType
from apps.shops.models import InterestType

MONEY = Decimal("0.01")
DAYS_PER_MONTH = 30

Terms = namedtuple("Terms", ["subtotal", "interest_amount", "total_amount"])

PRICE_FIELD_BY_TYPE = {
    PurchaseType.CASH: "cash_price",
    PurchaseType.LAYAWAY: "layaway_price",
    PurchaseType.CREDIT: "credit_price",
}

CHARGES_INTEREST = {
    PurchaseType.CASH: False,
    PurchaseType.LAYAWAY: True,
    PurchaseType.CREDIT: True,
}


def quantize_money(value):
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def _flat_interest(subtotal, rate, tenor_days):
    return subtotal * rate / Decimal("100")


def _monthly_interest(subtotal, rate, tenor_days):
    return subtotal * rate / Decimal("100") * Decimal(tenor_days) / Decimal(DAYS_PER_MONTH)


INTEREST_FORMULAS = {
    InterestType.FLAT: _flat_interest,
    InterestType.MONTHLY: _monthly_interest,
}


def resolve_price(product, purchase_type):
    """Unit price for the sale type; a zero type-specific price falls back to the base price."""
    unit_price = getattr(product, PRICE_FIELD_BY_TYPE[PurchaseType(purchase_type)])
    if not unit_price:
        unit_price = product.price or Decimal("0")
    return quantize_money(unit_price)


def ensure_policy_allows(policy, tenor_days):
    if policy is None:
        raise PolicyMissingError()
    if tenor_days > policy.max_tenor_days:
        raise TenorExceedsMaxError(
            f"Tenor of {tenor_days} days exceeds the maximum of {policy.max_tenor_days} days.",
            fields={"tenor_days": tenor_days, "max_tenor_days": policy.max_tenor_days},
        )


def compute_terms(unit_price, quantity, purchase_type, policy, tenor_days):
    ensure_policy_allows(policy, tenor_days)

    subtotal = quantize_money(Decimal(unit_price) * quantity)
    if CHARGES_INTEREST[PurchaseType(purchase_type)]:
        formula = INTEREST_FORMULAS[InterestType(policy.interest_type)]
        interest_amount = quantize_money(formula(subtotal, Decimal(policy.interest_rate), tenor_days))
    else:
        interest_amount = Decimal("0.00")
    return Terms(subtotal, interest_amount, subtotal + interest_amount)


def sum_terms(terms):
    subtotal = interest_amount = Decimal("0.00")
    for item in terms:
        subtotal += item.subtotal
        interest_amount += item.interest_amount
    return Terms(subtotal, interest_amount, subtotal + interest_amount)


def installments_for(purchase_type, tenor_days):
    if PurchaseType(purchase_type) == PurchaseType.CASH:
        return 1
    return max(1, math.ceil(tenor_days / DAYS_PER_MONTH))
