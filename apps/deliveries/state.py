from apps.common.exceptions import IllegalTransitionError, LedgerValidationError, WaybillRequiredError
from apps.deliveries.models import DeliveryStatus

# Open deliveries may move freely except back to PENDING; DELIVERED is final.
ALLOWED_TRANSITIONS = {
    DeliveryStatus.PENDING: {DeliveryStatus.SCHEDULED, DeliveryStatus.FAILED, DeliveryStatus.DELIVERED},
    DeliveryStatus.SCHEDULED: {
        DeliveryStatus.SCHEDULED,
        DeliveryStatus.IN_TRANSIT,
        DeliveryStatus.FAILED,
        DeliveryStatus.DELIVERED,
    },
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.SCHEDULED, DeliveryStatus.FAILED, DeliveryStatus.DELIVERED},
    DeliveryStatus.FAILED: {DeliveryStatus.SCHEDULED, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: set(),
}

# Goods leave the shop only against an issued waybill.
REQUIRES_WAYBILL = {
    DeliveryStatus.PENDING: False,
    DeliveryStatus.SCHEDULED: False,
    DeliveryStatus.IN_TRANSIT: True,
    DeliveryStatus.DELIVERED: False,
    DeliveryStatus.FAILED: False,
}


def parse_status(value):
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise LedgerValidationError("Unknown delivery status.", fields={"status": str(value)})


def is_terminal(status):
    return not ALLOWED_TRANSITIONS[DeliveryStatus(status)]


def check_transition(current, target, *, has_waybill):
    """Validate a move of ``current`` to ``target`` and return the target status.

    Raises IllegalTransitionError for moves outside ALLOWED_TRANSITIONS and
    WaybillRequiredError when the target needs a waybill that was never issued.
    """
    current = DeliveryStatus(current)
    target = parse_status(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransitionError(current.value, target.value)
    if REQUIRES_WAYBILL[target] and not has_waybill:
        raise WaybillRequiredError(current.value, target.value)
    return target
