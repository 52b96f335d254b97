from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class ErrorCategory:
    VALIDATION = "validation"
    PRECONDITION = "precondition"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    ILLEGAL_TRANSITION = "illegal_transition"
    AUTHORIZATION = "authorization"


class LedgerError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    category = ErrorCategory.VALIDATION
    default_detail = "Request failed."
    default_code = "ledger_error"

    def __init__(self, detail=None, code=None, fields=None):
        super().__init__(detail=detail, code=code)
        self.fields = fields or {}


class LedgerValidationError(LedgerError):
    default_detail = "Invalid input."
    default_code = "invalid_input"


class InvalidPaymentAmountError(LedgerValidationError):
    default_detail = "Payment amount must be greater than 0."
    default_code = "amount_invalid"


class PreconditionError(LedgerError):
    category = ErrorCategory.PRECONDITION
    default_detail = "Operation precondition not met."
    default_code = "precondition_failed"


class PolicyMissingError(PreconditionError):
    default_detail = "Shop policy not configured. Please contact your administrator."
    default_code = "policy_missing"


class TenorExceedsMaxError(PreconditionError):
    default_detail = "Tenor exceeds the maximum allowed by the shop policy."
    default_code = "tenor_exceeds_max"


class ProductUnavailableError(PreconditionError):
    default_detail = "Product not found or inactive."
    default_code = "product_unavailable"


class InsufficientStockError(PreconditionError):
    default_detail = "Insufficient stock."
    default_code = "stock_insufficient"


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class CustomerNotFoundError(NotFoundError):
    default_detail = "Customer not found."
    default_code = "customer_not_found"


class PurchaseNotFoundError(NotFoundError):
    default_detail = "Purchase not found."
    default_code = "purchase_not_found"


class PaymentNotFoundError(NotFoundError):
    default_detail = "Payment not found."
    default_code = "payment_not_found"


class ConflictError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    category = ErrorCategory.CONFLICT
    default_detail = "Conflicting concurrent update."
    default_code = "conflict"
    retryable = False


class StockConflictError(ConflictError):
    default_detail = "Stock was exhausted by a concurrent sale."
    default_code = "stock_insufficient"
    retryable = True


class WaybillExistsError(ConflictError):
    default_detail = "Waybill already exists for this purchase."
    default_code = "waybill_already_exists"


class IllegalTransitionError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    category = ErrorCategory.ILLEGAL_TRANSITION
    default_detail = "Transition not allowed."
    default_code = "illegal_transition"

    def __init__(self, current, requested, detail=None, code=None):
        detail = detail or f"Cannot move from {current} to {requested}."
        super().__init__(detail=detail, code=code, fields={"current": str(current), "requested": str(requested)})
        self.current = current
        self.requested = requested


class WaybillRequiredError(IllegalTransitionError):
    default_code = "waybill_required"

    def __init__(self, current, requested):
        super().__init__(current, requested, detail=f"A waybill must be issued before moving to {requested}.")


class OverpaymentError(IllegalTransitionError):
    default_code = "overpayment"

    def __init__(self, amount, balance):
        super().__init__(
            current=str(balance),
            requested=str(amount),
            detail=f"Amount {amount} exceeds outstanding balance of {balance}.",
        )


class PurchaseAlreadySettledError(IllegalTransitionError):
    default_code = "already_settled"

    def __init__(self, current_status):
        super().__init__(current_status, "PAYMENT", detail="This purchase is already fully paid.")


class PaymentStateError(IllegalTransitionError):
    default_code = "invalid_payment_state"


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        exc = LedgerValidationError("; ".join(exc.messages))
    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(response.data, dict):
        detail = response.data.get("detail", "Request failed")
        fields = {k: v for k, v in response.data.items() if k != "detail"}
    else:
        detail = "Request failed"
        fields = {}

    if isinstance(exc, LedgerError):
        fields = {**fields, **exc.fields}
        category = exc.category
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        category = ErrorCategory.NOT_FOUND
    elif response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        category = ErrorCategory.AUTHORIZATION
    else:
        category = ErrorCategory.VALIDATION

    response.data = {
        "code": getattr(exc, "default_code", "error"),
        "category": category,
        "detail": detail,
        "fields": fields,
    }
    return response
