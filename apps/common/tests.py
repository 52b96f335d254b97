import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.test import TestCase

from apps.common.exceptions import (
    ErrorCategory,
    InsufficientStockError,
    LedgerValidationError,
    OverpaymentError,
    PurchaseNotFoundError,
    api_exception_handler,
)
from apps.common.lookups import parse_uuid
from apps.common.models import NumberSequence
from apps.common.sequences import next_value, purchase_sequence_key


class SequenceTests(TestCase):
    def test_values_increase_per_key(self):
        with transaction.atomic():
            self.assertEqual(next_value("waybill"), 1)
            self.assertEqual(next_value("waybill"), 2)
            self.assertEqual(next_value(purchase_sequence_key("c-1")), 1)
        self.assertEqual(NumberSequence.objects.get(key="waybill").last_value, 2)

    def test_rolled_back_value_is_reused(self):
        with transaction.atomic():
            next_value("waybill")
        try:
            with transaction.atomic():
                self.assertEqual(next_value("waybill"), 2)
                raise RuntimeError("abort")
        except RuntimeError:
            pass
        with transaction.atomic():
            self.assertEqual(next_value("waybill"), 2)


class ErrorBodyTests(TestCase):
    def test_ledger_errors_carry_code_category_and_fields(self):
        response = api_exception_handler(
            InsufficientStockError("Only 1 available.", fields={"available": 1}), context={}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data,
            {
                "code": "stock_insufficient",
                "category": ErrorCategory.PRECONDITION,
                "detail": "Only 1 available.",
                "fields": {"available": 1},
            },
        )

    def test_illegal_transitions_report_current_and_requested(self):
        response = api_exception_handler(OverpaymentError("200.00", "170.00"), context={})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["category"], ErrorCategory.ILLEGAL_TRANSITION)
        self.assertEqual(response.data["fields"], {"current": "170.00", "requested": "200.00"})

    def test_model_validation_errors_become_validation_responses(self):
        response = api_exception_handler(DjangoValidationError("phone is required"), context={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_input")
        self.assertEqual(response.data["detail"], "phone is required")


class ParseUuidTests(TestCase):
    def test_text_and_uuid_values_parse_to_the_same_id(self):
        value = uuid.uuid4()
        self.assertEqual(parse_uuid(str(value)), value)
        self.assertIs(parse_uuid(value), value)

    def test_malformed_value_raises_the_given_error(self):
        with self.assertRaises(PurchaseNotFoundError) as ctx:
            parse_uuid("not-a-uuid", PurchaseNotFoundError, field="purchase_id")
        self.assertEqual(ctx.exception.fields, {"purchase_id": "not-a-uuid"})
        with self.assertRaises(LedgerValidationError):
            parse_uuid(None, field="customer")
