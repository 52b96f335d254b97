from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.common.exceptions import (
    CustomerNotFoundError,
    LedgerValidationError,
    PaymentNotFoundError,
    PolicyMissingError,
    PurchaseNotFoundError,
    StockConflictError,
    TenorExceedsMaxError,
)
from apps.common.models import NumberSequence
from apps.customers.models import Customer
from apps.inventory.models import InventoryMovement, MovementType
from apps.purchases.models import Payment, PaymentStatus, Purchase, PurchaseStatus, PurchaseType
from apps.purchases.payments import apply_payment, confirm_payment
from apps.purchases.pricing import (
    CHARGES_INTEREST,
    INTEREST_FORMULAS,
    PRICE_FIELD_BY_TYPE,
    compute_terms,
    installments_for,
    resolve_price,
    sum_terms,
)
from apps.purchases.services import commit_purchase, mark_overdue_purchases, prepare_purchase
from apps.shops.models import InterestType, Shop, ShopMembership, ShopPolicy, StaffRole

User = get_user_model()


class PricingTests(SimpleTestCase):
    def policy(self, **overrides):
        values = {"interest_type": InterestType.FLAT, "interest_rate": Decimal("10.00"), "max_tenor_days": 60}
        values.update(overrides)
        return ShopPolicy(**values)

    def test_every_purchase_and_interest_type_is_mapped(self):
        for purchase_type in PurchaseType:
            self.assertIn(purchase_type, PRICE_FIELD_BY_TYPE)
            self.assertIn(purchase_type, CHARGES_INTEREST)
        for interest_type in InterestType:
            self.assertIn(interest_type, INTEREST_FORMULAS)

    def test_resolve_price_uses_type_price_and_falls_back_to_base_price(self):
        product = Product(price=Decimal("100.00"), cash_price=Decimal("90.00"), credit_price=Decimal("0"))
        self.assertEqual(resolve_price(product, PurchaseType.CASH), Decimal("90.00"))
        self.assertEqual(resolve_price(product, PurchaseType.CREDIT), Decimal("100.00"))
        self.assertEqual(resolve_price(product, PurchaseType.LAYAWAY), Decimal("100.00"))

    def test_flat_interest_terms(self):
        terms = compute_terms(Decimal("100.00"), 2, PurchaseType.CREDIT, self.policy(), 30)
        self.assertEqual(terms.subtotal, Decimal("200.00"))
        self.assertEqual(terms.interest_amount, Decimal("20.00"))
        self.assertEqual(terms.total_amount, Decimal("220.00"))

    def test_monthly_interest_uses_fractional_months(self):
        policy = self.policy(interest_type=InterestType.MONTHLY)
        terms = compute_terms(Decimal("100.00"), 1, PurchaseType.LAYAWAY, policy, 45)
        self.assertEqual(terms.interest_amount, Decimal("15.00"))
        self.assertEqual(terms.total_amount, Decimal("115.00"))

        terms = compute_terms(Decimal("200.00"), 1, PurchaseType.CREDIT, policy, 7)
        self.assertEqual(terms.interest_amount, Decimal("4.67"))

    def test_cash_sales_carry_no_interest(self):
        terms = compute_terms(Decimal("90.00"), 1, PurchaseType.CASH, self.policy(), 30)
        self.assertEqual(terms, (Decimal("90.00"), Decimal("0.00"), Decimal("90.00")))

    def test_tenor_above_policy_maximum_is_rejected(self):
        with self.assertRaises(TenorExceedsMaxError):
            compute_terms(Decimal("100.00"), 1, PurchaseType.CREDIT, self.policy(max_tenor_days=60), 61)

    def test_missing_policy_is_a_configuration_error(self):
        with self.assertRaises(PolicyMissingError):
            compute_terms(Decimal("100.00"), 1, PurchaseType.CREDIT, None, 30)

    def test_sum_terms_and_installments(self):
        total = sum_terms(
            [
                compute_terms(Decimal("100.00"), 2, PurchaseType.CREDIT, self.policy(), 30),
                compute_terms(Decimal("50.00"), 1, PurchaseType.CREDIT, self.policy(), 30),
            ]
        )
        self.assertEqual(total.subtotal, Decimal("250.00"))
        self.assertEqual(total.interest_amount, Decimal("25.00"))
        self.assertEqual(total.total_amount, Decimal("275.00"))
        self.assertEqual(installments_for(PurchaseType.CASH, 90), 1)
        self.assertEqual(installments_for(PurchaseType.CREDIT, 30), 1)
        self.assertEqual(installments_for(PurchaseType.CREDIT, 45), 2)


class PurchaseFlowTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.policy = ShopPolicy.objects.create(
            shop=self.shop, interest_type=InterestType.FLAT, interest_rate=Decimal("10.00"), max_tenor_days=60
        )
        self.admin = User.objects.create_user(username="admin_hp", password="admin123")
        self.staff = User.objects.create_user(username="staff_hp", password="staff123")
        self.collector_user = User.objects.create_user(username="collector_hp", password="collect123")
        self.admin_membership = ShopMembership.objects.create(shop=self.shop, user=self.admin, role=StaffRole.SHOP_ADMIN)
        ShopMembership.objects.create(shop=self.shop, user=self.staff, role=StaffRole.SALES_STAFF)
        self.collector = ShopMembership.objects.create(
            shop=self.shop, user=self.collector_user, role=StaffRole.COLLECTOR
        )
        self.customer = Customer.objects.create(
            shop=self.shop,
            first_name="Ama",
            last_name="Mensah",
            phone="024 123 4567",
            address="12 Ring Road",
            city="Accra",
            region="Greater Accra",
            assigned_collector=self.collector,
        )
        self.product = Product.objects.create(
            shop=self.shop,
            sku="FRG-01",
            name="Fridge",
            price=Decimal("100.00"),
            cash_price=Decimal("90.00"),
            stock_quantity=5,
        )
        self.base_url = f"/api/v1/shops/{self.shop.slug}"

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def create_purchase(self, purchase_type="CREDIT", quantity=2, down_payment="30.00", tenor_days=30):
        self.auth_as("staff_hp", "staff123")
        return self.client.post(
            f"{self.base_url}/purchases/",
            {
                "customer": str(self.customer.id),
                "purchase_type": purchase_type,
                "tenor_days": tenor_days,
                "down_payment": down_payment,
                "items": [{"product": str(self.product.id), "quantity": quantity}],
            },
            format="json",
        )

    def pay(self, purchase_id, amount, **extra):
        return self.client.post(
            f"{self.base_url}/purchases/{purchase_id}/payments/",
            {"amount": amount, "method": "MOBILE_MONEY", **extra},
            format="json",
        )

    def test_credit_purchase_prices_decrements_stock_and_records_down_payment(self):
        response = self.create_purchase()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["purchase_number"], "HP-0001")
        self.assertEqual(response.data["subtotal"], "200.00")
        self.assertEqual(response.data["interest_amount"], "20.00")
        self.assertEqual(response.data["total_amount"], "220.00")
        self.assertEqual(response.data["outstanding_balance"], "190.00")
        self.assertEqual(response.data["status"], PurchaseStatus.ACTIVE)
        self.assertEqual(response.data["delivery_status"], "PENDING")
        self.assertEqual(response.data["installments"], 1)
        self.assertEqual(response.data["due_date"], (timezone.localdate() + timedelta(days=30)).isoformat())

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 3)
        movement = InventoryMovement.objects.get(product=self.product, movement_type=MovementType.SALE)
        self.assertEqual(movement.quantity_delta, -2)
        self.assertEqual(movement.reference_id, response.data["id"])

        down_payment = Payment.objects.get(purchase_id=response.data["id"])
        self.assertEqual(down_payment.amount, Decimal("30.00"))
        self.assertTrue(down_payment.is_confirmed)
        self.assertEqual(down_payment.notes, "Down payment at time of purchase")
        self.assertEqual(AuditLog.objects.filter(action="purchase.create", entity_id=response.data["id"]).count(), 1)

    def test_purchase_numbers_are_sequential_per_customer(self):
        first = self.create_purchase(quantity=1)
        second = self.create_purchase(quantity=1)
        other = Customer.objects.create(shop=self.shop, first_name="Kofi", last_name="Boateng", phone="0209999999")
        third = self.client.post(
            f"{self.base_url}/purchases/",
            {
                "customer": str(other.id),
                "purchase_type": "CASH",
                "tenor_days": 1,
                "items": [{"product": str(self.product.id), "quantity": 1}],
            },
            format="json",
        )
        self.assertEqual(first.data["purchase_number"], "HP-0001")
        self.assertEqual(second.data["purchase_number"], "HP-0002")
        self.assertEqual(third.data["purchase_number"], "HP-0001")

    def test_cash_purchase_uses_cash_price_without_interest(self):
        response = self.create_purchase(purchase_type="CASH", quantity=1, down_payment="0")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_amount"], "90.00")
        self.assertEqual(response.data["interest_amount"], "0.00")
        self.assertEqual(response.data["outstanding_balance"], "90.00")
        self.assertFalse(Payment.objects.filter(purchase_id=response.data["id"]).exists())

    def test_down_payment_above_total_is_clamped_and_completes_purchase(self):
        response = self.create_purchase(purchase_type="CASH", quantity=1, down_payment="500.00")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["down_payment"], "90.00")
        self.assertEqual(response.data["outstanding_balance"], "0.00")
        self.assertEqual(response.data["status"], PurchaseStatus.COMPLETED)
        self.assertIsNotNone(response.data["completed_at"])

    def test_tenor_above_policy_maximum_is_rejected_before_stock_changes(self):
        response = self.create_purchase(tenor_days=61)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "tenor_exceeds_max")
        self.assertEqual(response.data["category"], "precondition")
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)
        self.assertFalse(Purchase.objects.exists())

    def test_missing_policy_rejects_every_sale_type(self):
        self.policy.delete()
        for purchase_type in ("CASH", "CREDIT"):
            response = self.create_purchase(purchase_type=purchase_type, quantity=1)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.data["code"], "policy_missing")
        self.assertFalse(Purchase.objects.exists())

    def test_insufficient_stock_and_inactive_products_are_rejected(self):
        response = self.create_purchase(quantity=6)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "stock_insufficient")
        self.assertEqual(response.data["fields"]["available"], 5)

        self.product.is_active = False
        self.product.save(update_fields=["is_active"])
        response = self.create_purchase(quantity=1)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "product_unavailable")

    def test_repeated_product_lines_are_rejected(self):
        self.auth_as("staff_hp", "staff123")
        response = self.client.post(
            f"{self.base_url}/purchases/",
            {
                "customer": str(self.customer.id),
                "purchase_type": "CREDIT",
                "tenor_days": 30,
                "items": [
                    {"product": str(self.product.id), "quantity": 1},
                    {"product": str(self.product.id), "quantity": 1},
                ],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["category"], "validation")

    def test_customer_from_another_shop_is_not_found(self):
        other_shop = Shop.objects.create(name="Kumasi", slug="kumasi")
        stranger = Customer.objects.create(shop=other_shop, first_name="Yaw", last_name="Asante", phone="0501111111")
        self.auth_as("staff_hp", "staff123")
        response = self.client.post(
            f"{self.base_url}/purchases/",
            {
                "customer": str(stranger.id),
                "purchase_type": "CREDIT",
                "tenor_days": 30,
                "items": [{"product": str(self.product.id), "quantity": 1}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "customer_not_found")

    def prepare_two_products(self, down_payment="0"):
        self.policy.interest_type = InterestType.MONTHLY
        self.policy.save(update_fields=["interest_type"])
        self.kettle = Product.objects.create(
            shop=self.shop, sku="KT-01", name="Kettle", price=Decimal("50.00"), stock_quantity=1
        )
        return prepare_purchase(
            shop=self.shop,
            customer_id=self.customer.id,
            items=[{"product": self.product.id, "quantity": 2}, {"product": self.kettle.id, "quantity": 1}],
            down_payment=Decimal(down_payment),
            purchase_type=PurchaseType.CREDIT,
            tenor_days=45,
        )

    def test_terms_are_summed_across_lines_and_down_payment_clamped_to_the_sum(self):
        purchase = commit_purchase(self.prepare_two_products(down_payment="300.00"), actor=self.staff)

        self.assertEqual(purchase.subtotal, Decimal("250.00"))
        self.assertEqual(purchase.interest_amount, Decimal("37.50"))
        self.assertEqual(purchase.total_amount, Decimal("287.50"))
        self.assertEqual(purchase.down_payment, Decimal("287.50"))
        self.assertEqual(purchase.outstanding_balance, Decimal("0.00"))
        self.assertEqual(purchase.status, PurchaseStatus.COMPLETED)
        self.assertEqual(
            sorted((item.product_name, item.total_amount) for item in purchase.items.all()),
            [("Fridge", Decimal("230.00")), ("Kettle", Decimal("57.50"))],
        )

    def test_conflict_on_a_later_line_restores_stock_of_earlier_lines(self):
        prepared = self.prepare_two_products()
        Product.objects.filter(pk=self.kettle.pk).update(stock_quantity=0)

        with self.assertRaises(StockConflictError):
            commit_purchase(prepared, actor=self.staff)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)
        self.assertFalse(InventoryMovement.objects.filter(movement_type=MovementType.SALE).exists())
        self.assertFalse(Purchase.objects.exists())

    def test_same_product_given_as_text_and_uuid_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            prepare_purchase(
                shop=self.shop,
                customer_id=str(self.customer.id),
                items=[{"product": self.product.id, "quantity": 1}, {"product": str(self.product.id), "quantity": 1}],
                down_payment=Decimal("0"),
                purchase_type=PurchaseType.CREDIT,
                tenor_days=30,
            )

    def test_malformed_ids_are_reported_not_crashed(self):
        purchase_id = self.create_purchase().data["id"]

        response = self.pay("not-a-uuid", "10.00")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "purchase_not_found")

        response = self.client.get(f"{self.base_url}/purchases/not-a-uuid/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "purchase_not_found")

        response = self.client.get(f"{self.base_url}/purchases/", {"customer": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["fields"], {"customer": "abc"})

        response = self.client.get(f"{self.base_url}/payments/", {"purchase": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["category"], "validation")

        self.auth_as("admin_hp", "admin123")
        for path in ("confirm/", "reject/"):
            response = self.client.post(
                f"{self.base_url}/payments/not-a-uuid/{path}", {"reason": "Wrong receipt"}, format="json"
            )
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.data["code"], "payment_not_found")

        response = self.client.get(f"{self.base_url}/payments/", {"purchase": purchase_id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)

    def test_services_reject_malformed_ids(self):
        with self.assertRaises(PurchaseNotFoundError):
            apply_payment(shop=self.shop, purchase_id="abc", amount="10.00", method="CASH", actor=self.staff)
        with self.assertRaises(PaymentNotFoundError):
            confirm_payment(shop=self.shop, payment_id="abc", actor=self.admin)
        with self.assertRaises(CustomerNotFoundError):
            prepare_purchase(
                shop=self.shop,
                customer_id="abc",
                items=[{"product": self.product.id, "quantity": 1}],
                down_payment=Decimal("0"),
                purchase_type=PurchaseType.CREDIT,
                tenor_days=30,
            )

    def test_stock_taken_between_check_and_commit_rolls_back_the_sale(self):
        prepared = prepare_purchase(
            shop=self.shop,
            customer_id=self.customer.id,
            items=[{"product": self.product.id, "quantity": 1}],
            down_payment=Decimal("10.00"),
            purchase_type=PurchaseType.CREDIT,
            tenor_days=30,
        )
        Product.objects.filter(pk=self.product.pk).update(stock_quantity=0)

        with self.assertRaises(StockConflictError) as ctx:
            commit_purchase(prepared, actor=self.staff)

        self.assertTrue(ctx.exception.retryable)
        self.assertFalse(Purchase.objects.exists())
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(AuditLog.objects.filter(action="purchase.create").exists())
        self.assertFalse(NumberSequence.objects.filter(key=f"purchase:{self.customer.id}", last_value__gt=0).exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)

    def test_payment_settles_purchase(self):
        purchase_id = self.create_purchase(down_payment="50.00").data["id"]

        response = self.pay(purchase_id, "170.00")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["new_amount_paid"], "220.00")
        self.assertEqual(response.data["new_balance"], "0.00")
        self.assertTrue(response.data["completed"])

        purchase = Purchase.objects.get(pk=purchase_id)
        self.assertEqual(purchase.status, PurchaseStatus.COMPLETED)
        self.assertIsNotNone(purchase.completed_at)
        self.assertTrue(AuditLog.objects.filter(action="payment.apply", entity_id=purchase_id).exists())

        again = self.pay(purchase_id, "1.00")
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.data["code"], "already_settled")

    def test_overpayment_is_rejected_by_default(self):
        purchase_id = self.create_purchase(down_payment="50.00").data["id"]

        response = self.pay(purchase_id, "200.00")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "overpayment")
        self.assertEqual(response.data["fields"]["current"], "170.00")
        self.assertEqual(Payment.objects.filter(purchase_id=purchase_id).count(), 1)
        self.assertEqual(Purchase.objects.get(pk=purchase_id).outstanding_balance, Decimal("170.00"))

    def test_overpayment_can_be_capped_and_reports_excess(self):
        purchase_id = self.create_purchase(down_payment="50.00").data["id"]

        response = self.pay(purchase_id, "200.00", overpayment="CAP")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["payment"]["amount"], "170.00")
        self.assertEqual(response.data["excess_amount"], "30.00")
        self.assertEqual(response.data["new_balance"], "0.00")
        self.assertTrue(response.data["completed"])

    def test_non_positive_amount_is_rejected(self):
        purchase_id = self.create_purchase().data["id"]
        for amount in ("0", "-5.00"):
            response = self.pay(purchase_id, amount)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.data["code"], "amount_invalid")

    def test_balance_is_derived_from_confirmed_payments_only(self):
        purchase_id = self.create_purchase().data["id"]
        Payment.objects.create(
            purchase_id=purchase_id,
            amount=Decimal("100.00"),
            method="CASH",
            status=PaymentStatus.PENDING,
            paid_at=timezone.now(),
        )
        Purchase.objects.filter(pk=purchase_id).update(amount_paid=Decimal("999.00"))

        response = self.pay(purchase_id, "50.00")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["new_amount_paid"], "80.00")
        self.assertEqual(response.data["new_balance"], "140.00")

    def test_collector_collection_waits_for_admin_confirmation(self):
        purchase_id = self.create_purchase().data["id"]

        self.auth_as("collector_hp", "collect123")
        collected = self.client.post(
            f"{self.base_url}/purchases/{purchase_id}/collections/",
            {"amount": "40.00", "method": "CASH"},
            format="json",
        )
        self.assertEqual(collected.status_code, 201)
        self.assertEqual(collected.data["status"], PaymentStatus.PENDING)
        self.assertEqual(Purchase.objects.get(pk=purchase_id).outstanding_balance, Decimal("190.00"))

        self.auth_as("staff_hp", "staff123")
        forbidden = self.client.post(f"{self.base_url}/payments/{collected.data['id']}/confirm/", {}, format="json")
        self.assertEqual(forbidden.status_code, 403)

        self.auth_as("admin_hp", "admin123")
        confirmed = self.client.post(f"{self.base_url}/payments/{collected.data['id']}/confirm/", {}, format="json")
        self.assertEqual(confirmed.status_code, 200)
        self.assertEqual(confirmed.data["new_balance"], "150.00")
        self.assertTrue(confirmed.data["payment"]["is_confirmed"])

        twice = self.client.post(f"{self.base_url}/payments/{collected.data['id']}/confirm/", {}, format="json")
        self.assertEqual(twice.status_code, 409)
        self.assertEqual(twice.data["code"], "invalid_payment_state")

    def test_rejected_collection_leaves_balance_untouched(self):
        purchase_id = self.create_purchase().data["id"]
        self.auth_as("collector_hp", "collect123")
        collected = self.client.post(
            f"{self.base_url}/purchases/{purchase_id}/collections/",
            {"amount": "40.00", "method": "CASH"},
            format="json",
        )

        self.auth_as("admin_hp", "admin123")
        rejected = self.client.post(
            f"{self.base_url}/payments/{collected.data['id']}/reject/",
            {"reason": "Receipt does not match"},
            format="json",
        )
        self.assertEqual(rejected.status_code, 200)
        self.assertEqual(rejected.data["status"], PaymentStatus.REJECTED)
        self.assertEqual(Purchase.objects.get(pk=purchase_id).outstanding_balance, Decimal("190.00"))
        self.assertTrue(AuditLog.objects.filter(action="payment.reject", entity_id=collected.data["id"]).exists())

    def test_collector_cannot_collect_for_unassigned_customer(self):
        purchase_id = self.create_purchase().data["id"]
        Customer.objects.filter(pk=self.customer.pk).update(assigned_collector=None)

        self.auth_as("collector_hp", "collect123")
        response = self.client.post(
            f"{self.base_url}/purchases/{purchase_id}/collections/",
            {"amount": "40.00", "method": "CASH"},
            format="json",
        )
        self.assertEqual(response.status_code, 404)

    def test_collector_cannot_apply_confirmed_payments(self):
        purchase_id = self.create_purchase().data["id"]
        self.auth_as("collector_hp", "collect123")
        response = self.pay(purchase_id, "10.00")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["category"], "authorization")

    def test_purchase_list_filters(self):
        completed_id = self.create_purchase(purchase_type="CASH", quantity=1, down_payment="90.00").data["id"]
        active_id = self.create_purchase(quantity=1).data["id"]

        response = self.client.get(f"{self.base_url}/purchases/", {"status": "COMPLETED"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["id"] for row in response.data["results"]], [completed_id])

        response = self.client.get(f"{self.base_url}/purchases/", {"ready_for_delivery": "true"})
        self.assertEqual(response.data["count"], 0)

        response = self.client.get(f"{self.base_url}/purchases/", {"customer": str(self.customer.id)})
        self.assertEqual({row["id"] for row in response.data["results"]}, {completed_id, active_id})


class OverdueTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Tema", slug="tema")
        ShopPolicy.objects.create(shop=self.shop, interest_rate=Decimal("5.00"), grace_days=3, max_tenor_days=60)
        self.user = User.objects.create_user(username="staff_od", password="staff123")
        self.customer = Customer.objects.create(shop=self.shop, first_name="Efua", last_name="Owusu", phone="0277777777")
        self.product = Product.objects.create(shop=self.shop, name="TV", price=Decimal("100.00"), stock_quantity=3)

    def make_purchase(self):
        prepared = prepare_purchase(
            shop=self.shop,
            customer_id=self.customer.id,
            items=[{"product": self.product.id, "quantity": 1}],
            down_payment=Decimal("0"),
            purchase_type=PurchaseType.CREDIT,
            tenor_days=30,
        )
        return commit_purchase(prepared, actor=self.user)

    def test_purchases_past_grace_period_become_overdue(self):
        purchase = self.make_purchase()

        self.assertEqual(mark_overdue_purchases(today=purchase.due_date + timedelta(days=3)), [])
        marked = mark_overdue_purchases(today=purchase.due_date + timedelta(days=4))

        self.assertEqual([p.pk for p in marked], [purchase.pk])
        purchase.refresh_from_db()
        self.assertEqual(purchase.status, PurchaseStatus.OVERDUE)
        self.assertTrue(AuditLog.objects.filter(action="purchase.overdue", entity_id=str(purchase.pk)).exists())

    def test_overdue_purchase_still_accepts_payments_and_completes(self):
        purchase = self.make_purchase()
        mark_overdue_purchases(today=purchase.due_date + timedelta(days=10))

        result = apply_payment(
            shop=self.shop, purchase_id=purchase.pk, amount="105.00", method="CASH", actor=self.user
        )
        self.assertTrue(result.completed)
        purchase.refresh_from_db()
        self.assertEqual(purchase.status, PurchaseStatus.COMPLETED)

    def test_management_command_reports_marked_purchases(self):
        purchase = self.make_purchase()
        out = StringIO()
        call_command(
            "mark_overdue_purchases", "--date", (purchase.due_date + timedelta(days=30)).isoformat(), stdout=out
        )
        self.assertIn("Overdue purchases: 1", out.getvalue())
        self.assertIn(purchase.purchase_number, out.getvalue())
