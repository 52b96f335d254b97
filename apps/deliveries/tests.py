from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.common.exceptions import IllegalTransitionError, WaybillExistsError, WaybillRequiredError
from apps.customers.models import Customer
from apps.deliveries.models import DeliveryStatus, Waybill
from apps.deliveries.services import issue_waybill, mark_delivered
from apps.deliveries.state import ALLOWED_TRANSITIONS, REQUIRES_WAYBILL, check_transition, is_terminal
from apps.purchases.models import PurchaseType
from apps.purchases.services import create_purchase
from apps.shops.models import InterestType, Shop, ShopMembership, ShopPolicy, StaffRole

User = get_user_model()


class DeliveryStateTests(SimpleTestCase):
    def test_every_status_has_rules(self):
        for delivery_status in DeliveryStatus:
            self.assertIn(delivery_status, ALLOWED_TRANSITIONS)
            self.assertIn(delivery_status, REQUIRES_WAYBILL)

    def test_delivered_is_terminal(self):
        self.assertTrue(is_terminal(DeliveryStatus.DELIVERED))
        for target in DeliveryStatus:
            with self.assertRaises(IllegalTransitionError):
                check_transition(DeliveryStatus.DELIVERED, target, has_waybill=True)

    def test_in_transit_needs_a_waybill(self):
        with self.assertRaises(WaybillRequiredError):
            check_transition(DeliveryStatus.SCHEDULED, DeliveryStatus.IN_TRANSIT, has_waybill=False)
        self.assertEqual(
            check_transition(DeliveryStatus.SCHEDULED, DeliveryStatus.IN_TRANSIT, has_waybill=True),
            DeliveryStatus.IN_TRANSIT,
        )

    def test_failed_delivery_can_be_rescheduled(self):
        self.assertFalse(is_terminal(DeliveryStatus.FAILED))
        self.assertEqual(
            check_transition("FAILED", "SCHEDULED", has_waybill=False),
            DeliveryStatus.SCHEDULED,
        )
        with self.assertRaises(IllegalTransitionError):
            check_transition("IN_TRANSIT", "PENDING", has_waybill=True)

    def test_failed_or_returned_delivery_can_be_dispatched_again(self):
        self.assertEqual(
            check_transition(DeliveryStatus.FAILED, DeliveryStatus.IN_TRANSIT, has_waybill=True),
            DeliveryStatus.IN_TRANSIT,
        )
        with self.assertRaises(WaybillRequiredError):
            check_transition(DeliveryStatus.FAILED, DeliveryStatus.IN_TRANSIT, has_waybill=False)
        self.assertEqual(
            check_transition(DeliveryStatus.IN_TRANSIT, DeliveryStatus.SCHEDULED, has_waybill=True),
            DeliveryStatus.SCHEDULED,
        )

    def test_open_deliveries_can_complete_but_never_reset(self):
        for current in DeliveryStatus:
            if current == DeliveryStatus.DELIVERED:
                continue
            self.assertIn(DeliveryStatus.DELIVERED, ALLOWED_TRANSITIONS[current])
            self.assertNotIn(DeliveryStatus.PENDING, ALLOWED_TRANSITIONS[current])


class WaybillFlowTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Takoradi", slug="takoradi")
        ShopPolicy.objects.create(shop=self.shop, interest_type=InterestType.FLAT, interest_rate=Decimal("10.00"))
        self.staff = User.objects.create_user(username="staff_wb", password="staff123")
        self.collector_user = User.objects.create_user(username="collector_wb", password="collect123")
        self.staff_membership = ShopMembership.objects.create(
            shop=self.shop, user=self.staff, role=StaffRole.SALES_STAFF
        )
        ShopMembership.objects.create(shop=self.shop, user=self.collector_user, role=StaffRole.COLLECTOR)
        self.customer = Customer.objects.create(
            shop=self.shop,
            first_name="Kwame",
            last_name="Addo",
            phone="0244000111",
            address="4 Harbour Road",
            city="Takoradi",
            region="Western",
        )
        self.product = Product.objects.create(
            shop=self.shop, sku="TV-32", name="32in TV", price=Decimal("150.00"), stock_quantity=4
        )
        self.purchase = create_purchase(
            shop=self.shop,
            actor=self.staff,
            customer_id=self.customer.id,
            items=[{"product": self.product.id, "quantity": 1}],
            down_payment=Decimal("165.00"),
            purchase_type=PurchaseType.CREDIT,
            tenor_days=30,
        )
        self.base_url = f"/api/v1/shops/{self.shop.slug}/purchases/{self.purchase.id}"

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_issue_waybill_defaults_from_customer_and_schedules_delivery(self):
        self.auth_as("staff_wb", "staff123")
        response = self.client.post(f"{self.base_url}/waybill/", {}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["waybill_number"], f"WB-{timezone.localdate().year}-00001")
        self.assertEqual(response.data["recipient_name"], "Kwame Addo")
        self.assertEqual(response.data["recipient_phone"], "0244000111")
        self.assertEqual(response.data["delivery_address"], "4 Harbour Road")
        self.assertEqual(response.data["delivery_region"], "Western")
        self.assertEqual(response.data["delivery_status"], DeliveryStatus.SCHEDULED)
        self.assertEqual(len(response.data["items"]), 1)
        self.assertEqual(response.data["items"][0]["product_name"], "32in TV")
        self.assertEqual(response.data["items"][0]["sku"], "TV-32")

        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.delivery_status, DeliveryStatus.SCHEDULED)
        self.assertTrue(AuditLog.objects.filter(action="waybill.issue").exists())

        fetched = self.client.get(f"{self.base_url}/waybill/")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.data["id"], response.data["id"])

    def test_overrides_replace_only_their_own_fields(self):
        self.auth_as("staff_wb", "staff123")
        response = self.client.post(
            f"{self.base_url}/waybill/",
            {"recipient_name": "Abena Addo", "delivery_address": "", "special_instructions": "Call on arrival"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["recipient_name"], "Abena Addo")
        self.assertEqual(response.data["delivery_address"], "4 Harbour Road")
        self.assertEqual(response.data["special_instructions"], "Call on arrival")
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.first_name, "Kwame")

    def test_address_falls_back_to_placeholder(self):
        Customer.objects.filter(pk=self.customer.pk).update(address="")
        waybill = issue_waybill(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)
        self.assertEqual(waybill.delivery_address, "N/A")

    def test_second_waybill_is_rejected(self):
        issue_waybill(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)
        with self.assertRaises(WaybillExistsError):
            issue_waybill(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)

        self.auth_as("staff_wb", "staff123")
        response = self.client.post(f"{self.base_url}/waybill/", {}, format="json")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "waybill_already_exists")
        self.assertEqual(Waybill.objects.filter(purchase=self.purchase).count(), 1)

    def test_missing_waybill_returns_not_found(self):
        self.auth_as("staff_wb", "staff123")
        response = self.client.get(f"{self.base_url}/waybill/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["category"], "not_found")

    def test_dispatch_requires_waybill(self):
        self.auth_as("staff_wb", "staff123")
        self.client.post(f"{self.base_url}/delivery/", {"status": "SCHEDULED"}, format="json")
        response = self.client.post(f"{self.base_url}/delivery/", {"status": "IN_TRANSIT"}, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "waybill_required")
        self.assertEqual(response.data["fields"]["current"], "SCHEDULED")

    def test_full_delivery_lifecycle(self):
        self.auth_as("staff_wb", "staff123")
        self.client.post(f"{self.base_url}/waybill/", {}, format="json")

        scheduled = self.client.post(
            f"{self.base_url}/delivery/", {"status": "SCHEDULED", "scheduled_date": "2026-11-02"}, format="json"
        )
        self.assertEqual(scheduled.status_code, 200)
        self.assertEqual(scheduled.data["scheduled_delivery"], "2026-11-02")

        in_transit = self.client.post(f"{self.base_url}/delivery/", {"status": "IN_TRANSIT"}, format="json")
        self.assertEqual(in_transit.status_code, 200)

        delivered = self.client.post(f"{self.base_url}/delivery/", {"status": "DELIVERED"}, format="json")
        self.assertEqual(delivered.status_code, 200)
        self.assertEqual(delivered.data["delivery_status"], DeliveryStatus.DELIVERED)
        self.assertIsNotNone(delivered.data["delivered_at"])
        self.assertEqual(delivered.data["delivered_by"], self.staff_membership.id)

        again = self.client.post(f"{self.base_url}/delivery/", {"status": "SCHEDULED"}, format="json")
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.data["code"], "illegal_transition")
        self.assertEqual(
            AuditLog.objects.filter(action="delivery.status", entity_id=str(self.purchase.id)).count(), 3
        )

    def test_failed_delivery_with_waybill_goes_back_in_transit(self):
        issue_waybill(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)
        self.auth_as("staff_wb", "staff123")

        failed = self.client.post(f"{self.base_url}/delivery/", {"status": "FAILED"}, format="json")
        self.assertEqual(failed.status_code, 200)
        retried = self.client.post(f"{self.base_url}/delivery/", {"status": "IN_TRANSIT"}, format="json")
        self.assertEqual(retried.status_code, 200)
        self.assertEqual(retried.data["delivery_status"], DeliveryStatus.IN_TRANSIT)

    def test_malformed_purchase_id_is_not_found(self):
        self.auth_as("staff_wb", "staff123")
        url = f"/api/v1/shops/{self.shop.slug}/purchases/not-a-uuid"
        for path in ("delivery/", "waybill/"):
            response = self.client.post(f"{url}/{path}", {"status": "SCHEDULED"}, format="json")
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.data["code"], "purchase_not_found")

    def test_mark_delivered_resolves_membership_from_actor(self):
        purchase = mark_delivered(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)
        self.assertEqual(purchase.delivery_status, DeliveryStatus.DELIVERED)
        self.assertEqual(purchase.delivered_by, self.staff_membership)

    def test_ready_for_delivery_lists_paid_purchases_with_waybill(self):
        issue_waybill(shop=self.shop, purchase_id=self.purchase.id, actor=self.staff)
        self.auth_as("staff_wb", "staff123")
        response = self.client.get(f"/api/v1/shops/{self.shop.slug}/purchases/", {"ready_for_delivery": "1"})
        self.assertEqual([row["id"] for row in response.data["results"]], [str(self.purchase.id)])

        listed = self.client.get(f"/api/v1/shops/{self.shop.slug}/waybills/")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)

    def test_collectors_cannot_manage_deliveries(self):
        self.auth_as("collector_wb", "collect123")
        response = self.client.post(f"{self.base_url}/delivery/", {"status": "SCHEDULED"}, format="json")
        self.assertEqual(response.status_code, 403)
