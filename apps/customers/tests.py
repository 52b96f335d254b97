from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.customers.models import Customer, normalize_phone
from apps.shops.models import Shop, ShopMembership, StaffRole

User = get_user_model()


class CustomerApiTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.admin = User.objects.create_user(username="admin_cus", password="admin123")
        self.first_collector_user = User.objects.create_user(username="collector_one", password="collect123")
        self.second_collector_user = User.objects.create_user(username="collector_two", password="collect123")
        self.staff = User.objects.create_user(username="staff_cus", password="staff123")
        ShopMembership.objects.create(shop=self.shop, user=self.admin, role=StaffRole.SHOP_ADMIN)
        self.staff_membership = ShopMembership.objects.create(
            shop=self.shop, user=self.staff, role=StaffRole.SALES_STAFF
        )
        self.first_collector = ShopMembership.objects.create(
            shop=self.shop, user=self.first_collector_user, role=StaffRole.COLLECTOR
        )
        self.second_collector = ShopMembership.objects.create(
            shop=self.shop, user=self.second_collector_user, role=StaffRole.COLLECTOR
        )
        self.customer = Customer.objects.create(
            shop=self.shop, first_name="Akosua", last_name="Darko", phone="+233 24 555 0101"
        )
        self.url = f"/api/v1/shops/{self.shop.slug}/customers/"

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_phone_is_normalized(self):
        self.assertEqual(normalize_phone("+233 (24) 555-0101"), "233245550101")
        self.assertEqual(self.customer.phone_normalized, "233245550101")

    def test_staff_creates_customer_and_searches_by_phone(self):
        self.auth_as("staff_cus", "staff123")
        response = self.client.post(
            self.url,
            {"first_name": "Yaa", "last_name": "Asantewaa", "phone": "050 111 2222", "city": "Kumasi"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["full_name"], "Yaa Asantewaa")
        self.assertIsNone(response.data["assigned_collector"])
        self.assertTrue(AuditLog.objects.filter(action="customer.create", entity_id=response.data["id"]).exists())

        found = self.client.get(self.url, {"q": "0501112222"})
        self.assertEqual([row["id"] for row in found.data["results"]], [response.data["id"]])

    def test_phone_without_digits_is_rejected(self):
        self.auth_as("staff_cus", "staff123")
        response = self.client.post(self.url, {"first_name": "No", "last_name": "Phone", "phone": "   "}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("phone", response.data["fields"])

    def test_collector_created_customers_are_assigned_to_them(self):
        self.auth_as("collector_one", "collect123")
        response = self.client.post(
            self.url, {"first_name": "Esi", "last_name": "Quaye", "phone": "0261234567"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["assigned_collector"], self.first_collector.id)

    def test_collectors_only_see_their_customers(self):
        Customer.objects.filter(pk=self.customer.pk).update(assigned_collector=self.second_collector)

        self.auth_as("collector_one", "collect123")
        self.assertEqual(self.client.get(self.url).data["count"], 0)
        self.assertEqual(self.client.get(f"{self.url}{self.customer.id}/").status_code, 404)

        self.auth_as("collector_two", "collect123")
        self.assertEqual(self.client.get(self.url).data["count"], 1)

    def test_assign_collector(self):
        self.auth_as("admin_cus", "admin123")
        response = self.client.post(
            f"{self.url}{self.customer.id}/assign-collector/",
            {"collector": str(self.first_collector.id)},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["assigned_collector"], self.first_collector.id)
        self.assertTrue(
            AuditLog.objects.filter(action="customer.assign_collector", entity_id=str(self.customer.id)).exists()
        )

        cleared = self.client.post(f"{self.url}{self.customer.id}/assign-collector/", {"collector": None}, format="json")
        self.assertEqual(cleared.status_code, 200)
        self.assertIsNone(cleared.data["assigned_collector"])

    def test_assign_collector_requires_active_collector_membership(self):
        self.auth_as("admin_cus", "admin123")
        response = self.client.post(
            f"{self.url}{self.customer.id}/assign-collector/",
            {"collector": str(self.staff_membership.id)},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_input")

    def test_collectors_cannot_reassign_customers(self):
        self.auth_as("collector_one", "collect123")
        response = self.client.post(
            f"{self.url}{self.customer.id}/assign-collector/",
            {"collector": str(self.first_collector.id)},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_malformed_ids_are_reported(self):
        self.auth_as("admin_cus", "admin123")
        response = self.client.get(f"{self.url}not-a-uuid/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "customer_not_found")

        response = self.client.get(self.url, {"collector": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["fields"], {"collector": "abc"})
