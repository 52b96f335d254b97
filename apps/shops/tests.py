from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import CommandError, call_command
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.shops.models import Shop, ShopMembership, ShopPolicy, StaffRole

User = get_user_model()


class ShopPolicyApiTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.admin = User.objects.create_user(username="admin_pol", password="admin123")
        self.staff = User.objects.create_user(username="staff_pol", password="staff123")
        ShopMembership.objects.create(shop=self.shop, user=self.admin, role=StaffRole.SHOP_ADMIN)
        ShopMembership.objects.create(shop=self.shop, user=self.staff, role=StaffRole.SALES_STAFF)
        self.url = f"/api/v1/shops/{self.shop.slug}/policy/"
        self.payload = {"interest_type": "MONTHLY", "interest_rate": "5.00", "grace_days": 7, "max_tenor_days": 90}

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_missing_policy_is_reported(self):
        self.auth_as("staff_pol", "staff123")
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "policy_missing")
        self.assertEqual(response.data["category"], "precondition")

    def test_admin_creates_then_updates_policy(self):
        self.auth_as("admin_pol", "admin123")
        created = self.client.put(self.url, self.payload, format="json")
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["interest_type"], "MONTHLY")

        updated = self.client.put(self.url, {**self.payload, "interest_rate": "7.50"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(ShopPolicy.objects.get(shop=self.shop).interest_rate, Decimal("7.50"))

        payloads = [entry.payload for entry in AuditLog.objects.filter(action="policy.update")]
        self.assertEqual(len(payloads), 2)
        first = next(payload for payload in payloads if payload["before"] is None)
        second = next(payload for payload in payloads if payload["before"] is not None)
        self.assertEqual(first["after"]["interest_rate"], "5.00")
        self.assertEqual(second["before"]["interest_rate"], "5.00")
        self.assertEqual(second["after"]["interest_rate"], "7.50")

    def test_out_of_range_values_are_rejected(self):
        self.auth_as("admin_pol", "admin123")
        for field, value in (("interest_rate", "101"), ("grace_days", 61), ("max_tenor_days", 0)):
            response = self.client.put(self.url, {**self.payload, field: value}, format="json")
            self.assertEqual(response.status_code, 400)
            self.assertIn(field, response.data["fields"])
        self.assertFalse(ShopPolicy.objects.exists())

    def test_only_admins_change_policy(self):
        self.auth_as("staff_pol", "staff123")
        response = self.client.put(self.url, self.payload, format="json")
        self.assertEqual(response.status_code, 403)

    def test_unknown_shop_is_not_found(self):
        self.auth_as("admin_pol", "admin123")
        response = self.client.get("/api/v1/shops/nowhere/policy/")
        self.assertEqual(response.status_code, 404)


class AssignMembershipCommandTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.user = User.objects.create_user(username="new_staff", password="staff123")

    def test_assigns_and_updates_role(self):
        out = StringIO()
        call_command("assign_membership", "new_staff", "accra", "--role", "COLLECTOR", stdout=out)
        self.assertEqual(ShopMembership.objects.get(shop=self.shop, user=self.user).role, StaffRole.COLLECTOR)

        call_command("assign_membership", "new_staff", "accra", "--role", "SHOP_ADMIN", stdout=out)
        self.assertEqual(ShopMembership.objects.filter(shop=self.shop, user=self.user).count(), 1)
        self.assertEqual(ShopMembership.objects.get(shop=self.shop, user=self.user).role, StaffRole.SHOP_ADMIN)

    def test_unknown_user_or_shop_fails(self):
        with self.assertRaises(CommandError):
            call_command("assign_membership", "ghost", "accra", "--role", "COLLECTOR", stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command("assign_membership", "new_staff", "nowhere", "--role", "COLLECTOR", stdout=StringIO())
