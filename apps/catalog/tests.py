from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.inventory.models import InventoryMovement, MovementType
from apps.shops.models import Shop, ShopMembership, StaffRole

User = get_user_model()


class ProductApiTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.other_shop = Shop.objects.create(name="Kumasi", slug="kumasi")
        self.admin = User.objects.create_user(username="admin_cat", password="admin123")
        self.staff = User.objects.create_user(username="staff_cat", password="staff123")
        ShopMembership.objects.create(shop=self.shop, user=self.admin, role=StaffRole.SHOP_ADMIN)
        ShopMembership.objects.create(shop=self.shop, user=self.staff, role=StaffRole.SALES_STAFF)
        Product.objects.create(shop=self.other_shop, name="Blender", price=Decimal("40.00"), stock_quantity=2)
        self.url = f"/api/v1/shops/{self.shop.slug}/products/"

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_admin_creates_product_with_opening_stock(self):
        self.auth_as("admin_cat", "admin123")
        response = self.client.post(
            self.url,
            {"sku": "GAS-01", "name": "Gas Cooker", "price": "300.00", "cash_price": "280.00", "stock_quantity": 6},
            format="json",
        )
        self.assertEqual(response.status_code, 201)

        product = Product.objects.get(pk=response.data["id"])
        self.assertEqual(product.shop, self.shop)
        movement = InventoryMovement.objects.get(product=product)
        self.assertEqual(movement.movement_type, MovementType.OPENING)
        self.assertEqual(movement.quantity_delta, 6)
        self.assertTrue(AuditLog.objects.filter(action="catalog.product.create", entity_id=str(product.id)).exists())

    def test_negative_prices_are_rejected(self):
        self.auth_as("admin_cat", "admin123")
        response = self.client.post(self.url, {"name": "Fan", "price": "-1.00"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["category"], "validation")
        self.assertIn("price", response.data["fields"])

    def test_stock_cannot_be_edited_directly(self):
        product = Product.objects.create(shop=self.shop, name="Fan", price=Decimal("50.00"), stock_quantity=3)
        self.auth_as("admin_cat", "admin123")

        response = self.client.patch(f"{self.url}{product.id}/", {"stock_quantity": 10}, format="json")
        self.assertEqual(response.status_code, 400)

        response = self.client.patch(f"{self.url}{product.id}/", {"cash_price": "45.00"}, format="json")
        self.assertEqual(response.status_code, 200)
        product.refresh_from_db()
        self.assertEqual(product.cash_price, Decimal("45.00"))
        self.assertEqual(product.stock_quantity, 3)
        self.assertTrue(AuditLog.objects.filter(action="catalog.product.update", entity_id=str(product.id)).exists())

    def test_sales_staff_can_browse_but_not_manage(self):
        Product.objects.create(shop=self.shop, name="Iron", sku="IR-1", price=Decimal("25.00"), stock_quantity=0)
        Product.objects.create(shop=self.shop, name="Kettle", sku="KT-1", price=Decimal("30.00"), stock_quantity=4)
        self.auth_as("staff_cat", "staff123")

        listed = self.client.get(self.url)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 2)

        in_stock = self.client.get(self.url, {"in_stock": "true", "q": "k"})
        self.assertEqual([row["name"] for row in in_stock.data["results"]], ["Kettle"])

        response = self.client.post(self.url, {"name": "Toaster", "price": "20.00"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_non_members_are_forbidden(self):
        self.auth_as("admin_cat", "admin123")
        response = self.client.get(f"/api/v1/shops/{self.other_shop.slug}/products/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["category"], "authorization")

    def test_unauthenticated_requests_are_rejected(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 401)
