from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.test import APITestCase

from apps.catalog.models import Product
from apps.common.exceptions import StockConflictError
from apps.inventory.models import InventoryMovement, MovementType
from apps.inventory.services import decrement_stock
from apps.shops.models import Shop, ShopMembership, StaffRole

User = get_user_model()


class StockDecrementTests(APITestCase):
    def setUp(self):
        self.shop = Shop.objects.create(name="Accra Central", slug="accra")
        self.user = User.objects.create_user(username="staff_inv", password="staff123")
        ShopMembership.objects.create(shop=self.shop, user=self.user, role=StaffRole.SALES_STAFF)
        self.product = Product.objects.create(
            shop=self.shop, name="Microwave", price=Decimal("80.00"), stock_quantity=2
        )

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_decrement_writes_sale_movement(self):
        with transaction.atomic():
            movement = decrement_stock(
                product=self.product, quantity=2, actor=self.user, reference_type="purchase", reference_id="p-1"
            )
        self.assertEqual(movement.movement_type, MovementType.SALE)
        self.assertEqual(movement.quantity_delta, -2)
        self.assertEqual(movement.balance_after, 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)

    def test_decrement_never_goes_below_zero(self):
        with self.assertRaises(StockConflictError) as ctx:
            with transaction.atomic():
                decrement_stock(
                    product=self.product, quantity=3, actor=self.user, reference_type="purchase", reference_id="p-2"
                )
        self.assertEqual(ctx.exception.fields["available"], 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 2)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_movements_are_listed_per_shop(self):
        other_shop = Shop.objects.create(name="Kumasi", slug="kumasi")
        other_product = Product.objects.create(shop=other_shop, name="Radio", price=Decimal("15.00"), stock_quantity=5)
        with transaction.atomic():
            decrement_stock(
                product=self.product, quantity=1, actor=self.user, reference_type="purchase", reference_id="p-3"
            )
            decrement_stock(
                product=other_product, quantity=1, actor=self.user, reference_type="purchase", reference_id="p-4"
            )

        self.auth_as("staff_inv", "staff123")
        response = self.client.get(f"/api/v1/shops/{self.shop.slug}/inventory/movements/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["reference_id"], "p-3")

        filtered = self.client.get(
            f"/api/v1/shops/{self.shop.slug}/inventory/movements/", {"movement_type": MovementType.OPENING}
        )
        self.assertEqual(filtered.data["count"], 0)

    def test_malformed_product_filter_is_a_validation_error(self):
        self.auth_as("staff_inv", "staff123")
        response = self.client.get(f"/api/v1/shops/{self.shop.slug}/inventory/movements/", {"product": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["category"], "validation")
