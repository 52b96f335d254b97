import django.db.models.deletion
import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("shops", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(blank=True, max_length=64)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("cash_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("layaway_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("credit_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("stock_quantity", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="products", to="shops.shop"
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["shop", "is_active"], name="product_shop_active_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("stock_quantity__gte", 0)), name="product_stock_gte_zero"),
                    models.CheckConstraint(condition=models.Q(("price__gte", 0)), name="product_price_gte_zero"),
                ],
            },
        ),
    ]
