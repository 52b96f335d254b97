import django.db.models.deletion
import uuid

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("catalog", "0001_initial"),
        ("purchases", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Waybill",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("waybill_number", models.CharField(max_length=32, unique=True)),
                ("recipient_name", models.CharField(max_length=255)),
                ("recipient_phone", models.CharField(max_length=50)),
                ("delivery_address", models.TextField()),
                ("delivery_city", models.CharField(blank=True, default="", max_length=120)),
                ("delivery_region", models.CharField(blank=True, default="", max_length=120)),
                ("special_instructions", models.TextField(blank=True, default="")),
                ("generated_at", models.DateTimeField(auto_now_add=True)),
                ("received_by", models.CharField(blank=True, default="", max_length=255)),
                (
                    "generated_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="waybills_generated",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "purchase",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="waybill",
                        to="purchases.purchase",
                    ),
                ),
            ],
            options={"ordering": ["-generated_at"]},
        ),
        migrations.CreateModel(
            name="WaybillItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("product_name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, default="", max_length=64)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="waybill_items",
                        to="catalog.product",
                    ),
                ),
                (
                    "waybill",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="deliveries.waybill",
                    ),
                ),
            ],
        ),
    ]
