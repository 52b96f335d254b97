import django.db.models.deletion
import uuid

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Shop",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("currency", models.CharField(default="GHS", max_length=8)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="ShopMembership",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("SHOP_ADMIN", "Shop Admin"),
                            ("SALES_STAFF", "Sales Staff"),
                            ("COLLECTOR", "Collector"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="shops.shop"
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shop_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["shop", "role"], name="membership_shop_role_idx")],
                "constraints": [models.UniqueConstraint(fields=("shop", "user"), name="unique_shop_membership")],
            },
        ),
        migrations.CreateModel(
            name="ShopPolicy",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "interest_type",
                    models.CharField(choices=[("FLAT", "Flat"), ("MONTHLY", "Monthly")], default="FLAT", max_length=16),
                ),
                ("interest_rate", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("grace_days", models.PositiveIntegerField(default=3)),
                ("max_tenor_days", models.PositiveIntegerField(default=60)),
                ("late_fee_fixed", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("late_fee_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "shop",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="policy", to="shops.shop"
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "shop policies",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("interest_rate__gte", 0), ("interest_rate__lte", 100)),
                        name="policy_interest_rate_range",
                    ),
                    models.CheckConstraint(condition=models.Q(("max_tenor_days__gte", 1)), name="policy_max_tenor_gte_one"),
                ],
            },
        ),
    ]
