from django.db import transaction
from django.db.models import Q
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.catalog.serializers import ProductSerializer
from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.inventory.services import record_opening_stock


class ProductViewSet(ShopScopedMixin, viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [ShopRolePermission]
    http_method_names = ["get", "post", "patch", "head", "options"]
    capability_map = {
        "list": ["catalog.view"],
        "retrieve": ["catalog.view"],
        "create": ["catalog.manage"],
        "partial_update": ["catalog.manage"],
    }

    def get_queryset(self):
        queryset = Product.objects.filter(shop=self.get_shop())
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(sku__icontains=query))

        active = self.request.query_params.get("active")
        if active is not None:
            if active.strip().lower() in {"1", "true", "yes"}:
                queryset = queryset.filter(is_active=True)
            elif active.strip().lower() in {"0", "false", "no"}:
                queryset = queryset.filter(is_active=False)

        if str(self.request.query_params.get("in_stock", "")).lower() in {"1", "true", "yes"}:
            queryset = queryset.filter(stock_quantity__gt=0)
        return queryset

    def perform_create(self, serializer):
        with transaction.atomic():
            product = serializer.save(shop=self.get_shop())
            record_opening_stock(product=product, actor=self.request.user)
            record_audit(
                actor=self.request.user,
                action="catalog.product.create",
                entity_type="product",
                entity_id=product.id,
                shop=product.shop,
                payload=serializer.snapshot(product),
            )

    def perform_update(self, serializer):
        before = serializer.snapshot(serializer.instance)
        with transaction.atomic():
            product = serializer.save()
            record_audit(
                actor=self.request.user,
                action="catalog.product.update",
                entity_type="product",
                entity_id=product.id,
                shop=product.shop,
                payload={"before": before, "after": serializer.snapshot(product)},
            )
