from rest_framework import viewsets

from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.inventory.models import InventoryMovement
from apps.inventory.serializers import InventoryMovementSerializer


class InventoryMovementViewSet(ShopScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = InventoryMovementSerializer
    permission_classes = [ShopRolePermission]
    capability_map = {
        "list": ["inventory.view"],
        "retrieve": ["inventory.view"],
    }

    def get_queryset(self):
        queryset = InventoryMovement.objects.select_related("product", "created_by").filter(
            product__shop=self.get_shop()
        )
        product_id = self.uuid_param("product")
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        movement_type = self.request.query_params.get("movement_type")
        if movement_type:
            queryset = queryset.filter(movement_type=movement_type)
        reference_id = self.request.query_params.get("reference_id")
        if reference_id:
            queryset = queryset.filter(reference_id=reference_id)
        return queryset
