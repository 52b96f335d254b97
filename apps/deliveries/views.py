from rest_framework import viewsets

from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.deliveries.models import Waybill
from apps.deliveries.serializers import WaybillSerializer


class WaybillViewSet(ShopScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = WaybillSerializer
    permission_classes = [ShopRolePermission]
    capability_map = {
        "list": ["waybills.view"],
        "retrieve": ["waybills.view"],
    }

    def get_queryset(self):
        queryset = (
            Waybill.objects.select_related("purchase", "generated_by")
            .prefetch_related("items")
            .filter(purchase__shop=self.get_shop())
        )
        delivery_status = self.request.query_params.get("delivery_status")
        if delivery_status:
            queryset = queryset.filter(purchase__delivery_status=delivery_status)
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(waybill_number__icontains=query)
        return queryset
