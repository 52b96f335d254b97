from django.db import transaction
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.exceptions import CustomerNotFoundError, LedgerValidationError
from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.customers.models import Customer, normalize_phone
from apps.customers.serializers import AssignCollectorSerializer, CustomerSerializer
from apps.shops.models import ShopMembership, StaffRole


class CustomerViewSet(ShopScopedMixin, viewsets.ModelViewSet):
    serializer_class = CustomerSerializer
    permission_classes = [ShopRolePermission]
    lookup_not_found = CustomerNotFoundError
    http_method_names = ["get", "post", "patch", "head", "options"]
    capability_map = {
        "list": ["customers.view"],
        "retrieve": ["customers.view"],
        "create": ["customers.manage"],
        "partial_update": ["customers.manage"],
        "assign_collector": ["customers.assign"],
    }

    def get_queryset(self):
        queryset = Customer.objects.select_related("assigned_collector__user").filter(shop=self.get_shop())
        if self.is_collector():
            queryset = queryset.filter(assigned_collector=self.get_membership())

        query = self.request.query_params.get("q")
        if query:
            normalized = normalize_phone(query)
            queryset = queryset.filter(
                Q(first_name__icontains=query)
                | Q(last_name__icontains=query)
                | Q(phone__icontains=query)
                | Q(phone_normalized__icontains=normalized)
            )
        collector = self.uuid_param("collector")
        if collector:
            queryset = queryset.filter(assigned_collector_id=collector)
        return queryset

    def perform_create(self, serializer):
        # Collectors own the customers they sign up.
        collector = self.get_membership() if self.is_collector() else None
        with transaction.atomic():
            customer = serializer.save(shop=self.get_shop(), assigned_collector=collector)
            record_audit(
                actor=self.request.user,
                action="customer.create",
                entity_type="customer",
                entity_id=customer.id,
                shop=customer.shop,
                payload={"full_name": customer.full_name, "phone": customer.phone},
            )

    def perform_update(self, serializer):
        with transaction.atomic():
            customer = serializer.save()
            record_audit(
                actor=self.request.user,
                action="customer.update",
                entity_type="customer",
                entity_id=customer.id,
                shop=customer.shop,
                payload={"fields": sorted(serializer.validated_data)},
            )

    @action(detail=True, methods=["post"], url_path="assign-collector")
    def assign_collector(self, request, *args, **kwargs):
        customer = self.get_object()
        serializer = AssignCollectorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        collector = None
        collector_id = serializer.validated_data["collector"]
        if collector_id is not None:
            collector = ShopMembership.objects.filter(
                pk=collector_id, shop=self.get_shop(), role=StaffRole.COLLECTOR, is_active=True
            ).first()
            if collector is None:
                raise LedgerValidationError(
                    "Collector must be an active collector of this shop.", fields={"collector": str(collector_id)}
                )

        with transaction.atomic():
            previous = customer.assigned_collector_id
            customer.assigned_collector = collector
            customer.save(update_fields=["assigned_collector", "updated_at"])
            record_audit(
                actor=request.user,
                action="customer.assign_collector",
                entity_type="customer",
                entity_id=customer.id,
                shop=customer.shop,
                payload={
                    "from": str(previous) if previous else None,
                    "to": str(collector.id) if collector else None,
                },
            )
        return Response(self.get_serializer(customer).data, status=status.HTTP_200_OK)
