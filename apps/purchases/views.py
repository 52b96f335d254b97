from django.db.models import Prefetch
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.exceptions import CustomerNotFoundError, NotFoundError, PaymentNotFoundError, PurchaseNotFoundError
from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.customers.models import Customer
from apps.deliveries.models import DeliveryStatus, Waybill
from apps.deliveries.serializers import WaybillIssueSerializer, WaybillSerializer
from apps.deliveries.services import issue_waybill, set_delivery_status
from apps.purchases.models import Payment, Purchase, PurchaseItem, PurchaseStatus
from apps.purchases.payments import apply_payment, confirm_payment, record_collection, reject_payment
from apps.purchases.serializers import (
    CollectionCreateSerializer,
    DeliveryStatusSerializer,
    PaymentConfirmSerializer,
    PaymentCreateSerializer,
    PaymentRejectSerializer,
    PaymentResultSerializer,
    PaymentSerializer,
    PurchaseCreateSerializer,
    PurchaseSerializer,
)
from apps.purchases.services import create_purchase

TRUTHY = {"1", "true", "yes"}
UNDELIVERED = [DeliveryStatus.PENDING, DeliveryStatus.SCHEDULED, DeliveryStatus.IN_TRANSIT]


class PurchaseViewSet(ShopScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = PurchaseSerializer
    permission_classes = [ShopRolePermission]
    lookup_not_found = PurchaseNotFoundError
    capability_map = {
        "list": ["purchases.view"],
        "retrieve": ["purchases.view"],
        "create": ["purchases.create"],
        "payments": ["payments.apply"],
        "collections": ["payments.collect"],
        "delivery": ["deliveries.manage"],
        "waybill": ["waybills.view"],
        "create_waybill": ["waybills.issue"],
    }

    def get_queryset(self):
        queryset = (
            Purchase.objects.select_related("customer", "waybill")
            .prefetch_related(
                Prefetch("items", queryset=PurchaseItem.objects.select_related("product")),
                Prefetch("payments", queryset=Payment.objects.select_related("purchase", "collector__user")),
            )
            .filter(shop=self.get_shop())
        )
        if self.is_collector():
            queryset = queryset.filter(customer__assigned_collector=self.get_membership())

        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("delivery_status"):
            queryset = queryset.filter(delivery_status=params["delivery_status"])
        if params.get("customer"):
            queryset = queryset.filter(customer_id=self.uuid_param("customer"))
        if str(params.get("ready_for_delivery", "")).lower() in TRUTHY:
            queryset = queryset.filter(
                status=PurchaseStatus.COMPLETED,
                delivery_status__in=UNDELIVERED,
                waybill__isnull=False,
            )
        return queryset

    def _get_purchase_id(self):
        purchase_id = self.lookup_id()
        purchase = self.get_queryset().filter(pk=purchase_id).values_list("pk", flat=True).first()
        if purchase is None:
            raise PurchaseNotFoundError(fields={"purchase_id": str(purchase_id)})
        return purchase

    def create(self, request, *args, **kwargs):
        serializer = PurchaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        shop = self.get_shop()

        if self.is_collector():
            owned = Customer.objects.filter(
                pk=data["customer"], shop=shop, assigned_collector=self.get_membership()
            ).exists()
            if not owned:
                raise CustomerNotFoundError(fields={"customer_id": str(data["customer"])})

        purchase = create_purchase(
            shop=shop,
            actor=request.user,
            customer_id=data["customer"],
            items=[dict(item) for item in data["items"]],
            down_payment=data["down_payment"],
            purchase_type=data["purchase_type"],
            tenor_days=data["tenor_days"],
            delivery_address=data["delivery_address"],
            notes=data["notes"],
            down_payment_method=data["down_payment_method"],
        )
        purchase = self.get_queryset().get(pk=purchase.pk)
        return Response(self.get_serializer(purchase).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def payments(self, request, *args, **kwargs):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = apply_payment(
            shop=self.get_shop(),
            purchase_id=self._get_purchase_id(),
            actor=request.user,
            **serializer.validated_data,
        )
        return Response(PaymentResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def collections(self, request, *args, **kwargs):
        serializer = CollectionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = record_collection(
            shop=self.get_shop(),
            purchase_id=self._get_purchase_id(),
            collector=self.get_membership(),
            **serializer.validated_data,
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def delivery(self, request, *args, **kwargs):
        serializer = DeliveryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        purchase = set_delivery_status(
            shop=self.get_shop(),
            purchase_id=self._get_purchase_id(),
            target_status=serializer.validated_data["status"],
            actor=request.user,
            scheduled_date=serializer.validated_data.get("scheduled_date"),
            membership=self.get_membership(),
        )
        return Response(self.get_serializer(self.get_queryset().get(pk=purchase.pk)).data)

    @action(detail=True, methods=["get"])
    def waybill(self, request, *args, **kwargs):
        waybill = Waybill.objects.prefetch_related("items").filter(purchase_id=self._get_purchase_id()).first()
        if waybill is None:
            raise NotFoundError("No waybill has been issued for this purchase.")
        return Response(WaybillSerializer(waybill).data)

    @waybill.mapping.post
    def create_waybill(self, request, *args, **kwargs):
        purchase_id = self._get_purchase_id()
        serializer = WaybillIssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        waybill = issue_waybill(
            shop=self.get_shop(),
            purchase_id=purchase_id,
            actor=request.user,
            overrides=serializer.validated_data,
        )
        return Response(WaybillSerializer(waybill).data, status=status.HTTP_201_CREATED)


class PaymentViewSet(ShopScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [ShopRolePermission]
    lookup_not_found = PaymentNotFoundError
    capability_map = {
        "list": ["payments.view"],
        "retrieve": ["payments.view"],
        "confirm": ["payments.review"],
        "reject": ["payments.review"],
    }

    def get_queryset(self):
        queryset = Payment.objects.select_related("purchase", "collector__user").filter(
            purchase__shop=self.get_shop()
        )
        if self.is_collector():
            queryset = queryset.filter(collector=self.get_membership())

        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("purchase"):
            queryset = queryset.filter(purchase_id=self.uuid_param("purchase"))
        if params.get("collector"):
            queryset = queryset.filter(collector_id=self.uuid_param("collector"))
        return queryset

    @action(detail=True, methods=["post"])
    def confirm(self, request, *args, **kwargs):
        serializer = PaymentConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = confirm_payment(
            shop=self.get_shop(),
            payment_id=self.lookup_id(),
            actor=request.user,
            overpayment=serializer.validated_data["overpayment"],
        )
        return Response(PaymentResultSerializer(result).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, *args, **kwargs):
        serializer = PaymentRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = reject_payment(
            shop=self.get_shop(),
            payment_id=self.lookup_id(),
            actor=request.user,
            reason=serializer.validated_data["reason"],
        )
        return Response(PaymentSerializer(payment).data)
