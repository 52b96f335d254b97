from django.db import transaction
from rest_framework import generics, status
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.exceptions import PolicyMissingError
from apps.common.permissions import ShopRolePermission, ShopScopedMixin
from apps.shops.models import ShopPolicy
from apps.shops.serializers import ShopPolicySerializer


class ShopPolicyView(ShopScopedMixin, generics.GenericAPIView):
    serializer_class = ShopPolicySerializer
    permission_classes = [ShopRolePermission]
    capability_map = {"get": ["policy.view"], "put": ["policy.manage"]}

    def get(self, request, *args, **kwargs):
        policy = ShopPolicy.objects.filter(shop=self.get_shop()).first()
        if policy is None:
            raise PolicyMissingError()
        return Response(self.get_serializer(policy).data)

    def put(self, request, *args, **kwargs):
        shop = self.get_shop()
        with transaction.atomic():
            policy = ShopPolicy.objects.select_for_update().filter(shop=shop).first()
            created = policy is None
            before = None if created else policy.as_payload()
            serializer = self.get_serializer(policy, data=request.data)
            serializer.is_valid(raise_exception=True)
            policy = serializer.save(shop=shop)
            record_audit(
                actor=request.user,
                action="policy.update",
                entity_type="shop_policy",
                entity_id=policy.id,
                shop=shop,
                payload={"before": before, "after": policy.as_payload()},
            )
        return Response(
            self.get_serializer(policy).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
