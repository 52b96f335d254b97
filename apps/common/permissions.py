from rest_framework.exceptions import NotFound
from rest_framework.permissions import BasePermission

from apps.common.exceptions import NotFoundError
from apps.common.lookups import parse_uuid
from apps.shops.models import Shop, ShopMembership, StaffRole


ROLE_CAPABILITIES = {
    StaffRole.SHOP_ADMIN: {
        "policy.view",
        "policy.manage",
        "catalog.view",
        "catalog.manage",
        "customers.view",
        "customers.manage",
        "customers.assign",
        "purchases.view",
        "purchases.create",
        "payments.view",
        "payments.apply",
        "payments.review",
        "deliveries.manage",
        "waybills.view",
        "waybills.issue",
        "inventory.view",
    },
    StaffRole.SALES_STAFF: {
        "policy.view",
        "catalog.view",
        "customers.view",
        "customers.manage",
        "customers.assign",
        "purchases.view",
        "purchases.create",
        "payments.view",
        "payments.apply",
        "deliveries.manage",
        "waybills.view",
        "waybills.issue",
        "inventory.view",
    },
    StaffRole.COLLECTOR: {
        "catalog.view",
        "customers.view",
        "customers.manage",
        "purchases.view",
        "purchases.create",
        "payments.view",
        "payments.collect",
    },
}


class ShopScopedMixin:
    """Resolves the shop from the ``shop_slug`` URL kwarg and the caller's membership in it."""

    shop_url_kwarg = "shop_slug"
    lookup_not_found = NotFoundError

    def get_shop(self):
        if not hasattr(self, "_shop"):
            shop = Shop.objects.filter(slug=self.kwargs.get(self.shop_url_kwarg), is_active=True).first()
            if shop is None:
                raise NotFound("Shop not found.")
            self._shop = shop
        return self._shop

    def get_membership(self):
        if not hasattr(self, "_membership"):
            self._membership = (
                ShopMembership.objects.select_related("shop", "user")
                .filter(shop=self.get_shop(), user=self.request.user, is_active=True)
                .first()
            )
        return self._membership

    def is_collector(self):
        membership = self.get_membership()
        return membership is not None and membership.role == StaffRole.COLLECTOR

    def lookup_id(self):
        key = self.lookup_url_kwarg or self.lookup_field
        return parse_uuid(self.kwargs[key], self.lookup_not_found, field=key)

    def get_object(self):
        self.lookup_id()
        return super().get_object()

    def uuid_param(self, name):
        value = self.request.query_params.get(name)
        return parse_uuid(value, field=name) if value else None


class ShopRolePermission(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        membership = view.get_membership()
        if membership is None:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        role_caps = ROLE_CAPABILITIES.get(membership.role, set())
        return all(cap in role_caps for cap in required)
