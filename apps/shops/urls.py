from django.urls import path

from apps.shops.views import ShopPolicyView

urlpatterns = [
    path("policy/", ShopPolicyView.as_view(), name="shop-policy"),
]
