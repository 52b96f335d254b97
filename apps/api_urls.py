from django.urls import include, path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

shop_urlpatterns = [
    path("", include("apps.shops.urls")),
    path("", include("apps.catalog.urls")),
    path("", include("apps.customers.urls")),
    path("", include("apps.purchases.urls")),
    path("", include("apps.deliveries.urls")),
    path("inventory/", include("apps.inventory.urls")),
]

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain-pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("shops/<slug:shop_slug>/", include(shop_urlpatterns)),
]
