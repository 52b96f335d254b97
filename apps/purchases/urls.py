from rest_framework.routers import DefaultRouter

from apps.purchases.views import PaymentViewSet, PurchaseViewSet

router = DefaultRouter()
router.register("purchases", PurchaseViewSet, basename="purchase")
router.register("payments", PaymentViewSet, basename="payment")

urlpatterns = router.urls
