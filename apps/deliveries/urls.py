from rest_framework.routers import DefaultRouter

from apps.deliveries.views import WaybillViewSet

router = DefaultRouter()
router.register("waybills", WaybillViewSet, basename="waybill")

urlpatterns = router.urls
