from rest_framework.routers import DefaultRouter

from apps.inventory.views import InventoryMovementViewSet

router = DefaultRouter()
router.register("movements", InventoryMovementViewSet, basename="inventory-movement")

urlpatterns = router.urls
