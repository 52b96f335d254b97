from django.contrib import admin

from apps.inventory.models import InventoryMovement


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "quantity_delta", "balance_after", "reference_id", "created_at")
    list_filter = ("movement_type", "product__shop")
    search_fields = ("product__sku", "product__name", "reference_id")
    raw_id_fields = ("product", "created_by")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False
