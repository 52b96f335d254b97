from django.contrib import admin

from apps.deliveries.models import Waybill, WaybillItem


class WaybillItemInline(admin.TabularInline):
    model = WaybillItem
    extra = 0
    readonly_fields = ("product", "product_name", "sku", "quantity", "unit_price")


@admin.register(Waybill)
class WaybillAdmin(admin.ModelAdmin):
    list_display = ("waybill_number", "purchase", "recipient_name", "delivery_city", "generated_by", "generated_at")
    search_fields = ("waybill_number", "recipient_name", "recipient_phone")
    readonly_fields = ("waybill_number", "purchase", "generated_by", "generated_at")
    inlines = [WaybillItemInline]
