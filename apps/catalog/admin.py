from django.contrib import admin

from apps.catalog.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "shop", "price", "cash_price", "credit_price", "stock_quantity", "is_active")
    list_filter = ("is_active", "shop")
    search_fields = ("sku", "name")
    readonly_fields = ("stock_quantity",)
