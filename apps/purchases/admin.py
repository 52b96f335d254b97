from django.contrib import admin

from apps.purchases.models import Payment, Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    readonly_fields = ("product", "product_name", "quantity", "unit_price", "subtotal", "interest_amount", "total_amount")


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("amount", "method", "status", "is_confirmed", "paid_at", "collector")
    readonly_fields = fields


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = (
        "purchase_number",
        "customer",
        "shop",
        "purchase_type",
        "status",
        "total_amount",
        "outstanding_balance",
        "delivery_status",
        "due_date",
    )
    list_filter = ("status", "purchase_type", "delivery_status", "shop")
    search_fields = ("purchase_number", "customer__first_name", "customer__last_name", "customer__phone")
    readonly_fields = ("subtotal", "interest_amount", "total_amount", "amount_paid", "outstanding_balance")
    inlines = [PurchaseItemInline, PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("purchase", "amount", "method", "status", "is_confirmed", "collector", "paid_at")
    list_filter = ("status", "method", "is_confirmed")
    search_fields = ("purchase__purchase_number", "reference")
    readonly_fields = ("amount", "excess_amount", "is_confirmed", "confirmed_at", "confirmed_by")
