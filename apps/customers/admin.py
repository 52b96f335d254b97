from django.contrib import admin

from apps.customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("first_name", "last_name", "phone", "shop", "assigned_collector", "is_active", "updated_at")
    list_filter = ("is_active", "shop", "preferred_payment")
    search_fields = ("first_name", "last_name", "phone", "phone_normalized", "id_number")
    raw_id_fields = ("assigned_collector",)
