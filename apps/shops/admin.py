from django.contrib import admin

from apps.shops.models import Shop, ShopMembership, ShopPolicy


class ShopMembershipInline(admin.TabularInline):
    model = ShopMembership
    extra = 0
    raw_id_fields = ("user",)


class ShopPolicyInline(admin.StackedInline):
    model = ShopPolicy
    extra = 0
    max_num = 1


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "currency", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ShopPolicyInline, ShopMembershipInline]


@admin.register(ShopMembership)
class ShopMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "shop", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "shop")
    search_fields = ("user__username", "user__full_name", "shop__name")
