"""Admin registration for restaurant models."""

from django.contrib import admin

from apps.web.restaurant.models import (
    MenuCategory,
    MenuItem,
    Modifier,
    ModifierGroup,
    RestaurantOrder,
)


class MenuItemInline(admin.TabularInline):
    """Inline for items within a category."""

    model = MenuItem
    extra = 0
    fields = ["restaurant_id", "name", "price", "is_available", "display_order"]


class ModifierGroupInline(admin.TabularInline):
    """Inline for option questions within an item."""

    model = ModifierGroup
    extra = 0
    fields = ["restaurant_id", "name", "is_required", "is_extra", "display_order"]


class ModifierInline(admin.TabularInline):
    """Inline for choices within a question."""

    model = Modifier
    extra = 0
    fields = ["restaurant_id", "name", "price_adjustment", "display_order"]


@admin.register(MenuCategory)
class MenuCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "restaurant_id", "display_order"]
    list_filter = ["restaurant_id"]
    search_fields = ["name"]
    inlines = [MenuItemInline]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "restaurant_id", "price", "is_available"]
    list_filter = ["is_available", "restaurant_id"]
    search_fields = ["name", "description"]
    inlines = [ModifierGroupInline]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = [
        (
            None,
            {
                "fields": [
                    "restaurant_id",
                    "category",
                    "name",
                    "description",
                    "price",
                ]
            },
        ),
        ("Media", {"fields": ["image_url"]}),
        ("Availability", {"fields": ["is_available", "display_order"]}),
        ("Extras", {"fields": ["loyalty_points", "tags"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"]}),
    ]


@admin.register(ModifierGroup)
class ModifierGroupAdmin(admin.ModelAdmin):
    list_display = ["name", "item", "is_required", "is_extra"]
    list_filter = ["restaurant_id"]
    search_fields = ["name", "item__name"]
    inlines = [ModifierInline]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Modifier)
class ModifierAdmin(admin.ModelAdmin):
    list_display = ["name", "group", "price_adjustment"]
    list_filter = ["restaurant_id"]
    search_fields = ["name", "group__name"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(RestaurantOrder)
class RestaurantOrderAdmin(admin.ModelAdmin):
    """Back office view of paid orders."""

    list_display = [
        "order_id",
        "restaurant_id",
        "user_id",
        "status",
        "total_amount",
        "payment_provider",
        "created_at",
    ]
    list_filter = ["status", "payment_provider", "restaurant_id"]
    search_fields = [
        "order_id",
        "user_id",
        "square_order_id",
        "stripe_payment_intent_id",
    ]
    readonly_fields = [
        "payment_details",
        "square_data_snapshot",
        "webhook_event_id",
        "webhook_event_type",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"

    fieldsets = [
        (None, {"fields": ["restaurant_id", "order_id", "user_id"]}),
        (
            "Fulfilment",
            {
                "fields": [
                    "status",
                    "estimated_completion_time",
                    "handled_by_staff_id",
                ]
            },
        ),
        ("Order", {"fields": ["cart_items", "delivery_address"]}),
        ("Pricing", {"fields": ["total_amount", "currency"]}),
        (
            "Payment",
            {
                "fields": [
                    "payment_provider",
                    "square_order_id",
                    "stripe_payment_intent_id",
                    "payment_details",
                    "square_data_snapshot",
                ]
            },
        ),
        (
            "Webhook",
            {"fields": ["webhook_event_id", "webhook_event_type"]},
        ),
        ("Timestamps", {"fields": ["created_at", "updated_at"]}),
    ]
