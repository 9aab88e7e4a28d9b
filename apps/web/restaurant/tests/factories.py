"""Factory classes for restaurant models."""

from decimal import Decimal

from django.utils import timezone

import factory

from apps.web.restaurant.models import (
    MenuCategory,
    MenuItem,
    Modifier,
    ModifierGroup,
    OrderStatus,
    PaymentProvider,
    RestaurantOrder,
)


class MenuCategoryFactory(factory.django.DjangoModelFactory):
    """Factory for MenuCategory model."""

    class Meta:
        model = MenuCategory

    restaurant_id = "r1"
    name = factory.Sequence(lambda n: f"Category {n}")
    description = factory.Faker("sentence")
    display_order = factory.Sequence(lambda n: n)


class MenuItemFactory(factory.django.DjangoModelFactory):
    """Factory for MenuItem model."""

    class Meta:
        model = MenuItem

    restaurant_id = "r1"
    category = factory.SubFactory(
        MenuCategoryFactory, restaurant_id=factory.SelfAttribute("..restaurant_id")
    )
    name = factory.Sequence(lambda n: f"Item {n}")
    description = factory.Faker("sentence")
    price = Decimal("10.00")
    is_available = True
    display_order = factory.Sequence(lambda n: n)


class ModifierGroupFactory(factory.django.DjangoModelFactory):
    """Factory for ModifierGroup model."""

    class Meta:
        model = ModifierGroup

    restaurant_id = "r1"
    item = factory.SubFactory(
        MenuItemFactory, restaurant_id=factory.SelfAttribute("..restaurant_id")
    )
    name = factory.Sequence(lambda n: f"Question {n}")
    is_required = False
    is_extra = False


class ModifierFactory(factory.django.DjangoModelFactory):
    """Factory for Modifier model."""

    class Meta:
        model = Modifier

    restaurant_id = "r1"
    group = factory.SubFactory(
        ModifierGroupFactory, restaurant_id=factory.SelfAttribute("..restaurant_id")
    )
    name = factory.Sequence(lambda n: f"Choice {n}")
    price_adjustment = Decimal("0.00")


class RestaurantOrderFactory(factory.django.DjangoModelFactory):
    """Factory for RestaurantOrder model."""

    class Meta:
        model = RestaurantOrder

    restaurant_id = "r1"
    order_id = factory.Sequence(lambda n: f"ord-{n}")
    user_id = "u1"
    status = OrderStatus.PAID
    cart_items = factory.LazyFunction(
        lambda: [{"itemId": "1", "name": "Margherita", "quantity": 1, "options": {}}]
    )
    delivery_address = factory.LazyFunction(lambda: {"address": "123 Main St"})
    total_amount = Decimal("25.99")
    currency = "USD"
    payment_provider = PaymentProvider.SQUARE
    square_order_id = factory.LazyAttribute(lambda obj: obj.order_id)
    webhook_event_id = factory.Sequence(lambda n: f"ev-{n}")
    webhook_event_type = "payment.updated"
    created_at = factory.LazyFunction(timezone.now)
    updated_at = factory.LazyFunction(timezone.now)
