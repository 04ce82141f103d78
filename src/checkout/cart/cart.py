"""Shopping Cart aggregate: the services a customer is about to book.

Each line holds a service (a card, test, course or qualification) together
with its configuration: the details the customer fills in before checkout,
such as a test date or a card type. The configuration is a nested JSON
blob; merges into it are deep so that filling one field never drops its
siblings.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Integer, String, Text

from checkout.cart.configuration import completion_percentage
from checkout.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemConfigured,
    CartItemRemoved,
    CartQuantityUpdated,
)
from checkout.domain import checkout
from checkout.order.normalization import ServiceType, normalize_service_type
from checkout.utils.merge import deep_merge


@checkout.entity(part_of="ShoppingCart")
class CartItem:
    item_id = String(required=True, max_length=255)
    title = String(max_length=500, default="")
    service_type = String(choices=ServiceType, default=ServiceType.OTHER.value)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    configuration = Text(default="{}")  # JSON object
    added_at = DateTime()

    @property
    def configuration_data(self) -> dict:
        return json.loads(self.configuration) if self.configuration else {}

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity

    def as_dict(self) -> dict:
        """Item fields with the configuration shallow-merged on top."""
        view = {**self.configuration_data}
        view.update(
            id=self.item_id,
            title=self.title,
            service_type=self.service_type,
            price=self.price,
            quantity=self.quantity,
        )
        return view


@checkout.aggregate
class ShoppingCart:
    customer_id = String(max_length=255)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_item(self, item_id):
        return next((i for i in self.items if i.item_id == str(item_id)), None)

    def _require_item(self, item_id):
        item = self.find_item(item_id)
        if item is None:
            raise ValidationError({"item_id": [f"Item {item_id} not found in cart"]})
        return item

    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal(0))

    def configurations(self) -> dict:
        return {item.item_id: item.configuration_data for item in self.items if item.configuration_data}

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, item_id, price, quantity=1, title="", service_type=None, configuration=None):
        """Add a service to the cart (or increase quantity if already present)."""
        if not item_id:
            raise ValidationError({"item_id": ["Item id is required"]})

        now = datetime.now(UTC)
        existing = self.find_item(item_id)

        if existing:
            existing.quantity += quantity
            if configuration:
                existing.configuration = json.dumps(deep_merge(existing.configuration_data, configuration))
            item = existing
        else:
            item = CartItem(
                item_id=str(item_id),
                title=title or "",
                service_type=normalize_service_type(service_type),
                price=price,
                quantity=quantity,
                configuration=json.dumps(configuration or {}),
                added_at=now,
            )
            self.add_items(item)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item.item_id,
                service_type=item.service_type,
                price=item.price,
                quantity=quantity,
            )
        )
        return item

    def update_quantity(self, item_id, new_quantity):
        """Set an item's quantity; anything below one is raised to one."""
        item = self._require_item(item_id)

        previous_quantity = item.quantity
        item.quantity = max(int(new_quantity), 1)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=item.item_id,
                previous_quantity=previous_quantity,
                new_quantity=item.quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        """Remove an item, and with it the item's configuration."""
        item = self._require_item(item_id)

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=item.item_id))

    def configure_item(self, item_id, patch):
        """Deep-merge a partial configuration into an item's configuration."""
        if not isinstance(patch, dict):
            raise ValidationError({"configuration": ["Configuration must be an object"]})
        item = self._require_item(item_id)

        merged = deep_merge(item.configuration_data, patch)
        item.configuration = json.dumps(merged)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemConfigured(
                cart_id=str(self.id),
                item_id=item.item_id,
                configuration=item.configuration,
                completion=completion_percentage(item.as_dict()),
            )
        )
        return merged

    def reset_configurations(self):
        """Drop every item's configuration while keeping the items."""
        for item in self.items:
            item.configuration = json.dumps({})
        self.updated_at = datetime.now(UTC)

    def clear(self):
        """Remove every item."""
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))
