"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="ShoppingCart")
class CartItemAdded:
    """A service was added to the cart, or its quantity was increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = String(required=True)
    service_type = String(required=True)
    price = Float(required=True)
    quantity = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart item was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = String(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartItemRemoved:
    """An item and its configuration were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = String(required=True)


@checkout.event(part_of="ShoppingCart")
class CartItemConfigured:
    """Configuration details were merged into a cart item."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = String(required=True)
    configuration = Text(required=True)  # JSON: the item's full configuration after the merge
    completion = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCleared:
    """All items were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)
