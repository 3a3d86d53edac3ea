"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Cart")
class CartItemAdded:
    """A variant was added to the cart, or merged into its existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@checkout.event(part_of="Cart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@checkout.event(part_of="Cart")
class CartItemRemoved:
    """A line was soft-deleted by the shopper; the row stays for audit."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    removed_at = DateTime(required=True)


@checkout.event(part_of="Cart")
class CartItemsExpired:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON array
    expired_at = DateTime(required=True)


@checkout.event(part_of="Cart")
class CartItemsPurchased:
    """Every active line of the cart was settled into an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON array
    identity = String(required=True)
    purchased_at = DateTime(required=True)
