"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A cart was settled into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    identity = String(required=True)
    line_count = Integer(required=True)
    subtotal = Float(required=True)
    discount_total = Float(required=True)
    grand_total = Float(required=True)
    currency = String(required=True)
    discount_code = String()
    placed_at = DateTime(required=True)
