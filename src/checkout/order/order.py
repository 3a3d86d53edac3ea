"""Order aggregate — the immutable result of settling a cart.

Lines snapshot the cart's captured prices; later catalogue price changes do
not touch a placed order. Orders are created exactly once per settlement
and start out Pending; payment and fulfilment happen elsewhere.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.order.events import OrderPlaced
from checkout.shared.money import to_decimal


class OrderStatus(Enum):
    PENDING = "Pending"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class OrderPricing:
    """Totals locked at settlement, in the checkout currency."""

    subtotal = Float(default=0.0)
    discount_total = Float(default=0.0)
    grand_total = Float(default=0.0)
    currency = String(max_length=3, default="VND")

    @invariant.post
    def grand_total_must_not_be_negative(self):
        if self.grand_total is not None and self.grand_total < 0:
            raise ValidationError({"grand_total": ["Grand total cannot be negative"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderLine:
    cart_item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    cart_id = Identifier(required=True)
    identity = String(required=True, max_length=255)
    customer_email = String(max_length=255)
    session_id = String(max_length=255)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(max_length=50)
    lines = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    discount_id = Identifier()
    discount_code = String(max_length=50)
    placed_at = DateTime()

    @invariant.post
    def discount_code_requires_discount(self):
        if self.discount_code and not self.discount_id:
            raise ValidationError({"discount_code": ["A discount code needs the discount it refers to"]})

    @classmethod
    def place(cls, cart, pricing: OrderPricing, identity=None, discount=None, payment_method=None):
        """Snapshot the cart's active lines into a new Pending order.

        ``identity`` is who redeems the discount; it defaults to the cart's.
        """
        lines = [
            OrderLine(
                cart_item_id=str(item.id),
                variant_id=str(item.variant_id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=float(to_decimal(item.unit_price) * item.quantity),
            )
            for item in cart.active_items()
        ]
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = datetime.now(UTC)
        order = cls(
            cart_id=str(cart.id),
            identity=identity or cart.identity,
            customer_email=cart.customer_email,
            session_id=cart.session_id,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            lines=lines,
            pricing=pricing,
            discount_id=str(discount.id) if discount else None,
            discount_code=discount.code if discount else None,
            placed_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                cart_id=order.cart_id,
                identity=order.identity,
                line_count=len(lines),
                subtotal=pricing.subtotal,
                discount_total=pricing.discount_total,
                grand_total=pricing.grand_total,
                currency=pricing.currency,
                discount_code=order.discount_code,
                placed_at=now,
            )
        )
        return order
