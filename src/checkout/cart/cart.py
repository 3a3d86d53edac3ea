"""Cart aggregate — line items captured at add time, soft-deleted on close.

A cart belongs to a signed-in customer (email) or a guest (session id). Each
line keeps the unit price it was added at. Lines are never removed from the
cart: when a line stops being Active it gains an ``ItemClosure`` recording
why (Purchased, Removed, Expired), when, and for purchases the order it was
settled into. Closed lines are immutable.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.cart.events import (
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartItemsExpired,
    CartItemsPurchased,
)
from checkout.domain import checkout
from checkout.shared.money import ZERO, to_decimal


class ItemState(Enum):
    ACTIVE = "Active"
    PURCHASED = "Purchased"
    REMOVED = "Removed"
    EXPIRED = "Expired"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Cart")
class ItemClosure:
    """Why and when a line stopped being Active."""

    state = String(
        required=True,
        choices=[ItemState.PURCHASED.value, ItemState.REMOVED.value, ItemState.EXPIRED.value],
    )
    closed_at = DateTime(required=True)
    order_id = Identifier()

    @invariant.post
    def order_only_for_purchases(self):
        if self.state == ItemState.PURCHASED.value and not self.order_id:
            raise ValidationError({"order_id": ["A purchased item must reference its order"]})
        if self.state != ItemState.PURCHASED.value and self.order_id:
            raise ValidationError({"order_id": ["Only purchased items reference an order"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Cart")
class CartItem:
    variant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()
    updated_at = DateTime()
    closure = ValueObject(ItemClosure)

    @property
    def state(self) -> str:
        return self.closure.state if self.closure else ItemState.ACTIVE.value

    @property
    def is_active(self) -> bool:
        return self.closure is None

    @property
    def is_deleted(self) -> bool:
        return self.closure is not None

    @property
    def deleted_at(self):
        return self.closure.closed_at if self.closure else None

    @property
    def deletion_reason(self) -> str | None:
        return self.closure.state if self.closure else None

    @property
    def purchased_at(self):
        if self.closure and self.closure.state == ItemState.PURCHASED.value:
            return self.closure.closed_at
        return None

    @property
    def order_id(self):
        return self.closure.order_id if self.closure else None

    @property
    def line_total(self) -> Decimal:
        return to_decimal(self.unit_price) * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Cart:
    customer_email = String(max_length=255)
    session_id = String(max_length=255)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_must_have_an_owner(self):
        if not self.customer_email and not self.session_id:
            raise ValidationError({"cart": ["A cart needs a customer email or a session id"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_email=None, session_id=None):
        now = datetime.now(UTC)
        return cls(
            customer_email=customer_email.strip().lower() if customer_email else None,
            session_id=session_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def identity(self) -> str:
        """Key for per-customer limits: the email when known, else the guest session."""
        return self.customer_email or self.session_id

    def active_items(self) -> list[CartItem]:
        return [item for item in self.items if item.is_active]

    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.active_items()), ZERO)

    def find_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, variant_id, product_id, quantity, unit_price):
        """Add a line, or merge into the active line for the same variant.

        Merging adds the quantities and refreshes the captured price.
        """
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than 0"]})

        now = datetime.now(UTC)
        existing = next(
            (i for i in self.active_items() if str(i.variant_id) == str(variant_id)),
            None,
        )

        if existing:
            existing.quantity += quantity
            existing.unit_price = unit_price
            existing.updated_at = now
            item = existing
        else:
            item = CartItem(
                variant_id=str(variant_id),
                product_id=str(product_id),
                quantity=quantity,
                unit_price=unit_price,
                added_at=now,
                updated_at=now,
            )
            self.add_items(item)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                variant_id=str(variant_id),
                quantity=quantity,
                unit_price=unit_price,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity):
        item = self.find_item(item_id)
        if not item.is_active:
            raise ValidationError({"item_id": [f"Item is {item.state} and can no longer change"]})
        if new_quantity is None or new_quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than 0"]})

        previous_quantity = item.quantity
        now = datetime.now(UTC)
        item.quantity = new_quantity
        item.updated_at = now
        self.updated_at = now

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def refresh_item_price(self, item_id, unit_price):
        item = self.find_item(item_id)
        if not item.is_active:
            raise ValidationError({"item_id": [f"Item is {item.state} and can no longer change"]})
        now = datetime.now(UTC)
        item.unit_price = unit_price
        item.updated_at = now
        self.updated_at = now

    def remove_item(self, item_id):
        """Soft-delete a line; it stays on the cart with a Removed closure."""
        item = self.find_item(item_id)
        if not item.is_active:
            raise ValidationError({"item_id": [f"Item is already {item.state}"]})

        now = datetime.now(UTC)
        self._close(item, ItemState.REMOVED, now)
        self.updated_at = now

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id), removed_at=now))

    def expire_items(self, at=None):
        """Close every active line as Expired. Returns the ids that were closed."""
        now = at or datetime.now(UTC)
        expired = self.active_items()
        if not expired:
            return []

        with atomic_change(self):
            for item in expired:
                self._close(item, ItemState.EXPIRED, now)
            self.updated_at = now

        item_ids = [str(item.id) for item in expired]
        self.raise_(CartItemsExpired(cart_id=str(self.id), item_ids=json.dumps(item_ids), expired_at=now))
        return item_ids

    def mark_purchased(self, order_id, at=None):
        """Close every active line as Purchased by ``order_id``."""
        purchased = self.active_items()
        if not purchased:
            raise ValidationError({"cart": ["Cart has no active items to purchase"]})

        now = at or datetime.now(UTC)
        with atomic_change(self):
            for item in purchased:
                self._close(item, ItemState.PURCHASED, now, order_id=str(order_id))
            self.updated_at = now

        item_ids = [str(item.id) for item in purchased]
        self.raise_(
            CartItemsPurchased(
                cart_id=str(self.id),
                order_id=str(order_id),
                item_ids=json.dumps(item_ids),
                identity=self.identity,
                purchased_at=now,
            )
        )
        return item_ids

    def _close(self, item: CartItem, state: ItemState, at, order_id=None):
        item.closure = ItemClosure(state=state.value, closed_at=at, order_id=order_id)
        item.updated_at = at
