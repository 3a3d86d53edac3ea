"""Tests for the Cart aggregate and the CartItem soft-delete lifecycle."""

import json
from decimal import Decimal

import pytest
from checkout.cart.cart import Cart, ItemClosure, ItemState
from checkout.cart.events import (
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartItemsExpired,
    CartItemsPurchased,
)
from protean.exceptions import ValidationError


def _cart_with_items():
    cart = Cart.create(customer_email="Shopper@Example.com")
    cart.add_item(variant_id="var-sneakers", product_id="prod-sneakers", quantity=1, unit_price=30000.0)
    cart.add_item(variant_id="var-boots", product_id="prod-boots", quantity=2, unit_price=100000.0)
    return cart


class TestCartCreation:
    def test_create_with_email(self):
        cart = Cart.create(customer_email="Shopper@Example.com")
        assert cart.customer_email == "shopper@example.com"
        assert cart.identity == "shopper@example.com"

    def test_guest_cart_identity_is_session(self):
        cart = Cart.create(session_id="sess-001")
        assert cart.identity == "sess-001"

    def test_email_wins_over_session(self):
        cart = Cart.create(customer_email="a@example.com", session_id="sess-001")
        assert cart.identity == "a@example.com"

    def test_cart_needs_an_owner(self):
        with pytest.raises(ValidationError):
            Cart.create()


class TestAddItem:
    def test_add_captures_price(self):
        cart = _cart_with_items()
        assert len(cart.items) == 2
        assert cart.items[0].unit_price == 30000.0
        assert cart.items[0].state == ItemState.ACTIVE.value
        assert cart.items[0].added_at is not None

    def test_same_variant_merges_and_refreshes_price(self):
        cart = _cart_with_items()
        cart.add_item(variant_id="var-boots", product_id="prod-boots", quantity=1, unit_price=90000.0)
        boots = [i for i in cart.items if i.variant_id == "var-boots"]
        assert len(boots) == 1
        assert boots[0].quantity == 3
        assert boots[0].unit_price == 90000.0

    def test_removed_variant_is_not_merged(self):
        cart = _cart_with_items()
        boots = next(i for i in cart.items if i.variant_id == "var-boots")
        cart.remove_item(boots.id)
        cart.add_item(variant_id="var-boots", product_id="prod-boots", quantity=1, unit_price=100000.0)
        assert len([i for i in cart.items if i.variant_id == "var-boots"]) == 2

    def test_zero_quantity_rejected(self):
        cart = Cart.create(session_id="sess-001")
        with pytest.raises(ValidationError):
            cart.add_item(variant_id="v", product_id="p", quantity=0, unit_price=1.0)

    def test_raises_added_event(self):
        cart = Cart.create(session_id="sess-001")
        cart.add_item(variant_id="v", product_id="p", quantity=2, unit_price=5.0)
        event = cart._events[-1]
        assert isinstance(event, CartItemAdded)
        assert event.quantity == 2
        assert event.unit_price == 5.0


class TestSubtotal:
    def test_subtotal_of_active_lines(self):
        cart = _cart_with_items()
        assert cart.subtotal() == Decimal("230000")

    def test_removed_lines_excluded(self):
        cart = _cart_with_items()
        cart.remove_item(cart.items[1].id)
        assert cart.subtotal() == Decimal("30000")
        assert len(cart.active_items()) == 1


class TestItemEdits:
    def test_update_quantity(self):
        cart = _cart_with_items()
        item = cart.items[0]
        cart.update_item_quantity(item.id, 4)
        assert cart.items[0].quantity == 4
        assert isinstance(cart._events[-1], CartItemQuantityUpdated)

    def test_update_unknown_item_rejected(self):
        cart = _cart_with_items()
        with pytest.raises(ValidationError):
            cart.update_item_quantity("missing", 2)

    def test_closed_item_is_immutable(self):
        cart = _cart_with_items()
        item = cart.items[0]
        cart.remove_item(item.id)
        with pytest.raises(ValidationError):
            cart.update_item_quantity(item.id, 2)
        with pytest.raises(ValidationError):
            cart.refresh_item_price(item.id, 1.0)
        with pytest.raises(ValidationError):
            cart.remove_item(item.id)

    def test_refresh_price(self):
        cart = _cart_with_items()
        cart.refresh_item_price(cart.items[0].id, 25000.0)
        assert cart.items[0].unit_price == 25000.0


class TestSoftDelete:
    def test_remove_keeps_row_with_closure(self):
        cart = _cart_with_items()
        item = cart.items[0]
        cart.remove_item(item.id)

        removed = cart.items[0]
        assert len(cart.items) == 2
        assert removed.state == ItemState.REMOVED.value
        assert removed.is_deleted
        assert removed.deleted_at is not None
        assert removed.deletion_reason == ItemState.REMOVED.value
        assert removed.order_id is None
        assert removed.purchased_at is None
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_expire_closes_only_active_lines(self):
        cart = _cart_with_items()
        cart.remove_item(cart.items[0].id)
        expired = cart.expire_items()

        assert expired == [str(cart.items[1].id)]
        assert cart.items[0].state == ItemState.REMOVED.value
        assert cart.items[1].state == ItemState.EXPIRED.value
        event = cart._events[-1]
        assert isinstance(event, CartItemsExpired)
        assert json.loads(event.item_ids) == expired

    def test_expire_empty_cart_is_a_no_op(self):
        cart = Cart.create(session_id="sess-001")
        assert cart.expire_items() == []
        assert cart._events == []

    def test_mark_purchased_links_order(self):
        cart = _cart_with_items()
        cart.mark_purchased("order-001")

        for item in cart.items:
            assert item.state == ItemState.PURCHASED.value
            assert item.order_id == "order-001"
            assert item.purchased_at is not None
        event = cart._events[-1]
        assert isinstance(event, CartItemsPurchased)
        assert event.identity == "shopper@example.com"

    def test_mark_purchased_skips_closed_lines(self):
        cart = _cart_with_items()
        cart.remove_item(cart.items[0].id)
        purchased = cart.mark_purchased("order-001")
        assert purchased == [str(cart.items[1].id)]
        assert cart.items[0].state == ItemState.REMOVED.value

    def test_mark_purchased_needs_active_lines(self):
        cart = Cart.create(session_id="sess-001")
        with pytest.raises(ValidationError):
            cart.mark_purchased("order-001")


class TestItemClosure:
    def test_purchase_requires_order(self):
        with pytest.raises(ValidationError):
            ItemClosure(state=ItemState.PURCHASED.value, closed_at="2026-01-01T00:00:00+00:00")

    def test_removal_cannot_carry_order(self):
        with pytest.raises(ValidationError):
            ItemClosure(
                state=ItemState.REMOVED.value,
                closed_at="2026-01-01T00:00:00+00:00",
                order_id="order-001",
            )

    def test_active_is_not_a_closure_state(self):
        with pytest.raises(ValidationError):
            ItemClosure(state=ItemState.ACTIVE.value, closed_at="2026-01-01T00:00:00+00:00")
