"""Application tests for cart commands."""

import pytest
from checkout.cart.cart import Cart, ItemState
from checkout.cart.items import AddToCart, CreateCart, ExpireCartItems, RemoveFromCart, UpdateCartQuantity
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture(autouse=True)
def _variants(stocked_variant):
    stocked_variant("var-001", price=100000.0)
    stocked_variant("var-002", price=30000.0)


def _create_cart(**overrides):
    defaults = {"customer_email": "shopper@example.com"}
    defaults.update(overrides)
    return current_domain.process(CreateCart(**defaults), asynchronous=False)


def _add(cart_id, variant_id="var-001", quantity=1):
    return current_domain.process(
        AddToCart(cart_id=cart_id, variant_id=variant_id, quantity=quantity),
        asynchronous=False,
    )


def _cart(cart_id):
    return current_domain.repository_for(Cart).get(cart_id)


class TestCreateCartCommand:
    def test_guest_cart(self):
        cart_id = _create_cart(customer_email=None, session_id="sess-001")
        assert _cart(cart_id).identity == "sess-001"

    def test_cart_without_owner_rejected(self):
        with pytest.raises(ValidationError):
            _create_cart(customer_email=None)


class TestAddToCartCommand:
    def test_price_comes_from_catalogue(self):
        cart_id = _create_cart()
        item_id = _add(cart_id, quantity=2)
        cart = _cart(cart_id)
        assert str(cart.items[0].id) == item_id
        assert cart.items[0].unit_price == 100000.0
        assert cart.items[0].product_id == "prod-var-001"

    def test_merge_refreshes_price(self, catalogue):
        cart_id = _create_cart()
        _add(cart_id)
        catalogue.register_variant("var-001", "prod-var-001", price=90000.0, stock_quantity=10)
        _add(cart_id, quantity=2)

        cart = _cart(cart_id)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3
        assert cart.items[0].unit_price == 90000.0

    def test_unknown_variant_rejected(self):
        cart_id = _create_cart()
        with pytest.raises(ValidationError):
            _add(cart_id, variant_id="var-missing")

    def test_unpriced_variant_rejected(self, catalogue):
        catalogue.register_variant("var-free", "prod-free", price=0.0, stock_quantity=10)
        cart_id = _create_cart()
        with pytest.raises(ValidationError):
            _add(cart_id, variant_id="var-free")


class TestLineEdits:
    def test_update_quantity(self):
        cart_id = _create_cart()
        item_id = _add(cart_id)
        current_domain.process(UpdateCartQuantity(cart_id=cart_id, item_id=item_id, new_quantity=5), asynchronous=False)
        assert _cart(cart_id).items[0].quantity == 5

    def test_remove_soft_deletes(self):
        cart_id = _create_cart()
        item_id = _add(cart_id)
        current_domain.process(RemoveFromCart(cart_id=cart_id, item_id=item_id), asynchronous=False)

        cart = _cart(cart_id)
        assert len(cart.items) == 1
        assert cart.items[0].state == ItemState.REMOVED.value
        assert cart.items[0].deleted_at is not None

    def test_expire_cart_items(self):
        cart_id = _create_cart()
        _add(cart_id)
        _add(cart_id, variant_id="var-002")
        expired = current_domain.process(ExpireCartItems(cart_id=cart_id), asynchronous=False)

        cart = _cart(cart_id)
        assert len(expired) == 2
        assert all(item.state == ItemState.EXPIRED.value for item in cart.items)
        assert cart.subtotal() == 0
