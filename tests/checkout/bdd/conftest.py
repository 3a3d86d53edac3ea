"""Shared BDD fixtures and step definitions for checkout."""

import pytest
from checkout.cart.cart import Cart
from checkout.promotion.discount import Discount
from checkout.settlement.errors import DiscountNotApplicable
from checkout.settlement.settlement import settle_cart
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def outcome():
    """Container for the checkout result or the refusal it raised."""
    return {"order": None, "exc": None}


def _discount(code):
    return current_domain.repository_for(Discount).find_by_code(code)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalogue lists variant "{variant_id}" of product "{product_id}" at {price:d}'))
def _(stocked_variant, variant_id, product_id, price):
    stocked_variant(variant_id, price=float(price), product_id=product_id)


@given(parsers.cfparse('a percentage discount "{code}" of {percent:d} percent'))
def _(make_discount, code, percent):
    make_discount(code, percentage_value=float(percent))


@given(parsers.cfparse('a percentage discount "{code}" of {percent:d} percent limited to {cap:d} use per customer'))
def _(make_discount, code, percent, cap):
    make_discount(code, percentage_value=float(percent), max_usage_per_customer=cap)


@given(parsers.cfparse('a percentage discount "{code}" of {percent:d} percent limited to {cap:d} use overall'))
def _(make_discount, code, percent, cap):
    make_discount(code, percentage_value=float(percent), max_usage_count=cap)


@given(parsers.cfparse('a percentage discount "{code}" of {percent:d} percent with a minimum order of {minimum:d}'))
def _(make_discount, code, percent, minimum):
    make_discount(code, percentage_value=float(percent), minimum_order_value=float(minimum))


@given(parsers.cfparse('a fixed discount "{code}" of {amount:d} on product "{product_id}"'))
def _(make_discount, code, amount, product_id):
    make_discount(
        code,
        discount_type="FixedAmount",
        fixed_value=float(amount),
        scope="SpecificProducts",
        product_ids=[product_id],
    )


@given(parsers.cfparse('a cart for "{email}" holding {qty:d} of "{variant_id}"'), target_fixture="cart")
def _(make_cart, email, qty, variant_id):
    return make_cart([(variant_id, qty)], customer_email=email)


@given(parsers.cfparse('the cart also holds {qty:d} of "{variant_id}"'), target_fixture="cart")
def _(cart, catalogue, qty, variant_id):
    variant = catalogue.get_variant(variant_id)
    cart.add_item(variant_id=variant_id, product_id=variant.product_id, quantity=qty, unit_price=variant.price)
    current_domain.repository_for(Cart).add(cart)
    return current_domain.repository_for(Cart).get(cart.id)


@given(parsers.cfparse('the cart was checked out with code "{code}"'))
def _(cart, code):
    settle_cart(cart.id, applied_code=code)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order discount is {amount:d}"))
def _(outcome, amount):
    assert outcome["exc"] is None
    assert outcome["order"].pricing.discount_total == float(amount)


@then(parsers.cfparse("the order total is {amount:d}"))
def _(outcome, amount):
    assert outcome["order"].pricing.grand_total == float(amount)


@then(parsers.cfparse('the checkout is refused with reason "{reason}"'))
def _(outcome, reason):
    assert isinstance(outcome["exc"], DiscountNotApplicable)
    assert outcome["exc"].reason == reason
    assert outcome["order"] is None


@then(parsers.cfparse('the usage count of discount "{code}" is {count:d}'))
def _(code, count):
    assert _discount(code).current_usage_count == count
