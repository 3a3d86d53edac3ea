from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture()
def now():
    return datetime.now(UTC)


@pytest.fixture()
def catalogue():
    from checkout.catalogue.reference import CatalogueReference

    return CatalogueReference()


@pytest.fixture()
def make_discount(now):
    """Persist a discount that is live right now unless overridden."""
    from checkout.promotion.discount import Discount

    def _make(code="SAVE10", **overrides):
        defaults = {
            "code": code,
            "name": f"{code} promotion",
            "discount_type": "Percentage",
            "percentage_value": 10.0,
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        if overrides.get("discount_type") == "FixedAmount":
            defaults.pop("percentage_value")
        defaults.update(overrides)
        discount = Discount.create(**defaults)
        current_domain.repository_for(Discount).add(discount)
        return current_domain.repository_for(Discount).get(discount.id)

    return _make


@pytest.fixture()
def stocked_variant(catalogue):
    """Register a product and one variant with stock; returns the variant id."""

    def _register(variant_id, price, product_id=None, category_id=None, stock=100):
        product_id = product_id or f"prod-{variant_id}"
        catalogue.register_product(product_id, price=price, category_id=category_id)
        catalogue.register_variant(variant_id, product_id, price=price, stock_quantity=stock)
        return variant_id

    return _register


@pytest.fixture()
def make_cart(catalogue):
    """Persist a cart holding ``(variant_id, quantity)`` lines at catalogue prices."""
    from checkout.cart.cart import Cart

    def _make(lines=(), customer_email="shopper@example.com", session_id=None):
        cart = Cart.create(customer_email=customer_email, session_id=session_id)
        for variant_id, quantity in lines:
            variant = catalogue.get_variant(variant_id)
            cart.add_item(
                variant_id=variant_id,
                product_id=variant.product_id,
                quantity=quantity,
                unit_price=variant.price,
            )
        current_domain.repository_for(Cart).add(cart)
        return current_domain.repository_for(Cart).get(cart.id)

    return _make
