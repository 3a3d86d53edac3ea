"""BDD tests for checking out with discount codes."""

import threading

from checkout.cart.cart import Cart, ItemState
from checkout.domain import checkout
from checkout.promotion.discount import Discount
from checkout.promotion.ledger import UsageLedger
from checkout.settlement.errors import DiscountNotApplicable, UsageRaceLost
from checkout.settlement.settlement import settle_cart
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/checkout_discounts.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the cart is checked out with code "{code}"'))
def check_out_with_code(cart, code, outcome):
    try:
        outcome["order"] = settle_cart(cart.id, applied_code=code)
    except DiscountNotApplicable as exc:
        outcome["exc"] = exc


@when(parsers.cfparse('{count:d} shoppers reserve "{code}" at the same time'), target_fixture="race")
def shoppers_race(count, code):
    discount = current_domain.repository_for(Discount).find_by_code(code)
    barrier = threading.Barrier(count)
    race = {"won": [], "lost": []}

    def shopper(identity):
        with checkout.domain_context():
            barrier.wait()
            try:
                race["won"].append(UsageLedger().reserve(discount, identity))
            except UsageRaceLost as exc:
                race["lost"].append(exc.reason)

    threads = [threading.Thread(target=shopper, args=(f"shopper{i}@example.com",)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return race


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("exactly {count:d} reservation succeeds"))
def exactly_n_won(race, count):
    assert len(race["won"]) == count


@then("the cart items are still active")
def cart_items_active(cart):
    reloaded = current_domain.repository_for(Cart).get(cart.id)
    assert all(item.state == ItemState.ACTIVE.value for item in reloaded.items)
