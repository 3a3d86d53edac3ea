"""Cart settlement — turns a cart into an order with at most one discount.

Flow:
    1. Validate the cart's active lines against the catalogue (price, stock).
    2. If a code was supplied, match it; a rejection aborts the checkout.
    3. Compute the discount amount and reserve one usage unit in the ledger.
    4. In one unit of work: place the order, mark every active line
       Purchased with the order id, commit the usage reservation.
    5. If step 4 fails, release the reservation and raise SettlementFailed;
       the cart keeps its Active lines.

The ledger's reserve and release persist on their own, so they run before
and after the unit of work, never inside it.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.catalogue.reference import CatalogueReference
from checkout.config import get_currency
from checkout.order.order import Order, OrderPricing
from checkout.promotion.calculator import DiscountCalculator
from checkout.promotion.ledger import UsageLedger
from checkout.promotion.matcher import ApplicabilityResult, DiscountMatcher
from checkout.settlement.errors import DiscountNotApplicable, SettlementFailed
from checkout.shared.money import ZERO, round_money

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutQuote:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    currency: str
    discount_code: str | None = None
    rejection: str | None = None


class CartSettlement:
    def __init__(self, ledger=None, matcher=None, calculator=None, catalogue=None):
        self.catalogue = catalogue or CatalogueReference()
        self.ledger = ledger or UsageLedger()
        self.matcher = matcher or DiscountMatcher(ledger=self.ledger, catalogue=self.catalogue)
        self.calculator = calculator or DiscountCalculator(catalogue=self.catalogue)

    # -------------------------------------------------------------------
    # Read-only previews
    # -------------------------------------------------------------------
    def validate_discount(self, code: str, cart, identity: str | None = None, at: datetime | None = None) -> ApplicabilityResult:
        """Match ``code`` against the cart and, when it applies, attach the amount."""
        cart = self._load(cart)
        result = self.matcher.evaluate(code, cart, identity or cart.identity, at)
        if result.applicable:
            result.amount = self.calculator.compute_amount(result.discount, cart)
        return result

    def quote(self, cart, code: str | None = None, identity: str | None = None) -> CheckoutQuote:
        """Totals the shopper would pay now. A rejected code is reported, not raised."""
        cart = self._load(cart)
        subtotal = round_money(cart.subtotal())
        amount = round_money(ZERO)
        rejection = None
        applied_code = None

        if code:
            result = self.validate_discount(code, cart, identity)
            if result.applicable:
                amount = result.amount
                applied_code = result.discount.code
            else:
                rejection = result.reason

        return CheckoutQuote(
            subtotal=subtotal,
            discount_amount=amount,
            total=max(subtotal - amount, ZERO),
            currency=get_currency(),
            discount_code=applied_code,
            rejection=rejection,
        )

    # -------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------
    def settle_cart(self, cart, identity: str | None = None, applied_code: str | None = None, payment_method: str | None = None) -> Order:
        cart = self._load(cart)
        cart_id = str(cart.id)
        identity = identity or cart.identity
        log = logger.bind(cart_id=cart_id, identity=identity, discount_code=applied_code)

        self._validate_lines(cart)

        discount = None
        amount = round_money(ZERO)
        token = None
        if applied_code:
            result = self.matcher.evaluate(applied_code, cart, identity)
            if not result.applicable:
                log.info("discount_rejected", reason=result.reason)
                raise DiscountNotApplicable(result.reason, applied_code)
            discount = result.discount
            amount = self.calculator.compute_amount(discount, cart)
            token = self.ledger.reserve(discount, identity)

        subtotal = round_money(cart.subtotal())
        pricing = OrderPricing(
            subtotal=float(subtotal),
            discount_total=float(amount),
            grand_total=float(max(subtotal - amount, ZERO)),
            currency=get_currency(),
        )

        try:
            with UnitOfWork():
                order = Order.place(
                    cart,
                    pricing,
                    identity=identity,
                    discount=discount,
                    payment_method=payment_method,
                )
                current_domain.repository_for(Order).add(order)

                cart.mark_purchased(order.id)
                current_domain.repository_for(Cart).add(cart)

                if token is not None:
                    self.ledger.commit(
                        token,
                        order.id,
                        amount,
                        customer_email=cart.customer_email,
                        session_id=cart.session_id,
                    )
        except Exception as exc:
            log.error("settlement_failed", error=str(exc), error_type=type(exc).__name__)
            if token is not None:
                self._compensate(token, log)
            raise SettlementFailed(cart_id, str(exc)) from exc

        log.info(
            "cart_settled",
            order_id=str(order.id),
            subtotal=float(subtotal),
            discount_amount=float(amount),
            grand_total=pricing.grand_total,
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _load(self, cart) -> Cart:
        """Fresh copy from the repository; the caller's object is never mutated."""
        cart_id = cart.id if isinstance(cart, Cart) else cart
        return current_domain.repository_for(Cart).get(str(cart_id))

    def _validate_lines(self, cart: Cart) -> None:
        items = cart.active_items()
        if not items:
            raise ValidationError({"cart": ["Cart has no active items"]})

        for item in items:
            if not item.quantity or item.quantity <= 0:
                raise ValidationError({"quantity": [f"Item {item.id} has an invalid quantity"]})
            variant = self.catalogue.priced_variant(item.variant_id)
            if (variant.stock_quantity or 0) < item.quantity:
                raise ValidationError(
                    {"stock": [f"Only {variant.stock_quantity or 0} left of variant {item.variant_id}"]}
                )

    def _compensate(self, token, log) -> None:
        try:
            self.ledger.release(token)
        except Exception:
            # The settlement error is what the caller sees; the stuck reservation is logged
            log.exception("usage_release_failed", reservation_id=token.reservation_id)


def settle_cart(cart, identity: str | None = None, applied_code: str | None = None, payment_method: str | None = None) -> Order:
    return CartSettlement().settle_cart(cart, identity, applied_code, payment_method)


def validate_discount(code: str, cart, identity: str | None = None) -> ApplicabilityResult:
    return CartSettlement().validate_discount(code, cart, identity)


def quote(cart, code: str | None = None, identity: str | None = None) -> CheckoutQuote:
    return CartSettlement().quote(cart, code, identity)
