"""Discount matcher — does a discount apply to a cart, and if not, why.

Checks run in a fixed order and stop at the first failure, so every
rejection carries exactly one reason.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.utils.globals import current_domain

from checkout.catalogue.reference import CatalogueReference
from checkout.promotion.discount import Discount, DiscountScope, as_utc
from checkout.promotion.ledger import UsageLedger


class Rejection(Enum):
    DISCOUNT_NOT_FOUND = "discount_not_found"
    INACTIVE = "inactive"
    NOT_STARTED = "not_started"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    BELOW_MINIMUM_ORDER = "below_minimum_order"
    CUSTOMER_LIMIT_REACHED = "customer_limit_reached"
    SCOPE_MISMATCH = "scope_mismatch"


@dataclass
class ApplicabilityResult:
    applicable: bool
    reason: str | None = None
    discount: Discount | None = None
    amount: Decimal | None = None

    @classmethod
    def accept(cls, discount):
        return cls(applicable=True, discount=discount)

    @classmethod
    def reject(cls, rejection: Rejection, discount=None):
        return cls(applicable=False, reason=rejection.value, discount=discount)


def matching_items(discount: Discount, cart, catalogue: CatalogueReference | None = None) -> list:
    """Active cart lines the discount's scope covers."""
    items = cart.active_items()
    if discount.scope == DiscountScope.SPECIFIC_PRODUCTS.value:
        product_ids = discount.product_ids
        return [item for item in items if str(item.product_id) in product_ids]
    if discount.scope == DiscountScope.SPECIFIC_CATEGORIES.value:
        catalogue = catalogue or CatalogueReference()
        category_ids = discount.category_ids
        return [item for item in items if catalogue.category_of(item.product_id) in category_ids]
    return items


class DiscountMatcher:
    def __init__(self, ledger=None, catalogue: CatalogueReference | None = None):
        self.ledger = ledger or UsageLedger()
        self.catalogue = catalogue or CatalogueReference()

    def evaluate(self, code: str, cart, identity: str | None = None, at: datetime | None = None) -> ApplicabilityResult:
        """Resolve ``code`` in the discount catalog, then match it against the cart."""
        discount = current_domain.repository_for(Discount).find_by_code(code)
        return self.is_applicable(discount, cart, identity, at)

    def is_applicable(self, discount, cart, identity: str | None = None, at: datetime | None = None) -> ApplicabilityResult:
        if discount is None:
            return ApplicabilityResult.reject(Rejection.DISCOUNT_NOT_FOUND)

        at = as_utc(at) or datetime.now(UTC)
        if not discount.is_active:
            return ApplicabilityResult.reject(Rejection.INACTIVE, discount)
        if discount.is_not_started(at):
            return ApplicabilityResult.reject(Rejection.NOT_STARTED, discount)
        if discount.is_expired(at):
            return ApplicabilityResult.reject(Rejection.EXPIRED, discount)
        if discount.is_usage_limit_reached:
            return ApplicabilityResult.reject(Rejection.USAGE_LIMIT_REACHED, discount)

        if discount.minimum_order_value is not None:
            if cart.subtotal() < Decimal(str(discount.minimum_order_value)):
                return ApplicabilityResult.reject(Rejection.BELOW_MINIMUM_ORDER, discount)

        if discount.max_usage_per_customer is not None:
            identity = identity or cart.identity
            if self.ledger.usage_count(discount.id, identity) >= discount.max_usage_per_customer:
                return ApplicabilityResult.reject(Rejection.CUSTOMER_LIMIT_REACHED, discount)

        if not matching_items(discount, cart, self.catalogue):
            return ApplicabilityResult.reject(Rejection.SCOPE_MISMATCH, discount)

        return ApplicabilityResult.accept(discount)
