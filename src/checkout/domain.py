"""Checkout bounded context — discounts, carts and cart settlement.

Holds the discount catalogue and its usage ledger, shopping carts with
soft-deleted line items, and the settlement flow that turns a cart into an
order with at most one applied discount.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
