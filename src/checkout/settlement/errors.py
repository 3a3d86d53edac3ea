"""Checkout outcomes that are not plain validation failures.

Input problems (empty cart, bad quantity, unpriced variant, malformed
discount) raise protean's ``ValidationError``. Everything below derives from
``CheckoutError`` so callers can tell each rejection path apart.
"""


class CheckoutError(Exception):
    """Base class for checkout rejections."""


class DiscountNotApplicable(CheckoutError):
    def __init__(self, reason: str, code: str | None = None):
        self.reason = reason
        self.code = code
        super().__init__(f"Discount {code!r} is not applicable: {reason}")


class UsageRaceLost(CheckoutError):
    """The discount was exhausted (or contended) between matching and reserving."""

    def __init__(self, reason: str, discount_id: str | None = None):
        self.reason = reason
        self.discount_id = discount_id
        super().__init__(f"Discount {discount_id} could not be reserved: {reason}")


class SettlementFailed(CheckoutError):
    """Cart-to-order conversion failed after a usage was reserved.

    The reservation has been released and the cart left as it was; the
    underlying error is chained as ``__cause__``.
    """

    def __init__(self, cart_id: str, detail: str | None = None):
        self.cart_id = cart_id
        self.detail = detail
        message = f"Settlement of cart {cart_id} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
