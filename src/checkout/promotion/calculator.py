"""Discount calculator — the amount a discount takes off a cart."""

from decimal import Decimal

from checkout.catalogue.reference import CatalogueReference
from checkout.promotion.discount import Discount, DiscountType
from checkout.promotion.matcher import matching_items
from checkout.shared.money import ZERO, round_money, to_decimal, truncate_money


class DiscountCalculator:
    def __init__(self, catalogue: CatalogueReference | None = None, exponent: int | None = None):
        self.catalogue = catalogue or CatalogueReference()
        self.exponent = exponent

    def matching_subtotal(self, discount: Discount, cart) -> Decimal:
        return sum((item.line_total for item in matching_items(discount, cart, self.catalogue)), ZERO)

    def compute_amount(self, discount: Discount, cart) -> Decimal:
        """Discount on the lines in scope, never more than those lines cost.

        Percentages are capped by ``maximum_discount_amount`` when set. The
        result is rounded once, half away from zero, to the currency's
        smallest unit, and never rounded up past the lines it covers.
        """
        base = self.matching_subtotal(discount, cart)
        if base <= ZERO:
            return round_money(ZERO, self.exponent)

        if discount.discount_type == DiscountType.PERCENTAGE.value:
            amount = base * to_decimal(discount.percentage_value) / Decimal(100)
            if discount.maximum_discount_amount is not None:
                amount = min(amount, to_decimal(discount.maximum_discount_amount))
        else:
            amount = to_decimal(discount.fixed_value)

        rounded = round_money(min(amount, base), self.exponent)
        return min(rounded, truncate_money(base, self.exponent))
