"""Discount aggregate — a promotion code with its scope, window and usage limits.

A discount is either a percentage (optionally capped by a maximum amount) or
a fixed amount. It targets all products, an explicit set of products, or an
explicit set of categories; the target sets are owned by the discount and
refer to catalogue items by id only.

Availability (expired, not started, currently active, usable) is derived on
demand from the stored state and a clock reading, never cached on the
aggregate. The usage counter is moved only through the usage ledger, which
swaps it under a version check.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from checkout.domain import checkout
from checkout.promotion.events import (
    DiscountActivated,
    DiscountCreated,
    DiscountDeactivated,
    DiscountScopeChanged,
    DiscountUpdated,
)


class DiscountType(Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "FixedAmount"


class DiscountScope(Enum):
    ALL_PRODUCTS = "AllProducts"
    SPECIFIC_PRODUCTS = "SpecificProducts"
    SPECIFIC_CATEGORIES = "SpecificCategories"


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so stored and supplied clocks compare."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Discount")
class DiscountProduct:
    product_id = Identifier(required=True)


@checkout.entity(part_of="Discount")
class DiscountCategory:
    category_id = Identifier(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Discount:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, choices=DiscountType)
    percentage_value = Float(min_value=0.0)
    fixed_value = Float(min_value=0.0)
    minimum_order_value = Float(min_value=0.0)
    maximum_discount_amount = Float(min_value=0.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    is_featured = Boolean(default=False)
    scope = String(required=True, choices=DiscountScope, default=DiscountScope.ALL_PRODUCTS.value)
    products = HasMany(DiscountProduct)
    categories = HasMany(DiscountCategory)
    max_usage_count = Integer(min_value=0)
    max_usage_per_customer = Integer(min_value=0)
    current_usage_count = Integer(default=0)
    usage_version = Integer(default=0)
    created_by = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def value_must_match_type(self):
        if self.discount_type == DiscountType.PERCENTAGE.value:
            if self.fixed_value is not None:
                raise ValidationError({"fixed_value": ["Percentage discounts cannot carry a fixed value"]})
            if self.percentage_value is None or not 0 < self.percentage_value <= 100:
                raise ValidationError({"percentage_value": ["Percentage must be greater than 0 and at most 100"]})
        elif self.discount_type == DiscountType.FIXED_AMOUNT.value:
            if self.percentage_value is not None:
                raise ValidationError({"percentage_value": ["Fixed amount discounts cannot carry a percentage"]})
            if self.fixed_value is None or self.fixed_value <= 0:
                raise ValidationError({"fixed_value": ["Fixed amount must be greater than 0"]})

    @invariant.post
    def window_must_be_ordered(self):
        if self.start_date and self.end_date and as_utc(self.start_date) >= as_utc(self.end_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @invariant.post
    def usage_must_stay_within_cap(self):
        count = self.current_usage_count or 0
        if count < 0:
            raise ValidationError({"current_usage_count": ["Usage count cannot be negative"]})
        if self.max_usage_count is not None and count > self.max_usage_count:
            raise ValidationError({"current_usage_count": ["Usage count cannot exceed the usage cap"]})

    @invariant.post
    def targets_must_match_scope(self):
        if self.products and self.scope != DiscountScope.SPECIFIC_PRODUCTS.value:
            raise ValidationError({"products": ["Product targets require the SpecificProducts scope"]})
        if self.categories and self.scope != DiscountScope.SPECIFIC_CATEGORIES.value:
            raise ValidationError({"categories": ["Category targets require the SpecificCategories scope"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        name,
        discount_type,
        start_date,
        end_date,
        percentage_value=None,
        fixed_value=None,
        description=None,
        minimum_order_value=None,
        maximum_discount_amount=None,
        scope=DiscountScope.ALL_PRODUCTS.value,
        product_ids=(),
        category_ids=(),
        max_usage_count=None,
        max_usage_per_customer=None,
        is_active=True,
        is_featured=False,
        created_by=None,
    ):
        now = datetime.now(UTC)
        discount = cls(
            code=normalize_code(code),
            name=name,
            description=description,
            discount_type=discount_type,
            percentage_value=percentage_value,
            fixed_value=fixed_value,
            minimum_order_value=minimum_order_value,
            maximum_discount_amount=maximum_discount_amount,
            start_date=as_utc(start_date),
            end_date=as_utc(end_date),
            is_active=is_active,
            is_featured=is_featured,
            scope=scope,
            products=[DiscountProduct(product_id=str(pid)) for pid in product_ids],
            categories=[DiscountCategory(category_id=str(cid)) for cid in category_ids],
            max_usage_count=max_usage_count,
            max_usage_per_customer=max_usage_per_customer,
            current_usage_count=0,
            usage_version=0,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        discount.raise_(
            DiscountCreated(
                discount_id=str(discount.id),
                code=discount.code,
                discount_type=discount.discount_type,
                scope=discount.scope,
                start_date=discount.start_date,
                end_date=discount.end_date,
                created_by=created_by,
            )
        )
        return discount

    # -------------------------------------------------------------------
    # Derived availability (evaluated against a clock, never stored)
    # -------------------------------------------------------------------
    def is_expired(self, at: datetime | None = None) -> bool:
        at = as_utc(at) or datetime.now(UTC)
        return at >= as_utc(self.end_date)

    def is_not_started(self, at: datetime | None = None) -> bool:
        at = as_utc(at) or datetime.now(UTC)
        return at < as_utc(self.start_date)

    def is_currently_active(self, at: datetime | None = None) -> bool:
        return bool(self.is_active) and not self.is_expired(at) and not self.is_not_started(at)

    @property
    def is_usage_limit_reached(self) -> bool:
        return self.max_usage_count is not None and (self.current_usage_count or 0) >= self.max_usage_count

    def can_be_used(self, at: datetime | None = None) -> bool:
        return self.is_currently_active(at) and not self.is_usage_limit_reached

    @property
    def remaining_usage(self) -> int | None:
        if self.max_usage_count is None:
            return None
        return max(self.max_usage_count - (self.current_usage_count or 0), 0)

    @property
    def product_ids(self) -> set[str]:
        return {str(p.product_id) for p in self.products}

    @property
    def category_ids(self) -> set[str]:
        return {str(c.category_id) for c in self.categories}

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def update_terms(self, **changes):
        """Replace the commercial terms of the discount in one step.

        Accepts the same keywords as ``create`` except the target sets and
        the usage counter. Switching type requires passing the new value and
        clearing the old one in the same call.
        """
        allowed = {
            "code",
            "name",
            "description",
            "discount_type",
            "percentage_value",
            "fixed_value",
            "minimum_order_value",
            "maximum_discount_amount",
            "start_date",
            "end_date",
            "is_featured",
            "max_usage_count",
            "max_usage_per_customer",
        }
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError({"discount": [f"Unsupported fields: {', '.join(sorted(unknown))}"]})

        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
        for field in ("start_date", "end_date"):
            if field in changes:
                changes[field] = as_utc(changes[field])

        now = datetime.now(UTC)
        with atomic_change(self):
            for field, value in changes.items():
                setattr(self, field, value)
            self.updated_at = now

        self.raise_(DiscountUpdated(discount_id=str(self.id), code=self.code, updated_at=now))

    def change_scope(self, scope):
        """Switch scope; the existing target set is cleared."""
        with atomic_change(self):
            for product in list(self.products):
                self.remove_products(product)
            for category in list(self.categories):
                self.remove_categories(category)
            self.scope = scope
            self.updated_at = datetime.now(UTC)
        self._scope_changed()

    def include_products(self, product_ids):
        self._require_scope(DiscountScope.SPECIFIC_PRODUCTS)
        existing = self.product_ids
        for product_id in product_ids:
            if str(product_id) not in existing:
                self.add_products(DiscountProduct(product_id=str(product_id)))
                existing.add(str(product_id))
        self.updated_at = datetime.now(UTC)
        self._scope_changed()

    def exclude_products(self, product_ids):
        self._require_scope(DiscountScope.SPECIFIC_PRODUCTS)
        wanted = {str(pid) for pid in product_ids}
        for product in [p for p in self.products if str(p.product_id) in wanted]:
            self.remove_products(product)
        self.updated_at = datetime.now(UTC)
        self._scope_changed()

    def include_categories(self, category_ids):
        self._require_scope(DiscountScope.SPECIFIC_CATEGORIES)
        existing = self.category_ids
        for category_id in category_ids:
            if str(category_id) not in existing:
                self.add_categories(DiscountCategory(category_id=str(category_id)))
                existing.add(str(category_id))
        self.updated_at = datetime.now(UTC)
        self._scope_changed()

    def exclude_categories(self, category_ids):
        self._require_scope(DiscountScope.SPECIFIC_CATEGORIES)
        wanted = {str(cid) for cid in category_ids}
        for category in [c for c in self.categories if str(c.category_id) in wanted]:
            self.remove_categories(category)
        self.updated_at = datetime.now(UTC)
        self._scope_changed()

    def activate(self):
        if self.is_active:
            raise ValidationError({"is_active": ["Discount is already active"]})
        now = datetime.now(UTC)
        self.is_active = True
        self.updated_at = now
        self.raise_(DiscountActivated(discount_id=str(self.id), activated_at=now))

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Discount is already inactive"]})
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(DiscountDeactivated(discount_id=str(self.id), deactivated_at=now))

    # -------------------------------------------------------------------
    # Usage counter (usage ledger only)
    # -------------------------------------------------------------------
    def _swap_usage_count(self, new_count: int):
        with atomic_change(self):
            self.current_usage_count = new_count
            self.usage_version = (self.usage_version or 0) + 1

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _require_scope(self, scope: DiscountScope):
        if self.scope != scope.value:
            raise ValidationError({"scope": [f"Discount scope is {self.scope}, not {scope.value}"]})

    def _scope_changed(self):
        if self.scope == DiscountScope.SPECIFIC_PRODUCTS.value:
            targets = sorted(self.product_ids)
        elif self.scope == DiscountScope.SPECIFIC_CATEGORIES.value:
            targets = sorted(self.category_ids)
        else:
            targets = []
        self.raise_(
            DiscountScopeChanged(
                discount_id=str(self.id),
                scope=self.scope,
                target_ids=json.dumps(targets),
            )
        )
