"""Discount catalog — repository queries and the atomic usage counter swap."""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime

from checkout.domain import checkout
from checkout.promotion.discount import Discount, as_utc, normalize_code

# Single-writer section guarding the read-compare-write of usage counters.
_usage_lock = threading.RLock()


@dataclass
class DiscountFilter:
    search: str | None = None
    is_active: bool | None = None
    discount_type: str | None = None
    status: str | None = None  # "active" | "expired" | "upcoming"
    featured_only: bool = False
    page: int = 1
    page_size: int = 20


@checkout.repository(part_of=Discount)
class DiscountRepository:
    def find_by_code(self, code: str) -> Discount | None:
        code = normalize_code(code)
        if not code:
            return None
        return self._dao.query.filter(code=code).all().first

    def code_taken(self, code: str, exclude_id=None) -> bool:
        existing = self.find_by_code(code)
        return existing is not None and str(existing.id) != str(exclude_id)

    def all_discounts(self) -> list[Discount]:
        discounts = self._dao.query.all().items
        return sorted(discounts, key=lambda d: as_utc(d.created_at) or datetime.min.replace(tzinfo=UTC), reverse=True)

    # -------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------
    def active(self, at: datetime | None = None) -> list[Discount]:
        """Usable discounts, featured first, then newest first."""
        at = as_utc(at) or datetime.now(UTC)
        usable = [d for d in self.all_discounts() if d.can_be_used(at)]
        return sorted(usable, key=lambda d: not d.is_featured)

    def expired(self, at: datetime | None = None) -> list[Discount]:
        at = as_utc(at) or datetime.now(UTC)
        return [d for d in self.all_discounts() if d.is_expired(at)]

    def upcoming(self, at: datetime | None = None) -> list[Discount]:
        at = as_utc(at) or datetime.now(UTC)
        return [d for d in self.all_discounts() if d.is_active and d.is_not_started(at)]

    def featured(self, count: int = 5, at: datetime | None = None) -> list[Discount]:
        return [d for d in self.active(at) if d.is_featured][:count]

    def list_discounts(self, criteria: DiscountFilter | None = None, at: datetime | None = None) -> list[Discount]:
        criteria = criteria or DiscountFilter()
        at = as_utc(at) or datetime.now(UTC)

        if criteria.status == "active":
            discounts = self.active(at)
        elif criteria.status == "expired":
            discounts = self.expired(at)
        elif criteria.status == "upcoming":
            discounts = self.upcoming(at)
        else:
            discounts = self.all_discounts()

        if criteria.search:
            needle = criteria.search.strip().lower()
            discounts = [
                d
                for d in discounts
                if needle in d.code.lower()
                or needle in (d.name or "").lower()
                or needle in (d.description or "").lower()
            ]
        if criteria.is_active is not None:
            discounts = [d for d in discounts if bool(d.is_active) == criteria.is_active]
        if criteria.discount_type:
            discounts = [d for d in discounts if d.discount_type == criteria.discount_type]
        if criteria.featured_only:
            discounts = [d for d in discounts if d.is_featured]

        page = max(criteria.page, 1)
        size = max(criteria.page_size, 1)
        start = (page - 1) * size
        return discounts[start : start + size]

    # -------------------------------------------------------------------
    # Usage counter
    # -------------------------------------------------------------------
    def usage_section(self):
        """Critical section shared by counter reads and swaps."""
        return _usage_lock

    def compare_and_swap_usage(self, discount_id, expected_version: int, new_count: int, on_swap=None):
        """Set the usage counter if nobody moved it since ``expected_version`` was read.

        Returns the updated discount, or None when the version no longer
        matches. ``on_swap`` runs inside the same critical section with the
        updated discount, so whatever it persists is visible to the next
        reader of the new version.
        """
        with _usage_lock:
            discount = self.get(str(discount_id))
            if (discount.usage_version or 0) != expected_version:
                return None

            discount._swap_usage_count(new_count)
            self.add(discount)
            if on_swap is not None:
                on_swap(discount)
            return discount
