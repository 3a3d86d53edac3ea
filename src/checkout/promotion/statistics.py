"""Redemption statistics for a discount, computed from committed usages."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from checkout.promotion.discount import Discount, as_utc
from checkout.promotion.usage import DiscountUsage
from checkout.shared.money import ZERO, round_money, to_decimal


@dataclass
class DailyUsage:
    day: date
    count: int
    total: Decimal


@dataclass
class DiscountStatistics:
    discount_id: str
    code: str
    total_usage_count: int = 0
    unique_identity_count: int = 0
    total_discount_amount: Decimal = ZERO
    average_discount_amount: Decimal = ZERO
    first_used_at: datetime | None = None
    last_used_at: datetime | None = None
    daily_usage: list[DailyUsage] = field(default_factory=list)


def discount_statistics(discount_id) -> DiscountStatistics:
    discount = current_domain.repository_for(Discount).get(str(discount_id))
    usages = sorted(
        current_domain.repository_for(DiscountUsage).for_discount(discount_id),
        key=lambda u: as_utc(u.used_at),
    )

    stats = DiscountStatistics(discount_id=str(discount.id), code=discount.code)
    if not usages:
        return stats

    total = sum((to_decimal(u.discount_amount) for u in usages), ZERO)
    by_day: dict[date, DailyUsage] = {}
    for usage in usages:
        day = as_utc(usage.used_at).date()
        bucket = by_day.setdefault(day, DailyUsage(day=day, count=0, total=ZERO))
        bucket.count += 1
        bucket.total += to_decimal(usage.discount_amount)

    stats.total_usage_count = len(usages)
    stats.unique_identity_count = len({u.identity for u in usages})
    stats.total_discount_amount = round_money(total)
    stats.average_discount_amount = round_money(total / len(usages))
    stats.first_used_at = as_utc(usages[0].used_at)
    stats.last_used_at = as_utc(usages[-1].used_at)
    stats.daily_usage = [by_day[day] for day in sorted(by_day)]
    return stats
