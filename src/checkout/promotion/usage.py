"""Usage records — committed discount usages and in-flight reservations.

``DiscountUsage`` is append-only: one row per settled order that redeemed a
discount. ``UsageReservation`` is the persisted form of a ledger token; while
Active it holds one unit of the discount's counter and counts toward the
identity's per-customer cap.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout
from checkout.promotion.events import DiscountUsageRecorded, UsageReleased, UsageReserved


class ReservationStatus(Enum):
    ACTIVE = "Active"
    COMMITTED = "Committed"
    RELEASED = "Released"


@checkout.aggregate
class DiscountUsage:
    discount_id = Identifier(required=True)
    identity = String(required=True, max_length=255)
    customer_email = String(max_length=255)
    session_id = String(max_length=255)
    order_id = Identifier(required=True)
    reservation_id = Identifier()
    discount_amount = Float(required=True, min_value=0.0)
    used_at = DateTime(required=True)

    @classmethod
    def record(cls, discount_id, identity, order_id, discount_amount, reservation_id=None, customer_email=None, session_id=None):
        usage = cls(
            discount_id=str(discount_id),
            identity=identity,
            customer_email=customer_email,
            session_id=session_id,
            order_id=str(order_id),
            reservation_id=str(reservation_id) if reservation_id else None,
            discount_amount=discount_amount,
            used_at=datetime.now(UTC),
        )
        usage.raise_(
            DiscountUsageRecorded(
                usage_id=str(usage.id),
                discount_id=usage.discount_id,
                identity=usage.identity,
                order_id=usage.order_id,
                discount_amount=usage.discount_amount,
                used_at=usage.used_at,
            )
        )
        return usage


@checkout.aggregate
class UsageReservation:
    discount_id = Identifier(required=True)
    identity = String(required=True, max_length=255)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    settled_at = DateTime()
    order_id = Identifier()

    @invariant.post
    def order_only_on_commit(self):
        if self.order_id and self.status != ReservationStatus.COMMITTED.value:
            raise ValidationError({"order_id": ["Only committed reservations reference an order"]})

    @classmethod
    def open(cls, discount_id, identity, usage_count):
        reservation = cls(
            discount_id=str(discount_id),
            identity=identity,
            status=ReservationStatus.ACTIVE.value,
            reserved_at=datetime.now(UTC),
        )
        reservation.raise_(
            UsageReserved(
                reservation_id=str(reservation.id),
                discount_id=reservation.discount_id,
                identity=identity,
                usage_count=usage_count,
                reserved_at=reservation.reserved_at,
            )
        )
        return reservation

    @property
    def is_open(self) -> bool:
        return self.status == ReservationStatus.ACTIVE.value

    def commit(self, order_id):
        if not self.is_open:
            raise ValidationError({"status": [f"Reservation is {self.status}, cannot commit"]})
        self.status = ReservationStatus.COMMITTED.value
        self.order_id = str(order_id)
        self.settled_at = datetime.now(UTC)

    def release(self):
        if not self.is_open:
            raise ValidationError({"status": [f"Reservation is {self.status}, cannot release"]})
        now = datetime.now(UTC)
        self.status = ReservationStatus.RELEASED.value
        self.settled_at = now
        self.raise_(
            UsageReleased(
                reservation_id=str(self.id),
                discount_id=str(self.discount_id),
                identity=self.identity,
                released_at=now,
            )
        )


@checkout.repository(part_of=DiscountUsage)
class DiscountUsageRepository:
    def for_discount(self, discount_id) -> list[DiscountUsage]:
        return self._dao.query.filter(discount_id=str(discount_id)).all().items

    def unreserved_count_for(self, discount_id, identity: str) -> int:
        """Usages recorded without a ledger reservation behind them."""
        usages = self._dao.query.filter(discount_id=str(discount_id), identity=identity).all().items
        return sum(1 for usage in usages if not usage.reservation_id)

    def has_usage(self, discount_id) -> bool:
        return self._dao.query.filter(discount_id=str(discount_id)).all().total > 0


@checkout.repository(part_of=UsageReservation)
class UsageReservationRepository:
    def held_count_for(self, discount_id, identity: str) -> int:
        """Reservations that were not given back, in flight or committed.

        A commit turns one reservation from Active to Committed, so the count
        is the same on either side of it.
        """
        reservations = self._dao.query.filter(discount_id=str(discount_id), identity=identity).all().items
        return sum(1 for reservation in reservations if reservation.status != ReservationStatus.RELEASED.value)
