"""Usage ledger — reserve, commit and release units of a discount's usage.

A checkout that redeems a discount first *reserves* one unit: the global
counter is incremented through the repository's version-checked swap and an
Active ``UsageReservation`` is stored in the same critical section. The
reservation is later either *committed* (a ``DiscountUsage`` row is appended,
inside the settlement's unit of work) or *released* (the counter is given
back). Reserve and release persist immediately and must not run inside an
open unit of work.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from checkout.config import get_max_reservation_attempts
from checkout.promotion.discount import Discount
from checkout.promotion.repository import DiscountRepository
from checkout.promotion.usage import DiscountUsage, UsageReservation
from checkout.settlement.errors import UsageRaceLost

logger = structlog.get_logger(__name__)


class RaceReason:
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    CUSTOMER_LIMIT_REACHED = "customer_limit_reached"
    UNAVAILABLE = "discount_unavailable"
    CONTENDED = "contended"


@dataclass(frozen=True)
class UsageToken:
    reservation_id: str
    discount_id: str
    identity: str


class UsageLedger:
    def __init__(self, max_attempts: int | None = None):
        self.max_attempts = max_attempts or get_max_reservation_attempts()

    @property
    def discounts(self) -> DiscountRepository:
        return current_domain.repository_for(Discount)

    def usage_count(self, discount_id, identity: str) -> int:
        """Reservations not released (Active or Committed) plus usages recorded without one."""
        with self.discounts.usage_section():
            held = current_domain.repository_for(UsageReservation).held_count_for(discount_id, identity)
            unreserved = current_domain.repository_for(DiscountUsage).unreserved_count_for(discount_id, identity)
        return held + unreserved

    def reserve(self, discount: Discount, identity: str) -> UsageToken:
        discount_id = str(discount.id)
        reservations = current_domain.repository_for(UsageReservation)
        opened = {}

        def persist_reservation(updated):
            reservation = UsageReservation.open(discount_id, identity, updated.current_usage_count)
            reservations.add(reservation)
            opened["reservation"] = reservation

        for attempt in range(1, self.max_attempts + 1):
            # Checks and swap share one section; a version conflict means
            # another process moved the counter.
            with self.discounts.usage_section():
                current = self.discounts.get(discount_id)
                if current.is_usage_limit_reached:
                    raise UsageRaceLost(RaceReason.USAGE_LIMIT_REACHED, discount_id)
                if not current.is_currently_active():
                    raise UsageRaceLost(RaceReason.UNAVAILABLE, discount_id)
                if current.max_usage_per_customer is not None:
                    if self.usage_count(discount_id, identity) >= current.max_usage_per_customer:
                        raise UsageRaceLost(RaceReason.CUSTOMER_LIMIT_REACHED, discount_id)

                swapped = self.discounts.compare_and_swap_usage(
                    discount_id,
                    expected_version=current.usage_version or 0,
                    new_count=(current.current_usage_count or 0) + 1,
                    on_swap=persist_reservation,
                )

            if swapped is not None:
                reservation = opened["reservation"]
                logger.info(
                    "discount_usage_reserved",
                    discount_id=discount_id,
                    identity=identity,
                    reservation_id=str(reservation.id),
                    usage_count=swapped.current_usage_count,
                    attempt=attempt,
                )
                return UsageToken(
                    reservation_id=str(reservation.id),
                    discount_id=discount_id,
                    identity=identity,
                )

            logger.debug("discount_usage_cas_conflict", discount_id=discount_id, attempt=attempt)

        logger.warning("discount_usage_contended", discount_id=discount_id, attempts=self.max_attempts)
        raise UsageRaceLost(RaceReason.CONTENDED, discount_id)

    def commit(self, token: UsageToken, order_id, amount, customer_email=None, session_id=None) -> DiscountUsage:
        """Turn the reservation into a usage row; joins the caller's unit of work."""
        reservations = current_domain.repository_for(UsageReservation)
        reservation = reservations.get(token.reservation_id)
        reservation.commit(order_id)
        reservations.add(reservation)

        usage = DiscountUsage.record(
            discount_id=token.discount_id,
            identity=token.identity,
            order_id=order_id,
            discount_amount=float(amount),
            reservation_id=token.reservation_id,
            customer_email=customer_email,
            session_id=session_id,
        )
        current_domain.repository_for(DiscountUsage).add(usage)

        logger.info(
            "discount_usage_committed",
            discount_id=token.discount_id,
            identity=token.identity,
            order_id=str(order_id),
            discount_amount=float(amount),
        )
        return usage

    def release(self, token: UsageToken) -> None:
        """Give back the reserved unit; the reservation must still be Active.

        Raises ``UsageRaceLost(contended)`` when the counter could not be
        swapped within the attempt budget; the reservation then stays Active.
        """
        reservations = current_domain.repository_for(UsageReservation)
        reservation = reservations.get(token.reservation_id)
        reservation.release()

        def persist_release(_updated):
            reservations.add(reservation)

        swapped = None
        for attempt in range(1, self.max_attempts + 1):
            with self.discounts.usage_section():
                current = self.discounts.get(token.discount_id)
                swapped = self.discounts.compare_and_swap_usage(
                    token.discount_id,
                    expected_version=current.usage_version or 0,
                    new_count=max((current.current_usage_count or 0) - 1, 0),
                    on_swap=persist_release,
                )
            if swapped is not None:
                break
            logger.debug("discount_usage_cas_conflict", discount_id=token.discount_id, attempt=attempt)

        if swapped is None:
            logger.warning(
                "discount_usage_release_contended",
                discount_id=token.discount_id,
                reservation_id=token.reservation_id,
                attempts=self.max_attempts,
            )
            raise UsageRaceLost(RaceReason.CONTENDED, token.discount_id)

        logger.info(
            "discount_usage_released",
            discount_id=token.discount_id,
            identity=token.identity,
            reservation_id=token.reservation_id,
            usage_count=swapped.current_usage_count,
        )
