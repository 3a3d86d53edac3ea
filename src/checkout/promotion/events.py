"""Domain events for the Discount aggregate and its usage records."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Discount")
class DiscountCreated:
    """A new discount code was defined."""

    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    scope = String(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    created_by = String()


@checkout.event(part_of="Discount")
class DiscountUpdated:
    """Terms of a discount (value, window, limits) were changed."""

    __version__ = 1

    discount_id = Identifier(required=True)
    code = String(required=True)
    updated_at = DateTime(required=True)


@checkout.event(part_of="Discount")
class DiscountActivated:
    __version__ = 1

    discount_id = Identifier(required=True)
    activated_at = DateTime(required=True)


@checkout.event(part_of="Discount")
class DiscountDeactivated:
    __version__ = 1

    discount_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@checkout.event(part_of="Discount")
class DiscountScopeChanged:
    """Products or categories were added to or removed from a discount's target set."""

    __version__ = 1

    discount_id = Identifier(required=True)
    scope = String(required=True)
    target_ids = Text(required=True)  # JSON array of the resulting target set


@checkout.event(part_of="DiscountUsage")
class DiscountUsageRecorded:
    """A reserved usage was committed against a placed order."""

    __version__ = 1

    usage_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    identity = String(required=True)
    order_id = Identifier(required=True)
    discount_amount = Float(required=True)
    used_at = DateTime(required=True)


@checkout.event(part_of="UsageReservation")
class UsageReserved:
    __version__ = 1

    reservation_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    identity = String(required=True)
    usage_count = Integer(required=True)
    reserved_at = DateTime(required=True)


@checkout.event(part_of="UsageReservation")
class UsageReleased:
    __version__ = 1

    reservation_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    identity = String(required=True)
    released_at = DateTime(required=True)
