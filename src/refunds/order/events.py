"""Order domain events: facts about order lifecycle changes."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from refunds.domain import refunds


@refunds.event(part_of="Order")
class OrderRecorded:
    """An order placed at checkout was recorded for lifecycle tracking."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_code = String(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of line item dicts
    item_count = Integer(required=True)
    total_amt = Float(required=True)
    payment_method = String()
    payment_status = String()
    recorded_at = DateTime(required=True)


@refunds.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status (or re-confirmed its current one)."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    updated_by = String()
    changed_at = DateTime(required=True)


@refunds.event(part_of="Order")
class OrderPaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String()
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@refunds.event(part_of="Order")
class OrderRefundRecorded:
    """A refund against the whole order completed."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = String(required=True)
    refund_amount = Float(required=True)
    refund_percentage = Float()
    retained_amount = Float(required=True)
    refunded_at = DateTime(required=True)


@refunds.event(part_of="Order")
class OrderLinesCancelled:
    """Some lines of the order were cancelled; the rest stay active."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON list
    remaining_total = Float(required=True)
    cancelled_by = String()
    cancelled_at = DateTime(required=True)
