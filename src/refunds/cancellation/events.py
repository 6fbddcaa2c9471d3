"""Cancellation domain events: facts about order and line cancellation requests."""

from protean.fields import DateTime, Float, Identifier, String

from refunds.domain import refunds


@refunds.event(part_of="CancellationRequest")
class CancellationRequested:
    """A customer asked to cancel an order or some of its lines."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True)
    refund_percentage = Float(required=True)
    cancellation_type = String(default="Full_Order")
    requested_at = DateTime(required=True)


@refunds.event(part_of="CancellationRequest")
class CancellationApproved:
    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    processed_by = String(required=True)
    refund_percentage = Float(required=True)
    refund_amount = Float(required=True)
    approved_at = DateTime(required=True)


@refunds.event(part_of="CancellationRequest")
class CancellationRejected:
    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    processed_by = String(required=True)
    comments = String()
    rejected_at = DateTime(required=True)


@refunds.event(part_of="CancellationRequest")
class CancellationRefundCompleted:
    """Money for an approved cancellation has been returned to the customer."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_id = String(required=True)
    refund_amount = Float(required=True)
    completed_at = DateTime(required=True)
