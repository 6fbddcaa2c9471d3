"""Return domain events: facts about per-item return requests."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from refunds.domain import refunds


@refunds.event(part_of="ReturnRequest")
class ReturnRequested:
    __version__ = 1

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    user_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    expected_refund = Float(required=True)
    requested_at = DateTime(required=True)


@refunds.event(part_of="ReturnRequest")
class ReturnApproved:
    __version__ = 1

    return_id = Identifier(required=True)
    processed_by = String(required=True)
    refund_amount = Float(required=True)
    approved_at = DateTime(required=True)


@refunds.event(part_of="ReturnRequest")
class ReturnRejected:
    __version__ = 1

    return_id = Identifier(required=True)
    processed_by = String(required=True)
    rejected_at = DateTime(required=True)


@refunds.event(part_of="ReturnRequest")
class ReturnRefundStatusUpdated:
    """Refund bookkeeping on a return changed."""

    __version__ = 1

    return_id = Identifier(required=True)
    refund_status = String(required=True)
    refund_amount = Float()
    updated_by = String()
    updated_at = DateTime(required=True)


@refunds.event(part_of="ReturnRequest")
class ReturnReRequested:
    __version__ = 1

    return_id = Identifier(required=True)
    user_id = Identifier(required=True)
    re_requested_at = DateTime(required=True)


@refunds.event(part_of="ReturnRequest")
class ReturnCancelled:
    __version__ = 1

    return_id = Identifier(required=True)
    user_id = Identifier(required=True)
    cancelled_at = DateTime(required=True)
