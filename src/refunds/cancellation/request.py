"""Cancellation request: command and handler for a customer's cancel-order ask."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import CancellationRequest
from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.errors import Conflict, InvalidState
from refunds.money import percentage_of
from refunds.order.order import Order, OrderStatus, can_transition
from refunds.policy.repository import get_active_policy
from refunds.templates.cancellation import CancellationRequestedTemplate
from refunds.utils.logging import logger

# Shipped is the out-for-delivery stage of the order state machine
_NON_CANCELLABLE_STATUSES = {
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
}


@refunds.command(part_of="CancellationRequest")
class RequestCancellation:
    """A customer asks to cancel an entire, paid-online order."""

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True, max_length=100)
    additional_reason = String(max_length=500)


def assert_order_cancellable(order: Order) -> None:
    status = OrderStatus(order.status)
    if status in _NON_CANCELLABLE_STATUSES or not can_transition(status, OrderStatus.CANCELLED):
        raise InvalidState(
            f"Order cannot be cancelled in {status.value} status",
            order_id=str(order.id),
            status=status.value,
        )
    if not order.is_paid_online():
        raise InvalidState(
            "Only orders paid online can be cancelled for a refund",
            order_id=str(order.id),
            payment_method=order.payment_method,
            payment_status=order.payment_status,
        )


@refunds.command_handler(part_of=CancellationRequest)
class RequestCancellationHandler:
    @handle(RequestCancellation)
    def request_cancellation(self, command):
        order = current_domain.repository_for(Order).get_owned(command.order_id, command.user_id)
        assert_order_cancellable(order)

        policy = get_active_policy()
        if policy.reasons and command.reason not in policy.reasons:
            raise ValidationError({"reason": [f"'{command.reason}' is not an accepted cancellation reason"]})
        if not policy.can_cancel(order.status):
            raise InvalidState(
                f"Cancellation is not allowed for orders in {order.status} status",
                order_id=str(order.id),
            )

        repo = current_domain.repository_for(CancellationRequest)
        if repo.find_active_for_order(order.id) is not None:
            raise Conflict(
                "An active cancellation request already exists for this order",
                order_id=str(order.id),
            )

        refund_percentage = policy.resolve_refund_percentage(order)
        request = CancellationRequest.submit(
            order=order,
            user_id=command.user_id,
            reason=command.reason,
            refund_percentage=refund_percentage,
            additional_reason=command.additional_reason,
        )
        repo.save_new(request)

        expected_refund = percentage_of(order.total_amt, refund_percentage)
        logger.info(
            "Cancellation requested",
            request_id=str(request.id),
            order_id=str(order.id),
            user_id=command.user_id,
            refund_percentage=refund_percentage,
            expected_refund=expected_refund,
        )
        notify_user(
            command.user_id,
            CancellationRequestedTemplate,
            {
                "order_code": order.order_code,
                "reason": command.reason,
                "total_amt": order.total_amt,
                "refund_percentage": refund_percentage,
                "expected_refund": expected_refund,
                "response_time_hours": policy.response_time_hours,
            },
        )
        return str(request.id)
