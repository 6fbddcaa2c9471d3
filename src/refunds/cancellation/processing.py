"""Admin decision on a cancellation request: command and handler."""

from enum import Enum

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import CancellationRequest
from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.errors import InvalidState
from refunds.order.order import Order, OrderStatus
from refunds.templates.cancellation import (
    CancellationApprovedTemplate,
    CancellationRejectedTemplate,
)
from refunds.utils.logging import logger


class CancellationAction(Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


@refunds.command(part_of="CancellationRequest")
class ProcessCancellation:
    request_id = Identifier(required=True)
    action = String(required=True, max_length=20, choices=CancellationAction)
    admin_id = String(required=True, max_length=100)
    admin_comments = String(max_length=1000)
    custom_refund_percentage = Float(min_value=0.0, max_value=100.0)


@refunds.command_handler(part_of=CancellationRequest)
class ProcessCancellationHandler:
    @handle(ProcessCancellation)
    def process_cancellation(self, command):
        action = CancellationAction(command.action)

        repo = current_domain.repository_for(CancellationRequest)
        order_repo = current_domain.repository_for(Order)
        request = repo.find_by_id(command.request_id)
        if request.is_partial:
            raise InvalidState(
                "Partial cancellations are processed through the partial cancellation decision",
                request_id=str(request.id),
            )
        order = order_repo.find_by_id(request.order_id)

        if action == CancellationAction.APPROVED:
            request.approve(
                processed_by=command.admin_id,
                order_total=order.total_amt,
                comments=command.admin_comments,
                custom_refund_percentage=command.custom_refund_percentage,
            )
            order.change_status(
                OrderStatus.CANCELLED,
                reason=f"Cancellation approved: {request.reason}",
                actor=command.admin_id,
            )
            order.mark_refund_processing()
            order_repo.add(order)
        else:
            request.reject(processed_by=command.admin_id, comments=command.admin_comments)

        repo.add(request)

        logger.info(
            "Cancellation request processed",
            request_id=str(request.id),
            order_id=str(order.id),
            action=action.value,
            refund_amount=request.refund_amount,
            processed_by=command.admin_id,
        )

        if action == CancellationAction.APPROVED:
            notify_user(
                request.user_id,
                CancellationApprovedTemplate,
                {
                    "order_code": order.order_code,
                    "refund_amount": request.refund_amount,
                    "refund_percentage": request.admin_response.refund_percentage,
                    "admin_comments": command.admin_comments,
                },
            )
        else:
            notify_user(
                request.user_id,
                CancellationRejectedTemplate,
                {"order_code": order.order_code, "admin_comments": command.admin_comments},
            )
        return request.status
