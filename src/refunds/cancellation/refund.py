"""Refund completion for approved cancellations: command and handler.

Completion is guarded against double refunds: a request whose refund is
already COMPLETED is refused with ``InvalidState``. The confirmation
notification (with the generated refund document) is best effort.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import CancellationRequest
from refunds.channel.dispatch import generate_document, notify_user
from refunds.channel.document_port import DocumentKind
from refunds.domain import refunds
from refunds.money import subtract
from refunds.order.order import Order, OrderStatus
from refunds.templates.cancellation import RefundCompletedTemplate
from refunds.utils.logging import logger


@refunds.command(part_of="CancellationRequest")
class CompleteRefund:
    request_id = Identifier(required=True)
    admin_id = String(required=True, max_length=100)
    transaction_id = String(max_length=100)
    admin_comments = String(max_length=1000)


@refunds.command_handler(part_of=CancellationRequest)
class CompleteRefundHandler:
    @handle(CompleteRefund)
    def complete_refund(self, command):
        repo = current_domain.repository_for(CancellationRequest)
        order_repo = current_domain.repository_for(Order)
        request = repo.find_by_id(command.request_id)
        order = order_repo.find_by_id(request.order_id)

        refund_id = request.complete_refund(
            transaction_id=command.transaction_id,
            comments=command.admin_comments,
        )
        # A partial refund leaves the still-open order's payment untouched
        if not request.is_partial or OrderStatus(order.status) == OrderStatus.CANCELLED:
            order.record_refund(
                refund_id=refund_id,
                refund_amount=request.refund_amount,
                refund_percentage=request.admin_response.refund_percentage,
            )
            order_repo.add(order)
        repo.add(request)

        logger.info(
            "Cancellation refund completed",
            request_id=str(request.id),
            order_id=str(order.id),
            refund_id=refund_id,
            refund_amount=request.refund_amount,
            partial=request.is_partial,
            completed_by=command.admin_id,
        )

        if request.is_partial:
            retained_amount = subtract(request.total_item_value, request.refund_amount)
        else:
            retained_amount = order.refund_details.retained_amount
        context = {
            "order_code": order.order_code,
            "refund_id": refund_id,
            "refund_amount": request.refund_amount,
            "retained_amount": retained_amount,
        }
        document = generate_document(DocumentKind.REFUND.value, {**context, "order_id": str(order.id)})
        notify_user(
            request.user_id,
            RefundCompletedTemplate,
            context,
            attachments=[document] if document else None,
        )
        return refund_id
