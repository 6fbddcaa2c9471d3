"""Refund tracking on returns: commands and handlers.

Refund bookkeeping is decoupled from the approval status so admins can
correct it after the fact. Completing a refund twice is a no-op.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import RefundMethod, RefundStatus
from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.returns.return_request import ReturnRequest
from refunds.templates.returns import ReturnRefundCompletedTemplate
from refunds.utils.logging import logger


@refunds.command(part_of="ReturnRequest")
class UpdateReturnRefundStatus:
    return_id = Identifier(required=True)
    refund_status = String(required=True, max_length=20, choices=RefundStatus)
    admin_id = String(required=True, max_length=100)
    refund_id = String(max_length=100)
    refund_method = String(max_length=50, choices=RefundMethod)
    refund_amount = Float(min_value=0.0)
    admin_notes = String(max_length=1000)


@refunds.command(part_of="ReturnRequest")
class ProcessReturnRefund:
    """Complete the refund of an approved return in one step."""

    return_id = Identifier(required=True)
    admin_id = String(required=True, max_length=100)
    refund_id = String(max_length=100)


def _notify_completed(request: ReturnRequest) -> None:
    notify_user(
        request.user_id,
        ReturnRefundCompletedTemplate,
        {
            "item_name": request.item_details.name if request.item_details else None,
            "refund_amount": request.refund_amount,
            "refund_id": request.refund_details.refund_id,
        },
    )


@refunds.command_handler(part_of=ReturnRequest)
class ReturnRefundHandler:
    @handle(UpdateReturnRefundStatus)
    def update_refund_status(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.find_by_id(command.return_id)

        changed = request.update_refund_status(
            command.refund_status,
            actor=command.admin_id,
            refund_id=command.refund_id,
            refund_method=command.refund_method,
            refund_amount=command.refund_amount,
            admin_notes=command.admin_notes,
        )
        if not changed:
            logger.info(
                "Return refund already completed, nothing to do",
                return_id=str(request.id),
                refund_id=request.refund_details.refund_id,
            )
            return request.status

        repo.add(request)
        logger.info(
            "Return refund status updated",
            return_id=str(request.id),
            refund_status=command.refund_status,
            status=request.status,
            updated_by=command.admin_id,
        )
        if RefundStatus(command.refund_status) == RefundStatus.COMPLETED:
            _notify_completed(request)
        return request.status

    @handle(ProcessReturnRefund)
    def process_return_refund(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.find_by_id(command.return_id)
        request.process_refund(actor=command.admin_id, refund_id=command.refund_id)
        repo.add(request)

        logger.info(
            "Return refund processed",
            return_id=str(request.id),
            refund_amount=request.refund_amount,
            processed_by=command.admin_id,
        )
        _notify_completed(request)
        return request.status
