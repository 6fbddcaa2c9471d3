"""Admin review of return requests: commands and handlers."""

from enum import Enum

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.returns.return_request import ReturnRequest
from refunds.templates.returns import ReturnDecisionTemplate
from refunds.utils.logging import logger


class ReturnAction(Enum):
    APPROVE = "approve"
    REJECT = "reject"


@refunds.command(part_of="ReturnRequest")
class MarkReturnUnderReview:
    return_id = Identifier(required=True)
    admin_id = String(required=True, max_length=100)


@refunds.command(part_of="ReturnRequest")
class ProcessReturn:
    """Approve or reject a REQUESTED / UNDER_REVIEW return."""

    return_id = Identifier(required=True)
    action = String(required=True, max_length=20, choices=ReturnAction)
    admin_id = String(required=True, max_length=100)
    admin_comments = String(max_length=1000)
    inspection_notes = String(max_length=1000)
    custom_refund_amount = Float(min_value=0.0)


@refunds.command_handler(part_of=ReturnRequest)
class ReturnReviewHandler:
    @handle(MarkReturnUnderReview)
    def mark_under_review(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.find_by_id(command.return_id)
        request.mark_under_review(actor=command.admin_id)
        repo.add(request)
        logger.info("Return under review", return_id=str(request.id), admin_id=command.admin_id)
        return request.status

    @handle(ProcessReturn)
    def process_return(self, command):
        action = ReturnAction(command.action)
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.find_by_id(command.return_id)

        if action == ReturnAction.APPROVE:
            request.approve(
                processed_by=command.admin_id,
                comments=command.admin_comments,
                inspection_notes=command.inspection_notes,
                custom_refund_amount=command.custom_refund_amount,
            )
        else:
            request.reject(
                processed_by=command.admin_id,
                comments=command.admin_comments,
                inspection_notes=command.inspection_notes,
            )
        repo.add(request)

        logger.info(
            "Return request processed",
            return_id=str(request.id),
            action=action.value,
            refund_amount=request.refund_amount if action == ReturnAction.APPROVE else 0.0,
            processed_by=command.admin_id,
        )
        notify_user(
            request.user_id,
            ReturnDecisionTemplate,
            {
                "approved": action == ReturnAction.APPROVE,
                "item_name": request.item_details.name if request.item_details else None,
                "refund_amount": request.refund_amount,
                "admin_comments": command.admin_comments,
            },
        )
        return request.status
