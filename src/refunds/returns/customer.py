"""Customer actions on their own returns: re-request and cancel."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from refunds.domain import refunds
from refunds.errors import Conflict, NotFound
from refunds.order.order import Order
from refunds.policy.repository import get_active_policy
from refunds.returns.eligibility import available_quantity
from refunds.returns.return_request import ReturnRequest, ReturnStatus
from refunds.utils.logging import logger


@refunds.command(part_of="ReturnRequest")
class ReRequestReturn:
    return_id = Identifier(required=True)
    user_id = Identifier(required=True)


@refunds.command(part_of="ReturnRequest")
class CancelReturnRequest:
    return_id = Identifier(required=True)
    user_id = Identifier(required=True)


@refunds.command_handler(part_of=ReturnRequest)
class CustomerReturnHandler:
    @handle(ReRequestReturn)
    def re_request_return(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.get_owned(command.return_id, command.user_id)
        if ReturnStatus(request.status) != ReturnStatus.REJECTED:
            raise NotFound("No rejected return request found", return_id=command.return_id)

        policy = get_active_policy()
        request.re_request(command.user_id, cooldown_hours=policy.re_request_cooldown_hours)

        if repo.find_in_flight(request.order_id, request.item_id) is not None:
            raise Conflict(
                "Another return for this item is already in progress",
                return_id=str(request.id),
            )
        order = current_domain.repository_for(Order).find_by_id(request.order_id)
        item = order.find_item(request.item_id)
        if item is None or request.quantity > available_quantity(order, item, exclude_return_id=request.id):
            raise Conflict(
                "Requested quantity is no longer available for return",
                return_id=str(request.id),
            )

        repo.save_guarded(request)
        logger.info("Return re-requested", return_id=str(request.id), user_id=command.user_id)
        return request.status

    @handle(CancelReturnRequest)
    def cancel_return_request(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        request = repo.get_owned(command.return_id, command.user_id)
        request.cancel(command.user_id)
        repo.add(request)
        logger.info("Return request cancelled", return_id=str(request.id), user_id=command.user_id)
        return request.status
