"""Admin status changes: command and handler around the order state machine."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from refunds.domain import refunds
from refunds.order.order import Order, OrderStatus
from refunds.utils.logging import logger


@refunds.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    reason = String(max_length=500)
    updated_by = String(max_length=100)


@refunds.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        try:
            target = OrderStatus(command.status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status {command.status}"]}) from None

        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        previous = order.status
        order.change_status(target, reason=command.reason, actor=command.updated_by)
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
            updated_by=command.updated_by,
        )
        return order.status
