"""Order recording: ingest an order placed at checkout."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from refunds.domain import refunds
from refunds.order.order import Order, PaymentStatus
from refunds.utils.logging import logger


@refunds.command(part_of="Order")
class RecordOrder:
    """Record a checked-out order so its lifecycle can be managed here."""

    order_code = String(required=True, max_length=50)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of line item dicts
    total_amt = Float(required=True, min_value=0.0)
    sub_total_amt = Float(min_value=0.0)
    payment_method = String(max_length=50)
    payment_status = String(max_length=50, default=PaymentStatus.PENDING.value)
    order_date = DateTime()
    estimated_delivery_date = DateTime()


@refunds.command_handler(part_of=Order)
class RecordOrderHandler:
    @handle(RecordOrder)
    def record_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one line item"]})

        repo = current_domain.repository_for(Order)
        if repo.find_by_code(command.order_code) is not None:
            raise ValidationError({"order_code": [f"Order {command.order_code} is already recorded"]})

        order = Order.record(
            order_code=command.order_code,
            user_id=command.user_id,
            items_data=items_data,
            total_amt=command.total_amt,
            sub_total_amt=command.sub_total_amt,
            payment_method=command.payment_method,
            payment_status=command.payment_status,
            order_date=command.order_date,
            estimated_delivery_date=command.estimated_delivery_date,
        )
        repo.add(order)
        logger.info(
            "Order recorded",
            order_id=str(order.id),
            order_code=order.order_code,
            item_count=len(items_data),
        )
        return str(order.id)
