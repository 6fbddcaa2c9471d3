"""Return request creation: one command for a batch of order lines.

Each line is checked on its own: unknown lines, lines with a return already
in flight, and quantities above what is still available are skipped. An
expired window fails the whole batch. If nothing usable remains the command
fails with ``NoValidItems``.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.errors import Expired, NoValidItems
from refunds.money import total
from refunds.order.order import Order
from refunds.policy.repository import get_active_policy
from refunds.returns.eligibility import (
    RETURNABLE_ORDER_STATUSES,
    available_quantity,
    is_return_eligible,
    is_returnable_order,
    unit_refund_amount,
)
from refunds.returns.return_request import ReturnReason, ReturnRequest, in_flight_key_for
from refunds.templates.returns import ReturnRequestedTemplate
from refunds.utils.logging import logger

_REASONS = {r.value for r in ReturnReason}


@refunds.command(part_of="ReturnRequest")
class CreateReturnRequests:
    """Request returns for one or more delivered order lines."""

    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {order_item_id, reason, additional_comments?, requested_quantity?}


def _validate_lines(lines) -> None:
    if not isinstance(lines, list) or not lines:
        raise ValidationError({"items": ["At least one item is required"]})
    for position, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError({"items": [f"Item {position}: expected an object"]})
        if not line.get("order_item_id") or not line.get("reason"):
            raise ValidationError({"items": [f"Item {position}: order_item_id and reason are required"]})
        if line["reason"] not in _REASONS:
            raise ValidationError({"items": [f"Item {position}: unknown return reason {line['reason']}"]})
        quantity = line.get("requested_quantity")
        if quantity is not None and (isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1):
            raise ValidationError(
                {"items": [f"Item {position}: requested_quantity must be a whole number of at least 1"]}
            )


@refunds.command_handler(part_of=ReturnRequest)
class CreateReturnRequestsHandler:
    @handle(CreateReturnRequests)
    def create_return_requests(self, command):
        try:
            lines = json.loads(command.items) if isinstance(command.items, str) else command.items
        except json.JSONDecodeError:
            raise ValidationError({"items": ["Items must be a JSON list"]}) from None
        _validate_lines(lines)

        policy = get_active_policy()
        candidates = current_domain.repository_for(Order).find_by_user_and_status(
            command.user_id, statuses=[s.value for s in RETURNABLE_ORDER_STATUSES]
        )
        orders = [o for o in candidates if is_returnable_order(o)]
        line_index = {str(item.id): (order, item) for order in orders for item in order.active_items}

        # Resolve everything first so an expired window fails the batch before any write
        resolved = []
        skipped = []
        for line in lines:
            found = line_index.get(str(line["order_item_id"]))
            if found is None:
                skipped.append({"order_item_id": line["order_item_id"], "reason": "Item not found"})
                continue
            order, _ = found
            if not is_return_eligible(order.delivered_at(), policy.return_window_days):
                raise Expired(
                    f"Return window of {policy.return_window_days} days has expired for order {order.order_code}",
                    order_id=str(order.id),
                )
            resolved.append((line, *found))

        repo = current_domain.repository_for(ReturnRequest)
        created = []
        claimed = set()
        for line, order, item in resolved:
            key = in_flight_key_for(order.id, item.id)
            if key in claimed or repo.find_in_flight(order.id, item.id) is not None:
                skipped.append({"order_item_id": str(item.id), "reason": "Return already in progress"})
                continue

            quantity = line.get("requested_quantity")
            if quantity is None:
                quantity = item.quantity
            available = available_quantity(order, item)
            if quantity > available:
                skipped.append({"order_item_id": str(item.id), "reason": "Requested quantity not available"})
                continue

            request = ReturnRequest.open(
                order=order,
                item=item,
                user_id=command.user_id,
                reason=line["reason"],
                quantity=quantity,
                refund_per_unit=unit_refund_amount(item, policy.return_refund_percentage),
                return_window_days=policy.return_window_days,
                additional_comments=line.get("additional_comments"),
            )
            repo.save_guarded(request)
            claimed.add(key)
            created.append(request)

        if not created:
            raise NoValidItems("No valid items found for return", skipped=skipped)

        total_refund = total(r.expected_refund for r in created)
        logger.info(
            "Return requests created",
            user_id=command.user_id,
            created=len(created),
            skipped=len(skipped),
            total_refund=total_refund,
        )
        notify_user(
            command.user_id,
            ReturnRequestedTemplate,
            {"request_count": len(created), "total_refund": total_refund},
        )
        return {
            "return_ids": [str(r.id) for r in created],
            "total_refund_amount": total_refund,
            "skipped": skipped,
        }
