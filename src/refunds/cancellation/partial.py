"""Partial cancellation: a customer cancels some lines of an order.

The request goes through the same gates as a whole-order cancellation (order
ownership, cancellable status, online payment, policy reasons). Approval
cancels the named lines on the order and refunds the policy percentage of
each line's total; the remaining lines continue to be fulfilled.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import CancellationRequest
from refunds.cancellation.processing import CancellationAction
from refunds.cancellation.request import assert_order_cancellable
from refunds.channel.dispatch import notify_user
from refunds.domain import refunds
from refunds.errors import Conflict, InvalidState
from refunds.money import percentage_of, total
from refunds.order.order import Order
from refunds.policy.repository import get_active_policy
from refunds.templates.cancellation import (
    PartialCancellationApprovedTemplate,
    PartialCancellationRejectedTemplate,
    PartialCancellationRequestedTemplate,
)
from refunds.utils.logging import logger


@refunds.command(part_of="CancellationRequest")
class RequestPartialCancellation:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON-encoded list of order line ids
    reason = String(required=True, max_length=100)
    additional_reason = String(max_length=500)


@refunds.command(part_of="CancellationRequest")
class ProcessPartialCancellation:
    request_id = Identifier(required=True)
    action = String(required=True, max_length=20, choices=CancellationAction)
    admin_id = String(required=True, max_length=100)
    admin_comments = String(max_length=1000)
    custom_refund_percentage = Float(min_value=0.0, max_value=100.0)


def _selected_lines(order: Order, raw_item_ids: str) -> list:
    try:
        item_ids = json.loads(raw_item_ids)
    except json.JSONDecodeError:
        raise ValidationError({"item_ids": ["Items must be a JSON list of order line ids"]}) from None
    if not isinstance(item_ids, list) or not item_ids:
        raise ValidationError({"item_ids": ["At least one order line must be selected"]})

    item_ids = [str(item_id) for item_id in item_ids]
    if len(set(item_ids)) != len(item_ids):
        raise ValidationError({"item_ids": ["An order line can only be selected once"]})

    lines = []
    for item_id in item_ids:
        item = order.find_item(item_id)
        if item is None:
            raise ValidationError({"item_ids": [f"Item {item_id} not found in order"]})
        if not item.is_active:
            raise ValidationError({"item_ids": [f"Item {item_id} has already been cancelled"]})
        lines.append(item)
    return lines


def _line_context(request: CancellationRequest) -> list[dict]:
    return [
        {"name": line.name, "size": line.size, "quantity": line.quantity, "item_total": line.item_total}
        for line in request.lines
    ]


@refunds.command_handler(part_of=CancellationRequest)
class PartialCancellationHandler:
    @handle(RequestPartialCancellation)
    def request_partial_cancellation(self, command):
        order = current_domain.repository_for(Order).get_owned(command.order_id, command.user_id)
        assert_order_cancellable(order)
        lines = _selected_lines(order, command.item_ids)

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
            items=lines,
        )
        repo.save_new(request)

        expected_refund = total(percentage_of(line.item_total, refund_percentage) for line in request.lines)
        logger.info(
            "Partial cancellation requested",
            request_id=str(request.id),
            order_id=str(order.id),
            user_id=command.user_id,
            item_ids=request.item_ids,
            refund_percentage=refund_percentage,
            expected_refund=expected_refund,
        )
        notify_user(
            command.user_id,
            PartialCancellationRequestedTemplate,
            {
                "order_code": order.order_code,
                "reason": command.reason,
                "items": _line_context(request),
                "total_item_value": request.total_item_value,
                "refund_percentage": refund_percentage,
                "expected_refund": expected_refund,
                "response_time_hours": policy.response_time_hours,
            },
        )
        return str(request.id)

    @handle(ProcessPartialCancellation)
    def process_partial_cancellation(self, command):
        action = CancellationAction(command.action)

        repo = current_domain.repository_for(CancellationRequest)
        order_repo = current_domain.repository_for(Order)
        request = repo.find_by_id(command.request_id)
        if not request.is_partial:
            raise InvalidState(
                "Whole-order cancellations are processed through the cancellation decision",
                request_id=str(request.id),
            )
        order = order_repo.find_by_id(request.order_id)

        if action == CancellationAction.APPROVED:
            request.approve(
                processed_by=command.admin_id,
                order_total=request.total_item_value,
                comments=command.admin_comments,
                custom_refund_percentage=command.custom_refund_percentage,
            )
            order.cancel_lines(
                request.item_ids,
                actor=command.admin_id,
                reason=f"Cancellation approved: {request.reason}",
            )
            order_repo.add(order)
        else:
            request.reject(processed_by=command.admin_id, comments=command.admin_comments)

        repo.add(request)

        logger.info(
            "Partial cancellation processed",
            request_id=str(request.id),
            order_id=str(order.id),
            action=action.value,
            item_ids=request.item_ids,
            refund_amount=request.refund_amount,
            order_status=order.status,
            processed_by=command.admin_id,
        )

        if action == CancellationAction.APPROVED:
            notify_user(
                request.user_id,
                PartialCancellationApprovedTemplate,
                {
                    "order_code": order.order_code,
                    "items": _line_context(request),
                    "refund_amount": request.refund_amount,
                    "refund_percentage": request.admin_response.refund_percentage,
                    "admin_comments": command.admin_comments,
                },
            )
        else:
            notify_user(
                request.user_id,
                PartialCancellationRejectedTemplate,
                {"order_code": order.order_code, "admin_comments": command.admin_comments},
            )
        return request.status
