"""Return eligibility: the return window and per-line quantity accounting.

The window (``return_window_days`` on the active policy) is counted from the
order's actual delivery date. A line's available quantity is its purchased
quantity minus every return on it that is neither REJECTED nor CANCELLED.
"""

from collections import defaultdict
from datetime import datetime, timedelta

from protean.utils.globals import current_domain

from refunds.clock import as_utc, utcnow
from refunds.money import multiply, percentage_of
from refunds.order.order import Order, OrderStatus
from refunds.policy.policy import DEFAULT_RETURN_WINDOW_DAYS
from refunds.policy.repository import get_active_policy
from refunds.returns.return_request import ReturnRequest

RETURNABLE_ORDER_STATUSES = {OrderStatus.DELIVERED, OrderStatus.PARTIAL_RETURN}


def is_return_eligible(
    delivery_date: datetime | None,
    window_days: int = DEFAULT_RETURN_WINDOW_DAYS,
    now: datetime | None = None,
) -> bool:
    if delivery_date is None:
        return False
    return (now or utcnow()) - as_utc(delivery_date) <= timedelta(days=window_days)


def is_returnable_order(order: Order) -> bool:
    return OrderStatus(order.status) in RETURNABLE_ORDER_STATUSES and order.delivered_at() is not None


def returned_quantities(order_id: str, exclude_return_id: str | None = None) -> dict[str, int]:
    """Quantity held by counting returns, per item id of the order."""
    held = defaultdict(int)
    for request in current_domain.repository_for(ReturnRequest).find_for_order(order_id):
        if exclude_return_id and str(request.id) == str(exclude_return_id):
            continue
        if request.counts_toward_quantity:
            held[str(request.item_id)] += request.quantity
    return dict(held)


def available_quantity(order: Order, item, exclude_return_id: str | None = None) -> int:
    held = returned_quantities(order.id, exclude_return_id).get(str(item.id), 0)
    return max(item.quantity - held, 0)


def unit_refund_amount(item, percentage: float) -> float:
    return percentage_of(item.price, percentage)


def list_eligible_items(user_id: str, order_id: str | None = None, now: datetime | None = None) -> list[dict]:
    """Delivered lines of the user's orders that can still be returned."""
    policy = get_active_policy()
    orders = current_domain.repository_for(Order).find_by_user_and_status(
        user_id, statuses=[s.value for s in RETURNABLE_ORDER_STATUSES], order_id=order_id
    )

    eligible = []
    for order in orders:
        if not is_returnable_order(order):
            continue
        delivered = order.delivered_at()
        if not is_return_eligible(delivered, policy.return_window_days, now):
            continue

        held = returned_quantities(order.id)
        for item in order.active_items:
            available = item.quantity - held.get(str(item.id), 0)
            if available <= 0:
                continue
            refund_amount = unit_refund_amount(item, policy.return_refund_percentage)
            eligible.append(
                {
                    "order_id": str(order.id),
                    "order_code": order.order_code,
                    "item_id": str(item.id),
                    "item_type": item.item_type,
                    "product_id": item.product_id,
                    "bundle_id": item.bundle_id,
                    "name": item.name,
                    "image": item.image,
                    "size": item.size,
                    "original_price": item.price,
                    "purchased_quantity": item.quantity,
                    "available_quantity": available,
                    "refund_amount": refund_amount,
                    "total_refund_amount": multiply(refund_amount, available),
                    "delivered_at": delivered,
                    "eligibility_expiry_date": delivered + timedelta(days=policy.return_window_days),
                }
            )

    eligible.sort(key=lambda e: e["delivered_at"], reverse=True)
    return eligible
