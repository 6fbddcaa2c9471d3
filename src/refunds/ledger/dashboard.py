"""Refund dashboard and statistics across cancellations and returns."""

from collections import Counter
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import (
    CancellationRequest,
    CancellationStatus,
    RefundStatus,
)
from refunds.clock import as_utc
from refunds.ledger.pagination import count, page_of, scan
from refunds.money import total
from refunds.order.order import Order
from refunds.returns.return_request import ReturnRequest, ReturnStatus

_EPOCH = datetime.min.replace(tzinfo=UTC)
RECENT_LIMIT = 5


def _completed(request) -> bool:
    return bool(request.refund_details and request.refund_details.refund_status == RefundStatus.COMPLETED.value)


def dashboard_stats() -> dict:
    return_counts = {s.value: count(ReturnRequest, status=s.value) for s in ReturnStatus}
    cancellation_counts = {s.value: count(CancellationRequest, status=s.value) for s in CancellationStatus}
    recent = page_of(ReturnRequest, page=1, limit=RECENT_LIMIT, order_by="-request_date")["items"]

    return {
        "returns": {
            "total": count(ReturnRequest),
            "by_status": return_counts,
            "pending": return_counts[ReturnStatus.REQUESTED.value] + return_counts[ReturnStatus.UNDER_REVIEW.value],
            "approved": return_counts[ReturnStatus.APPROVED.value],
            "total_refund_amount": total(r.refund_amount for r in scan(ReturnRequest) if _completed(r)),
            "recent": [r.to_dict() for r in recent],
        },
        "cancellations": {
            "total": count(CancellationRequest),
            "by_status": cancellation_counts,
            "total_refund_amount": total(
                c.refund_amount
                for c in scan(CancellationRequest, status=CancellationStatus.APPROVED.value)
                if _completed(c)
            ),
        },
    }



def list_user_refunds(user_id: str) -> list[dict]:
    """Refunds owed or paid to one customer, from both workflows."""
    entries = []
    for request in current_domain.repository_for(CancellationRequest).find_for_user(user_id):
        if request.status != CancellationStatus.APPROVED.value:
            continue
        entries.append(
            {
                "source": "cancellation",
                "request_id": str(request.id),
                "order_id": str(request.order_id),
                "refund_amount": request.refund_amount,
                "refund_status": request.refund_details.refund_status if request.refund_details else None,
                "refund_id": request.refund_details.refund_id if request.refund_details else None,
                "requested_at": as_utc(request.request_date),
            }
        )
    for request in current_domain.repository_for(ReturnRequest).find_for_user(user_id):
        if not request.refund_details:
            continue
        entries.append(
            {
                "source": "return",
                "request_id": str(request.id),
                "order_id": str(request.order_id),
                "refund_amount": request.refund_amount,
                "refund_status": request.refund_details.refund_status,
                "refund_id": request.refund_details.refund_id,
                "requested_at": as_utc(request.request_date),
            }
        )
    entries.sort(key=lambda e: e["requested_at"] or _EPOCH, reverse=True)
    return entries


def refund_stats_with_delivery(start: datetime | None = None, end: datetime | None = None) -> dict:
    """Cancellation refunds bucketed by where the order was in delivery."""
    requests = scan(CancellationRequest)
    if start and end:
        requests = [r for r in requests if as_utc(start) <= (as_utc(r.request_date) or _EPOCH) <= as_utc(end)]

    order_repo = current_domain.repository_for(Order)
    buckets = Counter()
    amounts = Counter()
    days_before_cancellation = []

    for request in requests:
        order = order_repo._dao.query.filter(id=str(request.order_id)).all().first
        if order is None:
            continue

        requested = as_utc(request.request_date)
        estimated = as_utc(order.estimated_delivery_date)
        delivered = as_utc(order.actual_delivery_date)
        if order.order_date and requested:
            days_before_cancellation.append((requested - as_utc(order.order_date)).total_seconds() / 86400)

        if delivered and requested and requested > delivered:
            bucket, amount_bucket = "delivered", "after_delivery"
        elif estimated and requested and requested > estimated:
            bucket, amount_bucket = "overdue", "overdue_delivery"
        elif estimated:
            bucket, amount_bucket = "pending_delivery", "before_delivery"
        else:
            bucket, amount_bucket = "no_delivery_date", "before_delivery"

        buckets[bucket] += 1
        amounts[amount_bucket] += request.refund_amount

    average_days = round(sum(days_before_cancellation) / len(days_before_cancellation), 2) if days_before_cancellation else 0.0
    return {
        "total_refunds": len(requests),
        "delivery_insights": {
            "cancelled_before_delivery": buckets["pending_delivery"] + buckets["no_delivery_date"],
            "cancelled_after_delivery": buckets["delivered"],
            "cancelled_with_overdue_delivery": buckets["overdue"],
            "average_days_before_cancellation": average_days,
            "refunds_by_delivery_status": {
                "no_delivery_date": buckets["no_delivery_date"],
                "pending_delivery": buckets["pending_delivery"],
                "delivered": buckets["delivered"],
                "overdue": buckets["overdue"],
            },
        },
        "refund_amounts_by_delivery_status": {
            "before_delivery": total([amounts["before_delivery"]]),
            "after_delivery": total([amounts["after_delivery"]]),
            "overdue_delivery": total([amounts["overdue_delivery"]]),
        },
    }
