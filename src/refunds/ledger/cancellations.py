"""Read views over cancellation requests and the refunds they produce."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from refunds.cancellation.cancellation import CancellationRequest, CancellationStatus
from refunds.channel.dispatch import generate_document
from refunds.channel.document_port import DocumentKind
from refunds.clock import as_utc
from refunds.errors import NotFound, Unavailable
from refunds.ledger.pagination import page_of, scan
from refunds.money import subtract
from refunds.order.order import Order

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _newest_first(requests: list) -> list:
    return sorted(requests, key=lambda r: as_utc(r.request_date) or _EPOCH, reverse=True)


def _with_order(request: CancellationRequest, orders: dict) -> dict:
    data = request.to_dict()
    order = orders.get(str(request.order_id))
    if order is not None:
        data["order"] = {
            "order_id": str(order.id),
            "order_code": order.order_code,
            "status": order.status,
            "payment_status": order.payment_status,
            "total_amt": order.total_amt,
            "order_date": order.order_date.isoformat() if order.order_date else None,
        }
    return data


def _orders_for(requests: list) -> dict:
    repo = current_domain.repository_for(Order)
    orders = {}
    for order_id in {str(r.order_id) for r in requests}:
        order = repo._dao.query.filter(id=order_id).all().first
        if order is not None:
            orders[order_id] = order
    return orders


def list_cancellation_requests(status: str | None = None, page: int = 1, limit: int = 10) -> dict:
    """All cancellation requests, newest first, optionally by status."""
    filters = {"status": status} if status else {}
    result = page_of(CancellationRequest, page, limit, order_by="-request_date", **filters)
    orders = _orders_for(result["items"])
    result["items"] = [_with_order(r, orders) for r in result["items"]]
    return result


def list_user_cancellations(user_id: str) -> list[dict]:
    requests = _newest_first(current_domain.repository_for(CancellationRequest).find_for_user(user_id))
    orders = _orders_for(requests)
    return [_with_order(r, orders) for r in requests]


def get_cancellation(request_id: str, user_id: str | None = None) -> dict:
    """One request with its order summary; scoped to ``user_id`` when given."""
    request = current_domain.repository_for(CancellationRequest).find_by_id(request_id)
    if user_id is not None and not request.is_owned_by(user_id):
        raise NotFound("Cancellation request not found", request_id=request_id)
    return _with_order(request, _orders_for([request]))


def get_cancellation_for_order(order_id: str) -> dict:
    """Most recent cancellation request for an order."""
    requests = _newest_first(current_domain.repository_for(CancellationRequest).find_by_order(order_id))
    if not requests:
        raise NotFound("No cancellation request found for this order", order_id=order_id)
    return _with_order(requests[0], _orders_for(requests[:1]))


def _delivery_context(request: CancellationRequest, order: Order | None) -> dict:
    estimated = as_utc(order.estimated_delivery_date) if order else None
    actual = as_utc(order.actual_delivery_date) if order else None
    requested = as_utc(request.request_date)
    return {
        "estimated_delivery_date": estimated.isoformat() if estimated else None,
        "actual_delivery_date": actual.isoformat() if actual else None,
        "cancelled_after_delivery": bool(actual and requested and requested > actual),
        "was_past_delivery_date": bool(request.delivery_info and request.delivery_info.was_past_delivery_date),
    }


def list_refunds(refund_status: str | None = None) -> list[dict]:
    """Approved cancellations (or those whose refund is in ``refund_status``)."""
    requests = scan(CancellationRequest)
    if refund_status:
        requests = [r for r in requests if r.refund_details and r.refund_details.refund_status == refund_status]
    else:
        requests = [r for r in requests if r.status == CancellationStatus.APPROVED.value]

    requests = _newest_first(requests)
    orders = _orders_for(requests)
    entries = []
    for request in requests:
        data = _with_order(request, orders)
        data["delivery_context"] = _delivery_context(request, orders.get(str(request.order_id)))
        entries.append(data)
    return entries


def get_refund_document(refund_id: str, user_id: str) -> dict:
    """Render the refund document of one of the user's completed refunds."""
    request = current_domain.repository_for(CancellationRequest).find_completed_refund(refund_id, user_id)
    if request is None:
        raise NotFound("Refund not found or not authorized to access", refund_id=refund_id)

    order = current_domain.repository_for(Order).find_by_id(request.order_id)
    retained = subtract(request.total_item_value if request.is_partial else order.total_amt, request.refund_amount)
    data = {
        "order_id": str(order.id),
        "order_code": order.order_code,
        "refund_id": refund_id,
        "refund_amount": request.refund_amount,
        "retained_amount": retained,
    }
    path = generate_document(DocumentKind.REFUND.value, data)
    if path is None:
        raise Unavailable("Refund document could not be generated", refund_id=refund_id)
    return {**data, "document": path}
