"""Read views over return requests."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from refunds.clock import as_utc
from refunds.ledger.pagination import page_of, paginate, scan
from refunds.returns.return_request import ReturnRequest

_EPOCH = datetime.min.replace(tzinfo=UTC)

_SORT_KEYS = {
    "request_date": lambda r: as_utc(r.request_date) or _EPOCH,
    "refund_amount": lambda r: r.refund_amount,
    "status": lambda r: r.status,
}

# Sorts the store can apply itself; the rest need the computed refund amount
_STORED_SORTS = {"request_date", "status"}


def list_user_returns(user_id: str) -> list[dict]:
    requests = current_domain.repository_for(ReturnRequest).find_for_user(user_id)
    requests.sort(key=_SORT_KEYS["request_date"], reverse=True)
    return [r.to_dict() for r in requests]


def get_return_details(return_id: str, user_id: str) -> dict:
    return current_domain.repository_for(ReturnRequest).get_owned(return_id, user_id).to_dict()


def _matches(request: ReturnRequest, term: str) -> bool:
    haystack = [
        str(request.id),
        str(request.order_id),
        str(request.user_id),
        request.reason or "",
        request.additional_comments or "",
        (request.item_details.name or "") if request.item_details else "",
    ]
    return any(term in value.lower() for value in haystack)


def list_all_returns(
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    search: str | None = None,
    sort_by: str = "request_date",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Admin listing with status/date-range/search filters and pagination."""
    filters = {}
    if status:
        filters["status"] = status
    if start_date:
        filters["request_date__gte"] = as_utc(start_date)
    if end_date:
        filters["request_date__lte"] = as_utc(end_date)
    descending = sort_order != "asc"

    if not search and sort_by in _STORED_SORTS:
        order_by = f"-{sort_by}" if descending else sort_by
        result = page_of(ReturnRequest, page, limit, order_by=order_by, **filters)
    else:
        requests = scan(ReturnRequest, **filters)
        if search:
            term = search.strip().lower()
            requests = [r for r in requests if _matches(r, term)]
        requests.sort(key=_SORT_KEYS.get(sort_by, _SORT_KEYS["request_date"]), reverse=descending)
        result = paginate(requests, page, limit)
    result["items"] = [r.to_dict() for r in result["items"]]
    return result
