"""Listing helpers shared by the ledger views."""

import math

from protean.utils.globals import current_domain


def _query(aggregate_cls, **filters):
    query = current_domain.repository_for(aggregate_cls)._dao.query
    if filters:
        query = query.filter(**filters)
    return query


def scan(aggregate_cls, **filters) -> list:
    """Every matching record, without the repository's default page cap."""
    return _query(aggregate_cls, **filters).limit(None).all().items


def count(aggregate_cls, **filters) -> int:
    return _query(aggregate_cls, **filters).limit(1).all().total


def _page_meta(total: int, page: int, limit: int) -> dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def page_of(aggregate_cls, page: int = 1, limit: int = 10, order_by: str | None = None, **filters) -> dict:
    """One page fetched from storage, with the total taken from the store."""
    page = max(page, 1)
    limit = max(limit, 1)
    query = _query(aggregate_cls, **filters)
    if order_by:
        query = query.order_by(order_by)
    result = query.offset((page - 1) * limit).limit(limit).all()
    return {"items": list(result.items), **_page_meta(result.total, page, limit)}


def paginate(records: list, page: int = 1, limit: int = 10) -> dict:
    """Page an already complete in-memory list."""
    page = max(page, 1)
    limit = max(limit, 1)
    start = (page - 1) * limit
    return {"items": records[start : start + limit], **_page_meta(len(records), page, limit)}
