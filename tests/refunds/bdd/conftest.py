"""Shared BDD fixtures and step definitions for the Refunds domain."""

from datetime import timedelta

import pytest
from pytest_bdd import given, parsers, then
from refunds.cancellation.cancellation import CancellationRequest
from refunds.cancellation.events import CancellationApproved, CancellationRejected
from refunds.clock import utcnow
from refunds.errors import Conflict, TooSoon
from refunds.order.order import Order
from refunds.returns.return_request import ReturnRequest

_EVENT_CLASSES = {
    "CancellationApproved": CancellationApproved,
    "CancellationRejected": CancellationRejected,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a paid online order totalling {total:f}"), target_fixture="order")
def _(total):
    return Order.record(
        order_code="ORD-BDD",
        user_id="user-001",
        items_data=[{"item_type": "Product", "product_id": "p-1", "unit_price": total, "quantity": 1}],
        total_amt=total,
        payment_method="Online Payment",
        payment_status="Paid",
    )


@given(parsers.cfparse("a pending cancellation request at {percentage:d} percent"), target_fixture="cancellation")
def _(order, percentage):
    request = CancellationRequest.submit(
        order=order,
        user_id="user-001",
        reason="Changed mind",
        refund_percentage=float(percentage),
    )
    request._events.clear()
    return request


@given("the request was rejected")
def _(cancellation):
    cancellation.reject(processed_by="admin-1")
    cancellation._events.clear()


@given("a return request for a delivered line", target_fixture="return_request")
def _():
    order = Order.record(
        order_code="ORD-BDD-R",
        user_id="user-001",
        items_data=[{"item_type": "Product", "product_id": "p-1", "unit_price": 80.0, "quantity": 1}],
        total_amt=80.0,
    )
    order.status = "Delivered"
    order.actual_delivery_date = utcnow() - timedelta(days=3)
    request = ReturnRequest.open(
        order=order,
        item=order.items[0],
        user_id="user-001",
        reason="Quality_Issue",
        quantity=1,
        refund_per_unit=52.0,
        return_window_days=30,
    )
    request._events.clear()
    return request


@given("the return was rejected")
def _(return_request):
    return_request.reject(processed_by="admin-1", comments="Worn")
    return_request._events.clear()


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a conflict")
def _(error):
    assert error["exc"] is not None, "Expected a conflict but none was raised"
    assert isinstance(error["exc"], Conflict)


@then("the re-request is refused as too soon")
def _(error):
    assert isinstance(error["exc"], TooSoon)


@then(parsers.cfparse('the cancellation status is "{status}"'))
def _(cancellation, status):
    assert cancellation.status == status


@then(parsers.cfparse("the refund amount is {amount:f}"))
def _(cancellation, amount):
    assert cancellation.refund_amount == amount


@then(parsers.cfparse('the return status is "{status}"'))
def _(return_request, status):
    assert return_request.status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def _(cancellation, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cancellation._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cancellation._events]}"
