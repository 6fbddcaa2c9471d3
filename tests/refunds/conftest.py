import json
from datetime import timedelta

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain
from refunds.channel import get_document_generator, get_notifier, get_user_directory, reset_channels
from refunds.clock import utcnow
from refunds.order.order import Order, OrderStatus
from refunds.order.recording import RecordOrder
from refunds.order.status import ChangeOrderStatus

CUSTOMER_ID = "user-001"
OTHER_CUSTOMER_ID = "user-002"


@pytest.fixture(scope="session")
def refunds_bed():
    from refunds.domain import refunds

    bed = DomainFixture(refunds)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(refunds_bed):
    with refunds_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _channels():
    """Fresh fake collaborators with two known customers for every test."""
    reset_channels()
    directory = get_user_directory()
    directory.register(CUSTOMER_ID, "Asha Rao", "asha@example.com")
    directory.register(OTHER_CUSTOMER_ID, "Ben Ortiz", "ben@example.com")
    yield
    reset_channels()


@pytest.fixture()
def notifier():
    return get_notifier()


@pytest.fixture()
def documents():
    return get_document_generator()


_order_counter = iter(range(1, 1_000_000))


def _line(**overrides):
    line = {
        "item_type": "Product",
        "product_id": "prod-001",
        "name": "Linen Shirt",
        "size": "M",
        "unit_price": 999.99,
        "quantity": 1,
    }
    line.update(overrides)
    return line


@pytest.fixture()
def make_order():
    """Record an order and walk it to ``status`` through the state machine."""

    def _make(
        status=OrderStatus.PENDING.value,
        user_id=CUSTOMER_ID,
        items=None,
        total_amt=None,
        payment_method="Online Payment",
        payment_status="Paid",
        order_date=None,
        estimated_delivery_date=None,
    ):
        items = items or [_line()]
        if total_amt is None:
            total_amt = sum(i.get("unit_price") or i.get("bundle_price") or 0 for i in items)
        order_id = current_domain.process(
            RecordOrder(
                order_code=f"ORD-{next(_order_counter):05d}",
                user_id=user_id,
                items=json.dumps(items),
                total_amt=total_amt,
                payment_method=payment_method,
                payment_status=payment_status,
                order_date=order_date,
                estimated_delivery_date=estimated_delivery_date,
            ),
            asynchronous=False,
        )
        path = {
            OrderStatus.PENDING.value: [],
            OrderStatus.PROCESSING.value: ["Processing"],
            OrderStatus.ON_HOLD.value: ["On_Hold"],
            OrderStatus.SHIPPED.value: ["Processing", "Shipped"],
            OrderStatus.DELIVERED.value: ["Processing", "Shipped", "Delivered"],
            OrderStatus.CANCELLED.value: ["Cancelled"],
        }[status]
        for step in path:
            current_domain.process(
                ChangeOrderStatus(order_id=order_id, status=step, updated_by="admin-001"),
                asynchronous=False,
            )
        return current_domain.repository_for(Order).get(order_id)

    return _make


@pytest.fixture()
def delivered_order(make_order):
    """Delivered order whose delivery happened ``days_ago`` days back."""

    def _make(days_ago=10, items=None, user_id=CUSTOMER_ID):
        order = make_order(status=OrderStatus.DELIVERED.value, items=items, user_id=user_id)
        order.actual_delivery_date = utcnow() - timedelta(days=days_ago)
        order.delivered_date = order.actual_delivery_date
        current_domain.repository_for(Order).add(order)
        return current_domain.repository_for(Order).get(order.id)

    return _make


@pytest.fixture()
def line():
    return _line
