import json

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from refunds.errors import InvalidTransition, NotFound
from refunds.order.order import Order
from refunds.order.recording import RecordOrder
from refunds.order.status import ChangeOrderStatus


def _change(order_id, status, reason=None):
    return current_domain.process(
        ChangeOrderStatus(order_id=order_id, status=status, reason=reason, updated_by="admin-001"),
        asynchronous=False,
    )


class TestRecordOrder:
    def test_persists_order_with_lines(self, make_order, line):
        order = make_order(items=[line(), line(item_type="Bundle", bundle_id="b-1", bundle_price=20.0, quantity=2)])
        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.status == "Pending"
        assert len(stored.items) == 2

    def test_rejects_empty_items(self):
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                RecordOrder(order_code="ORD-E", user_id="user-001", items="[]", total_amt=0.0),
                asynchronous=False,
            )
        assert "items" in exc.value.messages

    def test_rejects_duplicate_code(self, line):
        command = RecordOrder(order_code="ORD-D", user_id="user-001", items=json.dumps([line()]), total_amt=999.99)
        current_domain.process(command, asynchronous=False)
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                RecordOrder(order_code="ORD-D", user_id="user-001", items=json.dumps([line()]), total_amt=1.0),
                asynchronous=False,
            )
        assert "order_code" in exc.value.messages


class TestChangeOrderStatus:
    def test_walks_to_delivered(self, make_order):
        order = make_order()
        for status in ("Processing", "Shipped", "Delivered"):
            assert _change(order.id, status) == status

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.actual_delivery_date is not None
        assert [e.status for e in stored.history] == ["Pending", "Processing", "Shipped", "Delivered"]

    def test_illegal_transition_leaves_order_unchanged(self, make_order):
        order = make_order()
        with pytest.raises(InvalidTransition):
            _change(order.id, "Delivered")
        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.status == "Pending"
        assert len(stored.history) == 1

    def test_unknown_status(self, make_order):
        with pytest.raises(ValidationError):
            _change(make_order().id, "Lost")

    def test_missing_order(self):
        with pytest.raises(NotFound):
            _change("missing", "Processing")

    def test_to_dict_view(self, make_order):
        order = make_order(status="Processing")
        data = current_domain.repository_for(Order).get(order.id).to_dict()
        assert data["status"] == "Processing"
        assert data["status_info"]["color"] == "blue"
        assert len(data["status_history"]) == 2
        assert data["items"][0]["price"] == 999.99
