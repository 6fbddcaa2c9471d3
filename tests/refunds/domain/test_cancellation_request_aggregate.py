import pytest
from refunds.cancellation.cancellation import CancellationRequest, generate_refund_id
from refunds.cancellation.events import CancellationApproved, CancellationRefundCompleted
from refunds.errors import Conflict, InvalidState
from refunds.order.order import Order


@pytest.fixture()
def order():
    return Order.record(
        order_code="ORD-C",
        user_id="user-001",
        items_data=[{"item_type": "Product", "product_id": "p-1", "unit_price": 999.99, "quantity": 1}],
        total_amt=999.99,
        payment_method="Online Payment",
        payment_status="Paid",
    )


@pytest.fixture()
def request_(order):
    return CancellationRequest.submit(order=order, user_id="user-001", reason="Changed mind", refund_percentage=65.0)


class TestSubmit:
    def test_pending_and_active(self, request_, order):
        assert request_.status == "Pending"
        assert request_.is_active
        assert request_.active_order_key == str(order.id)
        assert request_.requested_percentage == 65.0
        assert request_.delivery_info.order_status == "Pending"


class TestDecision:
    def test_approve_computes_refund(self, request_):
        request_.approve(processed_by="admin-1", order_total=999.99)
        assert request_.status == "Approved"
        assert request_.refund_amount == 649.99
        assert request_.refund_details.refund_status == "Processing"
        assert any(isinstance(e, CancellationApproved) for e in request_._events)

    def test_custom_percentage_overrides(self, request_):
        request_.approve(processed_by="admin-1", order_total=200.0, custom_refund_percentage=100.0)
        assert request_.refund_amount == 200.0

    def test_reject_clears_active_key(self, request_):
        request_.reject(processed_by="admin-1", comments="Already packed")
        assert request_.status == "Rejected"
        assert request_.refund_amount == 0.0
        assert request_.active_order_key is None
        assert not request_.is_active

    def test_decision_is_final(self, request_):
        request_.reject(processed_by="admin-1")
        with pytest.raises(Conflict):
            request_.approve(processed_by="admin-1", order_total=10.0)


class TestRefundCompletion:
    def test_complete_refund(self, request_):
        request_.approve(processed_by="admin-1", order_total=999.99)
        refund_id = request_.complete_refund()
        assert refund_id.startswith("REF-")
        assert request_.refund_completed
        assert any(isinstance(e, CancellationRefundCompleted) for e in request_._events)

    def test_transaction_id_is_used_as_refund_id(self, request_):
        request_.approve(processed_by="admin-1", order_total=10.0)
        assert request_.complete_refund(transaction_id="TXN-42") == "TXN-42"

    def test_second_completion_fails(self, request_):
        request_.approve(processed_by="admin-1", order_total=10.0)
        request_.complete_refund()
        with pytest.raises(InvalidState):
            request_.complete_refund()

    def test_requires_approval(self, request_):
        with pytest.raises(InvalidState):
            request_.complete_refund()


def test_refund_id_format():
    refund_id = generate_refund_id()
    prefix, millis, suffix = refund_id.split("-")
    assert prefix == "REF"
    assert millis.isdigit()
    assert len(suffix) == 6


class TestPartialRequest:
    @pytest.fixture()
    def two_line_order(self):
        return Order.record(
            order_code="ORD-P",
            user_id="user-001",
            items_data=[
                {"item_type": "Product", "product_id": "p-1", "name": "Linen Shirt", "unit_price": 999.99, "quantity": 1},
                {"item_type": "Product", "product_id": "p-2", "name": "Canvas Tote", "unit_price": 100.01, "quantity": 3},
            ],
            total_amt=1300.02,
            payment_method="Online Payment",
            payment_status="Paid",
        )

    def test_submit_with_items_is_partial(self, two_line_order):
        tote = two_line_order.items[1]
        request = CancellationRequest.submit(
            order=two_line_order, user_id="user-001", reason="Changed mind", refund_percentage=65.0, items=[tote]
        )
        assert request.is_partial
        assert request.item_ids == [str(tote.id)]
        assert request.total_item_value == 300.03
        assert request._events[-1].cancellation_type == "Partial_Items"

    def test_approval_refunds_selected_lines_only(self, two_line_order):
        request = CancellationRequest.submit(
            order=two_line_order,
            user_id="user-001",
            reason="Changed mind",
            refund_percentage=65.0,
            items=two_line_order.items,
        )
        request.approve(processed_by="admin-1", order_total=request.total_item_value)
        # 649.99 + 195.02, each rounded before summing
        assert request.refund_amount == 845.01
        assert request.active_order_key is None
        assert request.to_dict()["items"][0]["refund_amount"] == 649.99

    def test_whole_order_request_has_no_lines(self, request_):
        assert not request_.is_partial
        assert request_.to_dict()["items"] == []
        assert request_.to_dict()["total_item_value"] is None
