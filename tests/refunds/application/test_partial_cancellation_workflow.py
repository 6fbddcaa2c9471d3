import json

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from refunds.cancellation.cancellation import CancellationRequest
from refunds.cancellation.partial import ProcessPartialCancellation, RequestPartialCancellation
from refunds.cancellation.processing import ProcessCancellation
from refunds.cancellation.refund import CompleteRefund
from refunds.cancellation.request import RequestCancellation
from refunds.errors import Conflict, InvalidState, NotFound, Unavailable
from refunds.ledger.cancellations import get_refund_document
from refunds.order.order import Order
from refunds.returns.eligibility import list_eligible_items


@pytest.fixture()
def two_line_order(make_order, line):
    return make_order(
        items=[
            line(),
            line(product_id="prod-002", name="Canvas Tote", size=None, unit_price=100.0, quantity=2),
        ],
        total_amt=1199.99,
    )


def _named(order, name):
    return next(i for i in order.items if i.name == name)


def _request_partial(order, items, user_id="user-001", reason="Changed mind"):
    return current_domain.process(
        RequestPartialCancellation(
            order_id=str(order.id),
            user_id=user_id,
            item_ids=json.dumps([str(i.id) if hasattr(i, "id") else i for i in items]),
            reason=reason,
        ),
        asynchronous=False,
    )


def _process_partial(request_id, action="Approved", **kwargs):
    return current_domain.process(
        ProcessPartialCancellation(request_id=request_id, action=action, admin_id="admin-001", **kwargs),
        asynchronous=False,
    )


def _complete(request_id, **kwargs):
    return current_domain.process(
        CompleteRefund(request_id=request_id, admin_id="admin-001", **kwargs),
        asynchronous=False,
    )


class TestRequestPartialCancellation:
    def test_creates_pending_partial_request(self, two_line_order, notifier):
        tote = _named(two_line_order, "Canvas Tote")
        request_id = _request_partial(two_line_order, [tote])

        request = current_domain.repository_for(CancellationRequest).get(request_id)
        assert request.status == "Pending"
        assert request.is_partial
        assert request.item_ids == [str(tote.id)]
        assert request.total_item_value == 200.0
        assert notifier.sent_messages[-1]["subject"].startswith("Partial Cancellation Request Submitted")
        assert "Canvas Tote" in notifier.sent_messages[-1]["body"]

    def test_unknown_line_is_refused(self, two_line_order):
        with pytest.raises(ValidationError) as exc:
            _request_partial(two_line_order, ["no-such-line"])
        assert "item_ids" in exc.value.messages

    def test_duplicate_line_is_refused(self, two_line_order):
        tote = _named(two_line_order, "Canvas Tote")
        with pytest.raises(ValidationError):
            _request_partial(two_line_order, [tote, tote])

    def test_empty_selection_is_refused(self, two_line_order):
        with pytest.raises(ValidationError):
            _request_partial(two_line_order, [])

    def test_shipped_order_is_refused(self, make_order):
        order = make_order(status="Shipped")
        with pytest.raises(InvalidState):
            _request_partial(order, order.items)

    def test_someone_elses_order_is_not_found(self, two_line_order):
        with pytest.raises(NotFound):
            _request_partial(two_line_order, [_named(two_line_order, "Linen Shirt")], user_id="user-002")

    def test_pending_whole_order_request_conflicts(self, two_line_order):
        current_domain.process(
            RequestCancellation(order_id=str(two_line_order.id), user_id="user-001", reason="Changed mind"),
            asynchronous=False,
        )
        with pytest.raises(Conflict):
            _request_partial(two_line_order, [_named(two_line_order, "Linen Shirt")])


class TestProcessPartialCancellation:
    def test_approval_cancels_selected_lines(self, two_line_order, notifier):
        shirt, tote = _named(two_line_order, "Linen Shirt"), _named(two_line_order, "Canvas Tote")
        request_id = _request_partial(two_line_order, [tote])

        assert _process_partial(request_id) == "Approved"

        request = current_domain.repository_for(CancellationRequest).get(request_id)
        order = current_domain.repository_for(Order).get(two_line_order.id)
        assert request.refund_amount == 130.0
        assert order.status == "Pending"
        assert order.total_amt == 999.99
        assert order.find_item(shirt.id).status == "Active"
        assert order.find_item(tote.id).status == "Cancelled"
        assert order.payment_status == "Paid"
        assert notifier.sent_messages[-1]["subject"].startswith("Partial Cancellation Approved")

    def test_cancelling_every_line_cancels_order(self, two_line_order):
        request_id = _request_partial(two_line_order, two_line_order.items)
        _process_partial(request_id)

        order = current_domain.repository_for(Order).get(two_line_order.id)
        assert order.status == "Cancelled"
        assert order.payment_status == "Refund_Processing"

    def test_remaining_lines_can_be_cancelled_later(self, two_line_order):
        shirt, tote = _named(two_line_order, "Linen Shirt"), _named(two_line_order, "Canvas Tote")
        _process_partial(_request_partial(two_line_order, [tote]))
        second = _request_partial(two_line_order, [shirt])
        _process_partial(second)

        assert current_domain.repository_for(Order).get(two_line_order.id).status == "Cancelled"

    def test_cancelled_line_cannot_be_requested_again(self, two_line_order):
        tote = _named(two_line_order, "Canvas Tote")
        _process_partial(_request_partial(two_line_order, [tote]))
        with pytest.raises(ValidationError):
            _request_partial(two_line_order, [tote])

    def test_rejection_leaves_lines_active(self, two_line_order, notifier):
        request_id = _request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")])
        assert _process_partial(request_id, action="Rejected", admin_comments="Already packed") == "Rejected"

        order = current_domain.repository_for(Order).get(two_line_order.id)
        assert all(i.status == "Active" for i in order.items)
        assert order.total_amt == 1199.99
        assert notifier.sent_messages[-1]["subject"].startswith("Partial Cancellation Request Declined")

    def test_whole_order_decision_refuses_partial_request(self, two_line_order):
        request_id = _request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")])
        with pytest.raises(InvalidState):
            current_domain.process(
                ProcessCancellation(request_id=request_id, action="Approved", admin_id="admin-001"),
                asynchronous=False,
            )

    def test_partial_decision_refuses_whole_order_request(self, two_line_order):
        request_id = current_domain.process(
            RequestCancellation(order_id=str(two_line_order.id), user_id="user-001", reason="Changed mind"),
            asynchronous=False,
        )
        with pytest.raises(InvalidState):
            _process_partial(request_id)


class TestPartialRefund:
    def test_refund_keeps_open_order_payment(self, two_line_order, notifier):
        request_id = _request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")])
        _process_partial(request_id)
        _complete(request_id, transaction_id="TXN-P1")

        order = current_domain.repository_for(Order).get(two_line_order.id)
        assert order.payment_status == "Paid"
        assert order.refund_details is None
        assert "Retained amount: 70.00" in notifier.sent_messages[-1]["body"]

    def test_cancelled_lines_are_not_returnable(self, delivered_order, line):
        order = delivered_order(
            items=[line(), line(product_id="prod-002", name="Canvas Tote", unit_price=100.0)],
        )
        order.cancel_lines([str(_named(order, "Canvas Tote").id)], actor="admin-001")
        current_domain.repository_for(Order).add(order)

        eligible = list_eligible_items("user-001", order_id=str(order.id))
        assert [e["item_id"] for e in eligible] == [str(_named(order, "Linen Shirt").id)]


class TestRefundDocument:
    def test_renders_document_for_completed_refund(self, make_order, documents):
        order = make_order(total_amt=999.99)
        request_id = current_domain.process(
            RequestCancellation(order_id=str(order.id), user_id="user-001", reason="Changed mind"),
            asynchronous=False,
        )
        current_domain.process(
            ProcessCancellation(request_id=request_id, action="Approved", admin_id="admin-001"),
            asynchronous=False,
        )
        _complete(request_id, transaction_id="TXN-DOC")

        result = get_refund_document("TXN-DOC", "user-001")

        assert result["refund_amount"] == 649.99
        assert result["retained_amount"] == 350.0
        assert result["document"].endswith(".pdf")
        assert documents.calls[-1]["data"]["refund_id"] == "TXN-DOC"

    def test_other_users_refund_is_not_found(self, two_line_order):
        request_id = _request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")])
        _process_partial(request_id)
        _complete(request_id, transaction_id="TXN-P2")

        with pytest.raises(NotFound):
            get_refund_document("TXN-P2", "user-002")

    def test_unknown_refund_is_not_found(self, two_line_order):
        _process_partial(_request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")]))
        with pytest.raises(NotFound):
            get_refund_document("REF-unknown", "user-001")

    def test_generation_failure_is_unavailable(self, two_line_order, documents):
        request_id = _request_partial(two_line_order, [_named(two_line_order, "Canvas Tote")])
        _process_partial(request_id)
        _complete(request_id, transaction_id="TXN-P3")
        documents.configure(should_succeed=False)

        with pytest.raises(Unavailable):
            get_refund_document("TXN-P3", "user-001")
