import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from refunds.cancellation.cancellation import CancellationRequest
from refunds.cancellation.processing import ProcessCancellation
from refunds.cancellation.refund import CompleteRefund
from refunds.cancellation.request import RequestCancellation
from refunds.errors import Conflict, InvalidState, NotFound
from refunds.order.order import Order
from refunds.policy.management import UpdatePolicy


def _request(order, user_id="user-001", reason="Changed mind"):
    return current_domain.process(
        RequestCancellation(order_id=str(order.id), user_id=user_id, reason=reason),
        asynchronous=False,
    )


def _process(request_id, action="Approved", **kwargs):
    return current_domain.process(
        ProcessCancellation(request_id=request_id, action=action, admin_id="admin-001", **kwargs),
        asynchronous=False,
    )


def _complete(request_id, **kwargs):
    return current_domain.process(
        CompleteRefund(request_id=request_id, admin_id="admin-001", **kwargs),
        asynchronous=False,
    )


class TestRequestCancellation:
    def test_creates_pending_request(self, make_order, notifier):
        order = make_order()
        request_id = _request(order)

        request = current_domain.repository_for(CancellationRequest).get(request_id)
        assert request.status == "Pending"
        assert request.requested_percentage == 65.0
        assert notifier.sent_messages[0]["to"] == "asha@example.com"
        assert "ORD-" in notifier.sent_messages[0]["subject"]

    def test_processing_order_uses_status_rule(self, make_order):
        current_domain.process(
            UpdatePolicy(
                order_status_rules='[{"order_status": "Processing", "can_cancel": true, "refund_percentage": 75}]',
                updated_by="admin-001",
            ),
            asynchronous=False,
        )
        order = make_order(status="Processing")
        request_id = _request(order)
        request = current_domain.repository_for(CancellationRequest).get(request_id)
        assert request.requested_percentage == 75.0

    def test_cash_on_delivery_order_is_refused(self, make_order):
        order = make_order(payment_method="Cash on Delivery", payment_status="Pending")
        with pytest.raises(InvalidState):
            _request(order)

    @pytest.mark.parametrize("status", ["Shipped", "Delivered", "Cancelled"])
    def test_order_past_cancellation_point(self, make_order, status):
        order = make_order(status=status)
        with pytest.raises(InvalidState):
            _request(order)

    def test_unknown_reason(self, make_order):
        with pytest.raises(ValidationError) as exc:
            _request(make_order(), reason="Bored")
        assert "reason" in exc.value.messages

    def test_someone_elses_order_is_not_found(self, make_order):
        with pytest.raises(NotFound):
            _request(make_order(), user_id="user-002")

    def test_second_active_request_conflicts(self, make_order):
        order = make_order()
        _request(order)
        with pytest.raises(Conflict):
            _request(order)

    def test_new_request_allowed_after_rejection(self, make_order):
        order = make_order()
        first = _request(order)
        _process(first, action="Rejected", admin_comments="No")
        second = _request(order)
        assert second != first

    def test_notification_failure_does_not_fail_request(self, make_order, notifier):
        notifier.configure(raise_error=True)
        request_id = _request(make_order())
        assert current_domain.repository_for(CancellationRequest).get(request_id).status == "Pending"
        assert notifier.sent_messages == []


class TestProcessCancellation:
    def test_approval_cancels_order(self, make_order, notifier):
        order = make_order(total_amt=999.99)
        request_id = _request(order)
        assert _process(request_id) == "Approved"

        request = current_domain.repository_for(CancellationRequest).get(request_id)
        order = current_domain.repository_for(Order).get(order.id)
        assert request.refund_amount == 649.99
        assert order.status == "Cancelled"
        assert order.payment_status == "Refund_Processing"
        assert order.history[-1].updated_by == "admin-001"
        assert notifier.sent_messages[-1]["subject"].startswith("Cancellation Approved")

    def test_rejection_leaves_order_alone(self, make_order, notifier):
        order = make_order()
        request_id = _request(order)
        assert _process(request_id, action="Rejected") == "Rejected"
        assert current_domain.repository_for(Order).get(order.id).status == "Pending"
        assert notifier.sent_messages[-1]["subject"].startswith("Cancellation Request Update")

    def test_custom_percentage(self, make_order):
        order = make_order(total_amt=500.0, items=[{"item_type": "Product", "product_id": "p", "unit_price": 500.0, "quantity": 1}])
        request_id = _request(order)
        _process(request_id, custom_refund_percentage=100.0)
        assert current_domain.repository_for(CancellationRequest).get(request_id).refund_amount == 500.0

    def test_deciding_twice_conflicts(self, make_order):
        request_id = _request(make_order())
        _process(request_id)
        with pytest.raises(Conflict):
            _process(request_id, action="Rejected")

    def test_invalid_action(self, make_order):
        request_id = _request(make_order())
        with pytest.raises(ValidationError):
            _process(request_id, action="Maybe")

    def test_missing_request(self):
        with pytest.raises(NotFound):
            _process("does-not-exist")


class TestCompleteRefund:
    def test_books_refund_on_order(self, make_order, notifier, documents):
        order = make_order(total_amt=999.99)
        request_id = _request(order)
        _process(request_id)

        refund_id = _complete(request_id, transaction_id="TXN-1")

        assert refund_id == "TXN-1"
        order = current_domain.repository_for(Order).get(order.id)
        assert order.status == "Cancelled"
        assert order.payment_status == "Refund_Successful"
        assert order.refund_details.refund_amount == 649.99
        assert order.refund_details.retained_amount == 350.0
        assert documents.calls[0]["kind"] == "refund"
        assert notifier.sent_messages[-1]["attachments"]

    def test_second_completion_is_refused(self, make_order):
        request_id = _request(make_order())
        _process(request_id)
        _complete(request_id)
        with pytest.raises(InvalidState):
            _complete(request_id)

    def test_document_failure_still_notifies(self, make_order, notifier, documents):
        documents.configure(should_succeed=False)
        request_id = _request(make_order())
        _process(request_id)
        _complete(request_id)
        assert notifier.sent_messages[-1]["attachments"] == []

    def test_requires_approved_request(self, make_order):
        request_id = _request(make_order())
        with pytest.raises(InvalidState):
            _complete(request_id)


class TestActiveRequestGuard:
    """Two writers that both passed the active-request lookup cannot both persist."""

    def test_second_active_request_for_order_conflicts(self, make_order):
        order = make_order()
        repo = current_domain.repository_for(CancellationRequest)
        first, second = (
            CancellationRequest.submit(order=order, user_id="user-001", reason="Changed mind", refund_percentage=65.0)
            for _ in range(2)
        )

        repo.save_new(first)
        with pytest.raises(Conflict):
            repo.save_new(second)
        assert [str(r.id) for r in repo.find_by_order(order.id)] == [str(first.id)]
