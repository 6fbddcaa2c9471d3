import pytest
from refunds.templates.cancellation import (
    CancellationApprovedTemplate,
    CancellationRejectedTemplate,
    CancellationRequestedTemplate,
    PartialCancellationApprovedTemplate,
    PartialCancellationRejectedTemplate,
    PartialCancellationRequestedTemplate,
    RefundCompletedTemplate,
)
from refunds.templates.returns import (
    ReturnDecisionTemplate,
    ReturnRefundCompletedTemplate,
    ReturnRequestedTemplate,
)

ALL_TEMPLATES = [
    CancellationRequestedTemplate,
    CancellationApprovedTemplate,
    CancellationRejectedTemplate,
    PartialCancellationRequestedTemplate,
    PartialCancellationApprovedTemplate,
    PartialCancellationRejectedTemplate,
    RefundCompletedTemplate,
    ReturnRequestedTemplate,
    ReturnDecisionTemplate,
    ReturnRefundCompletedTemplate,
]


class TestTemplateTypes:
    def test_notification_types_are_distinct(self):
        assert {t.notification_type for t in ALL_TEMPLATES} == {
            "Cancellation_Requested",
            "Cancellation_Approved",
            "Cancellation_Rejected",
            "Partial_Cancellation_Requested",
            "Partial_Cancellation_Approved",
            "Partial_Cancellation_Rejected",
            "Refund_Completed",
            "Return_Requested",
            "Return_Decision",
            "Return_Refund_Completed",
        }

    @pytest.mark.parametrize("template", ALL_TEMPLATES, ids=lambda t: t.notification_type)
    def test_renders_with_empty_context(self, template):
        content = template.render({})
        assert content["subject"]
        assert content["body"]


class TestRendering:
    def test_cancellation_requested(self):
        content = CancellationRequestedTemplate.render(
            {
                "customer_name": "Asha",
                "order_code": "ORD-7",
                "total_amt": 999.99,
                "refund_percentage": 65.0,
                "expected_refund": 649.99,
            }
        )
        assert content["subject"] == "Cancellation Request Received - Order #ORD-7"
        assert "Hi Asha" in content["body"]
        assert "649.99" in content["body"]

    def test_cancellation_approved_amount(self):
        content = CancellationApprovedTemplate.render({"order_code": "ORD-8", "refund_amount": 65, "refund_percentage": 65})
        assert "65.00" in content["body"]

    def test_return_decision_subject_follows_outcome(self):
        assert ReturnDecisionTemplate.render({"approved": True})["subject"] == "Return Request Approved"
        assert ReturnDecisionTemplate.render({"approved": False})["subject"] == "Return Request Rejected"

    def test_partial_cancellation_lists_items(self):
        content = PartialCancellationRequestedTemplate.render(
            {
                "order_code": "ORD-9",
                "items": [{"name": "Linen Shirt", "size": "M", "quantity": 2, "item_total": 1999.98}],
                "total_item_value": 1999.98,
                "refund_percentage": 65.0,
                "expected_refund": 1299.99,
            }
        )
        assert content["subject"] == "Partial Cancellation Request Submitted - Order #ORD-9"
        assert "- Linen Shirt (Size: M) x2: 1999.98" in content["body"]
        assert "1299.99" in content["body"]
