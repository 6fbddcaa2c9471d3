from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from refunds.order.order import Order
from refunds.policy.events import PolicyUpdated
from refunds.policy.policy import (
    DEFAULT_REASONS,
    CancellationPolicy,
)

NOW = datetime(2026, 3, 1, 12, tzinfo=UTC)


def _order(status="Pending", hours_ago=2):
    order = Order.record(
        order_code="ORD-P",
        user_id="user-001",
        items_data=[{"item_type": "Product", "product_id": "p", "unit_price": 100.0, "quantity": 1}],
        total_amt=100.0,
        order_date=NOW - timedelta(hours=hours_ago),
    )
    order.status = status
    return order


class TestDefaultPolicy:
    def test_defaults(self):
        policy = CancellationPolicy.default()
        assert policy.refund_percentage == 65.0
        assert policy.response_time_hours == 48
        assert policy.reasons == DEFAULT_REASONS
        assert len(policy.terms_list) == 3
        assert policy.return_window_days == 30
        assert policy.return_refund_percentage == 65.0
        assert policy.re_request_cooldown_hours == 24
        assert policy.active_key == "active"

    def test_status_rules(self):
        policy = CancellationPolicy.default()
        assert policy.can_cancel("Pending")
        assert policy.can_cancel("Processing")
        assert not policy.can_cancel("Shipped")
        assert not policy.can_cancel("Delivered")
        assert policy.can_cancel("On_Hold")  # no rule means allowed


class TestRefundPercentageResolution:
    def test_status_rule_wins(self):
        policy = CancellationPolicy.default()
        policy.update(order_status_rules=[{"order_status": "Processing", "can_cancel": True, "refund_percentage": 75.0}])
        assert policy.resolve_refund_percentage(_order("Processing"), NOW) == 75.0

    def test_time_rule_when_no_status_rule(self):
        policy = CancellationPolicy.default()
        policy.update(
            order_status_rules=[],
            time_based_rules=[
                {"time_frame_hours": 1, "refund_percentage": 90.0},
                {"time_frame_hours": 24, "refund_percentage": 70.0},
                {"time_frame_hours": 999999, "refund_percentage": 50.0},
            ],
        )
        assert policy.resolve_refund_percentage(_order(hours_ago=0.5), NOW) == 90.0
        assert policy.resolve_refund_percentage(_order(hours_ago=5), NOW) == 70.0
        assert policy.resolve_refund_percentage(_order(hours_ago=100), NOW) == 50.0

    def test_falls_back_to_global_percentage(self):
        policy = CancellationPolicy.default()
        policy.update(order_status_rules=[], time_based_rules=[], refund_percentage=40.0)
        assert policy.resolve_refund_percentage(_order(), NOW) == 40.0

    def test_time_rule_picks_smallest_covering_frame(self):
        policy = CancellationPolicy.default()
        policy.update(
            time_based_rules=[
                {"time_frame_hours": 48, "refund_percentage": 60.0},
                {"time_frame_hours": 12, "refund_percentage": 80.0},
            ]
        )
        assert policy.time_rule_for(10).refund_percentage == 80.0
        assert policy.time_rule_for(30).refund_percentage == 60.0
        assert policy.time_rule_for(49) is None


class TestPolicyUpdate:
    def test_replaces_only_given_fields(self):
        policy = CancellationPolicy.default()
        changed = policy.update(updated_by="admin-1", allowed_reasons=["Other"], return_window_days=14)
        assert sorted(changed) == ["allowed_reasons", "return_window_days"]
        assert policy.reasons == ["Other"]
        assert policy.return_window_days == 14
        assert policy.refund_percentage == 65.0
        assert policy.updated_by == "admin-1"

    def test_raises_policy_updated(self):
        policy = CancellationPolicy.default()
        policy.update(updated_by="admin-1", refund_percentage=50.0)
        assert any(isinstance(e, PolicyUpdated) for e in policy._events)

    def test_no_changes_is_a_no_op(self):
        policy = CancellationPolicy.default()
        assert policy.update(updated_by="admin-1", refund_percentage=None) == []

    def test_duplicate_status_rule_rejected(self):
        policy = CancellationPolicy.default()
        with pytest.raises(ValidationError) as exc:
            policy.update(
                order_status_rules=[
                    {"order_status": "Pending", "refund_percentage": 10.0},
                    {"order_status": "Pending", "refund_percentage": 20.0},
                ]
            )
        assert "order_status_rules" in exc.value.messages

    def test_unknown_field_rejected(self):
        policy = CancellationPolicy.default()
        with pytest.raises(ValidationError):
            policy.update(colour="blue")

    def test_to_dict_sorts_time_rules(self):
        data = CancellationPolicy.default().to_dict()
        assert [r["time_frame_hours"] for r in data["time_based_rules"]] == [1, 24, 999999]
        assert data["is_active"] is True
