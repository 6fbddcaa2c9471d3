"""CancellationPolicy aggregate: the single active refund policy.

Holds the global refund percentage, the time-based and order-status rules
that override it, the reasons customers may give, display terms, and the
return-window parameters the return workflow reads.

Refund percentage precedence for an order:
    order-status rule (exact status match)
    → smallest time-based rule covering hours elapsed since the order
    → global default
"""

import json
from datetime import datetime

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Integer,
    String,
    Text,
)

from refunds.clock import hours_between, utcnow
from refunds.domain import refunds
from refunds.order.order import OrderStatus
from refunds.policy.events import PolicyUpdated

ACTIVE_KEY = "active"

DEFAULT_REFUND_PERCENTAGE = 65.0
DEFAULT_RESPONSE_TIME_HOURS = 48
DEFAULT_RETURN_WINDOW_DAYS = 30
DEFAULT_RETURN_REFUND_PERCENTAGE = 65.0
DEFAULT_RE_REQUEST_COOLDOWN_HOURS = 24

DEFAULT_REASONS = [
    "Changed mind",
    "Found better price",
    "Wrong item ordered",
    "Delivery delay",
    "Product defect expected",
    "Financial constraints",
    "Duplicate order",
    "Other",
]

DEFAULT_TIME_BASED_RULES = [
    {"description": "Within 1 hour of order", "time_frame_hours": 1, "refund_percentage": 65.0},
    {"description": "Within 24 hours of order", "time_frame_hours": 24, "refund_percentage": 65.0},
    {"description": "After 24 hours", "time_frame_hours": 999999, "refund_percentage": 65.0},
]

DEFAULT_ORDER_STATUS_RULES = [
    {"order_status": OrderStatus.PENDING.value, "can_cancel": True, "refund_percentage": 65.0},
    {"order_status": OrderStatus.PROCESSING.value, "can_cancel": True, "refund_percentage": 65.0},
    {"order_status": OrderStatus.SHIPPED.value, "can_cancel": False, "refund_percentage": 0.0},
    {"order_status": OrderStatus.DELIVERED.value, "can_cancel": False, "refund_percentage": 0.0},
]

DEFAULT_TERMS = [
    {"title": "Response Time", "content": "We will respond to your cancellation request within 48 hours."},
    {"title": "Refund Processing", "content": "Approved refunds will be processed within 5-7 business days."},
    {
        "title": "Refund Amount",
        "content": "Refund amount depends on order status and time of cancellation request.",
    },
]

# Fields UpdatePolicy may replace wholesale
UPDATABLE_FIELDS = (
    "refund_percentage",
    "response_time_hours",
    "allowed_reasons",
    "time_based_rules",
    "order_status_rules",
    "terms",
    "return_window_days",
    "return_refund_percentage",
    "re_request_cooldown_hours",
)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@refunds.entity(part_of="CancellationPolicy")
class TimeBasedRule:
    """Refund percentage for cancellations within ``time_frame_hours`` of ordering."""

    description = String(max_length=255)
    time_frame_hours = Integer(required=True, min_value=0)
    refund_percentage = Float(required=True, min_value=0.0, max_value=100.0)


@refunds.entity(part_of="CancellationPolicy")
class OrderStatusRule:
    """Whether an order in ``order_status`` can be cancelled, and at what refund."""

    order_status = String(required=True, max_length=50, choices=OrderStatus)
    can_cancel = Boolean(default=True)
    refund_percentage = Float(required=True, min_value=0.0, max_value=100.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@refunds.aggregate
class CancellationPolicy:
    refund_percentage = Float(
        min_value=0.0,
        max_value=100.0,
        default=DEFAULT_REFUND_PERCENTAGE,
    )
    response_time_hours = Integer(min_value=0, default=DEFAULT_RESPONSE_TIME_HOURS)
    allowed_reasons = Text()  # JSON list of reason strings
    time_based_rules = HasMany(TimeBasedRule)
    order_status_rules = HasMany(OrderStatusRule)
    terms = Text()  # JSON list of {"title", "content"}
    return_window_days = Integer(min_value=0, default=DEFAULT_RETURN_WINDOW_DAYS)
    return_refund_percentage = Float(
        min_value=0.0,
        max_value=100.0,
        default=DEFAULT_RETURN_REFUND_PERCENTAGE,
    )
    re_request_cooldown_hours = Integer(min_value=0, default=DEFAULT_RE_REQUEST_COOLDOWN_HOURS)
    is_active = Boolean(default=True)
    active_key = String(max_length=20, unique=True)
    last_updated = DateTime()
    updated_by = String(max_length=100)

    @classmethod
    def default(cls):
        """The hard-coded policy used when none has been configured."""
        policy = cls(
            refund_percentage=DEFAULT_REFUND_PERCENTAGE,
            response_time_hours=DEFAULT_RESPONSE_TIME_HOURS,
            allowed_reasons=json.dumps(DEFAULT_REASONS),
            terms=json.dumps(DEFAULT_TERMS),
            is_active=True,
            active_key=ACTIVE_KEY,
            last_updated=utcnow(),
            updated_by="SYSTEM",
        )
        policy._replace_rules(DEFAULT_TIME_BASED_RULES, DEFAULT_ORDER_STATUS_RULES)
        return policy

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def reasons(self) -> list[str]:
        return json.loads(self.allowed_reasons) if self.allowed_reasons else []

    @property
    def terms_list(self) -> list[dict]:
        return json.loads(self.terms) if self.terms else []

    def status_rule_for(self, status: str):
        return next(
            (r for r in (self.order_status_rules or []) if r.order_status == status),
            None,
        )

    def time_rule_for(self, elapsed_hours: float):
        """Smallest time frame whose threshold covers ``elapsed_hours``."""
        covering = [r for r in (self.time_based_rules or []) if r.time_frame_hours >= elapsed_hours]
        if not covering:
            return None
        return min(covering, key=lambda r: r.time_frame_hours)

    def can_cancel(self, status: str) -> bool:
        rule = self.status_rule_for(status)
        return rule is None or bool(rule.can_cancel)

    def resolve_refund_percentage(self, order, now: datetime | None = None) -> float:
        rule = self.status_rule_for(order.status)
        if rule is not None:
            return rule.refund_percentage

        if order.order_date:
            elapsed = hours_between(order.order_date, now or utcnow())
            time_rule = self.time_rule_for(elapsed)
            if time_rule is not None:
                return time_rule.refund_percentage

        return self.refund_percentage

    # -------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------
    def _replace_rules(self, time_rules: list[dict] | None, status_rules: list[dict] | None) -> None:
        if time_rules is not None:
            for rule in list(self.time_based_rules or []):
                self.remove_time_based_rules(rule)
            for data in time_rules:
                self.add_time_based_rules(TimeBasedRule(**data))

        if status_rules is not None:
            seen = set()
            for data in status_rules:
                if data.get("order_status") in seen:
                    raise ValidationError(
                        {"order_status_rules": [f"Duplicate rule for status {data.get('order_status')}"]}
                    )
                seen.add(data.get("order_status"))
            for rule in list(self.order_status_rules or []):
                self.remove_order_status_rules(rule)
            for data in status_rules:
                self.add_order_status_rules(OrderStatusRule(**data))

    def update(self, updated_by: str | None = None, **fields) -> list[str]:
        """Replace the supplied fields; absent (``None``) fields are kept."""
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError({"policy": [f"Unknown policy fields: {', '.join(sorted(unknown))}"]})

        changed = [name for name, value in fields.items() if value is not None]
        if not changed:
            return []

        for name in changed:
            value = fields[name]
            if name in ("allowed_reasons", "terms"):
                setattr(self, name, json.dumps(value))
            elif name not in ("time_based_rules", "order_status_rules"):
                setattr(self, name, value)

        self._replace_rules(fields.get("time_based_rules"), fields.get("order_status_rules"))

        now = utcnow()
        self.is_active = True
        self.active_key = ACTIVE_KEY
        self.last_updated = now
        self.updated_by = updated_by
        self.raise_(
            PolicyUpdated(
                policy_id=str(self.id),
                changed_fields=json.dumps(sorted(changed)),
                updated_by=updated_by or "",
                updated_at=now,
            )
        )
        return changed

    def to_dict(self) -> dict:
        return {
            "policy_id": str(self.id),
            "refund_percentage": self.refund_percentage,
            "response_time_hours": self.response_time_hours,
            "allowed_reasons": self.reasons,
            "time_based_rules": [
                {
                    "description": r.description,
                    "time_frame_hours": r.time_frame_hours,
                    "refund_percentage": r.refund_percentage,
                }
                for r in sorted(self.time_based_rules or [], key=lambda r: r.time_frame_hours)
            ],
            "order_status_rules": [
                {
                    "order_status": r.order_status,
                    "can_cancel": bool(r.can_cancel),
                    "refund_percentage": r.refund_percentage,
                }
                for r in (self.order_status_rules or [])
            ],
            "terms": self.terms_list,
            "return_window_days": self.return_window_days,
            "return_refund_percentage": self.return_refund_percentage,
            "re_request_cooldown_hours": self.re_request_cooldown_hours,
            "is_active": bool(self.is_active),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "updated_by": self.updated_by,
        }
