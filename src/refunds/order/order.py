"""Order aggregate (CQRS): the purchase record whose lifecycle refunds act on.

Orders are created at checkout (outside this context) and recorded here via
``RecordOrder``. The aggregate owns the status state machine and keeps an
append-only status history. It never persists itself; command handlers do.

State Machine:
    PENDING → PROCESSING → SHIPPED → DELIVERED → RETURNED → REFUNDED
    PENDING → {CANCELLED, FAILED, ON_HOLD}
    PROCESSING → {CANCELLED, ON_HOLD}
    ON_HOLD → {PROCESSING, CANCELLED, FAILED}
    {SHIPPED, DELIVERED} → PARTIAL_RETURN → PARTIAL_REFUND
    SHIPPED → RETURNED
    CANCELLED → REFUNDED
"""

import json
from datetime import datetime
from enum import Enum

from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from refunds.clock import as_utc, hours_between, utcnow
from refunds.domain import refunds
from refunds.errors import InvalidState, InvalidTransition
from refunds.money import multiply, subtract, to_money, total
from refunds.order.events import (
    OrderLinesCancelled,
    OrderPaymentStatusChanged,
    OrderRecorded,
    OrderRefundRecorded,
    OrderStatusChanged,
)

SYSTEM_ACTOR = "SYSTEM"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"
    RETURNED = "Returned"
    PARTIAL_REFUND = "Partial_Refund"
    PARTIAL_RETURN = "Partial_Return"
    ON_HOLD = "On_Hold"
    FAILED = "Failed"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUND_PROCESSING = "Refund_Processing"
    REFUND_SUCCESSFUL = "Refund_Successful"


class PaymentMethod(Enum):
    ONLINE = "Online Payment"
    CASH_ON_DELIVERY = "Cash on Delivery"


class ItemType(Enum):
    PRODUCT = "Product"
    BUNDLE = "Bundle"


class LineStatus(Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.ON_HOLD},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.PARTIAL_RETURN},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED, OrderStatus.PARTIAL_RETURN},
    OrderStatus.ON_HOLD: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.FAILED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.PARTIAL_RETURN: {OrderStatus.PARTIAL_REFUND},
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # terminal
    OrderStatus.PARTIAL_REFUND: set(),  # terminal
    OrderStatus.FAILED: set(),  # terminal
}

_STATUS_DISPLAY = {
    OrderStatus.PENDING: ("Pending", "yellow", "clock", "Order placed, awaiting payment confirmation"),
    OrderStatus.PROCESSING: ("Processing", "blue", "package", "Payment confirmed, preparing your order"),
    OrderStatus.SHIPPED: ("Shipped", "purple", "truck", "Your order is on the way"),
    OrderStatus.DELIVERED: ("Delivered", "green", "check-circle", "Order has been delivered"),
    OrderStatus.CANCELLED: ("Cancelled", "red", "x-circle", "Order has been cancelled"),
    OrderStatus.REFUNDED: ("Refunded", "green", "credit-card", "Payment has been refunded"),
    OrderStatus.RETURNED: ("Returned", "orange", "rotate-ccw", "Order has been returned"),
    OrderStatus.PARTIAL_REFUND: ("Partial Refund", "teal", "credit-card", "Partial refund has been processed"),
    OrderStatus.PARTIAL_RETURN: ("Partial Return", "amber", "rotate-ccw", "Some items have been returned"),
    OrderStatus.ON_HOLD: ("On Hold", "gray", "pause", "Order processing temporarily paused"),
    OrderStatus.FAILED: ("Failed", "red", "alert-triangle", "Order processing failed"),
}


def available_transitions(status: OrderStatus | str) -> list[str]:
    """Legal next statuses for ``status``, in a stable order."""
    current = OrderStatus(status)
    allowed = _VALID_TRANSITIONS.get(current, set())
    return [s.value for s in OrderStatus if s in allowed]


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    return current == target or target in _VALID_TRANSITIONS.get(current, set())


def status_display_info(status: str) -> dict:
    try:
        label, color, icon, description = _STATUS_DISPLAY[OrderStatus(status)]
    except ValueError:
        label, color, icon, description = status, "gray", "help-circle", "Status information unavailable"
    return {"label": label, "color": color, "icon": icon, "description": description}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@refunds.value_object(part_of="Order")
class OrderRefundDetails:
    """Refund booked against the whole order."""

    refund_id = String(max_length=100)
    refund_amount = Float()
    refund_percentage = Float()
    refund_date = DateTime()
    retained_amount = Float()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@refunds.entity(part_of="Order")
class LineItem:
    """A single product or bundle line of the order.

    ``item_type`` is the discriminant: product lines reference a product and
    size at ``unit_price``; bundle lines reference a bundle at ``bundle_price``.
    """

    item_type = String(required=True, max_length=20, choices=ItemType)
    product_id = Identifier()
    bundle_id = Identifier()
    name = String(max_length=255)
    image = String(max_length=500)
    size = String(max_length=20)
    unit_price = Float(min_value=0.0)
    bundle_price = Float(min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    item_total = Float()
    status = String(max_length=20, choices=LineStatus, default=LineStatus.ACTIVE.value)

    @property
    def price(self) -> float:
        if ItemType(self.item_type) == ItemType.BUNDLE and self.bundle_price:
            return to_money(self.bundle_price)
        return to_money(self.unit_price or 0)

    @property
    def reference_id(self) -> str | None:
        ref = self.bundle_id if ItemType(self.item_type) == ItemType.BUNDLE else self.product_id
        return str(ref) if ref else None

    @property
    def is_active(self) -> bool:
        return LineStatus(self.status or LineStatus.ACTIVE.value) == LineStatus.ACTIVE


@refunds.entity(part_of="Order")
class StatusHistoryEntry:
    """One append-only entry of the order's status log."""

    sequence = Integer(required=True)
    status = String(required=True, max_length=50, choices=OrderStatus)
    reason = String(max_length=500)
    updated_by = String(max_length=100, default=SYSTEM_ACTOR)
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@refunds.aggregate
class Order:
    order_code = String(required=True, max_length=50, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(LineItem)
    status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    payment_method = String(max_length=50)
    payment_status = String(
        max_length=50,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    total_amt = Float(required=True, min_value=0.0)
    sub_total_amt = Float(min_value=0.0)
    order_date = DateTime()
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    shipped_date = DateTime()
    delivered_date = DateTime()
    delivery_duration_hours = Float()
    refund_date = DateTime()
    last_status_update = DateTime()
    refund_details = ValueObject(OrderRefundDetails)
    status_history = HasMany(StatusHistoryEntry)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def record(
        cls,
        order_code: str,
        user_id: str,
        items_data: list[dict],
        total_amt: float,
        payment_method: str | None = None,
        payment_status: str = PaymentStatus.PENDING.value,
        sub_total_amt: float | None = None,
        order_date: datetime | None = None,
        estimated_delivery_date: datetime | None = None,
    ):
        """Record an order placed at checkout, starting in PENDING."""
        now = utcnow()
        order = cls(
            order_code=order_code,
            user_id=user_id,
            total_amt=to_money(total_amt),
            sub_total_amt=to_money(sub_total_amt if sub_total_amt is not None else total_amt),
            payment_method=payment_method,
            payment_status=payment_status,
            order_date=order_date or now,
            estimated_delivery_date=estimated_delivery_date,
            status=OrderStatus.PENDING.value,
            last_status_update=now,
        )
        for item_data in items_data:
            data = dict(item_data)
            if data.get("item_id"):
                data["id"] = data.pop("item_id")
            else:
                data.pop("item_id", None)
            item = LineItem(**data)
            item.item_total = multiply(item.price, item.quantity)
            order.add_items(item)

        order._append_history(OrderStatus.PENDING, "Order placed", SYSTEM_ACTOR, now)
        order.raise_(
            OrderRecorded(
                order_id=str(order.id),
                order_code=order_code,
                user_id=user_id,
                items=json.dumps(items_data, default=str),
                item_count=len(items_data),
                total_amt=order.total_amt,
                payment_method=payment_method or "",
                payment_status=payment_status,
                recorded_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_owned_by(self, user_id: str) -> bool:
        return str(self.user_id) == str(user_id)

    def find_item(self, item_id: str):
        return next((i for i in (self.items or []) if str(i.id) == str(item_id)), None)

    @property
    def active_items(self) -> list:
        return [item for item in (self.items or []) if item.is_active]

    @property
    def history(self) -> list:
        """Status history, oldest first."""
        return sorted(self.status_history or [], key=lambda e: e.sequence)

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _append_history(self, status: OrderStatus, reason, actor, timestamp) -> None:
        self.add_status_history(
            StatusHistoryEntry(
                sequence=len(self.status_history or []) + 1,
                status=status.value,
                reason=reason,
                updated_by=actor or SYSTEM_ACTOR,
                timestamp=timestamp,
            )
        )

    def change_status(
        self,
        target: OrderStatus | str,
        reason: str | None = None,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Move the order to ``target``, validating against the transition table.

        A self-transition is allowed and only appends a history entry.
        """
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        if not can_transition(current, target):
            raise InvalidTransition(current.value, target.value)

        now = now or utcnow()
        self._append_history(target, reason, actor, now)
        self.last_status_update = now

        if target != current:
            self.status = target.value
            if target == OrderStatus.SHIPPED:
                self.shipped_date = now
            elif target == OrderStatus.DELIVERED:
                self.delivered_date = now
                self.actual_delivery_date = now
                if self.shipped_date:
                    self.delivery_duration_hours = round(hours_between(self.shipped_date, now), 2)
            elif target == OrderStatus.REFUNDED:
                self.refund_date = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                reason=reason or "",
                updated_by=actor or SYSTEM_ACTOR,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment / refund bookkeeping
    # -------------------------------------------------------------------
    def is_paid_online(self) -> bool:
        return self.payment_method == PaymentMethod.ONLINE.value and self.payment_status == PaymentStatus.PAID.value

    def _set_payment_status(self, status: PaymentStatus) -> None:
        previous = self.payment_status
        self.payment_status = status.value
        self.raise_(
            OrderPaymentStatusChanged(
                order_id=str(self.id),
                previous_status=previous or "",
                new_status=status.value,
                changed_at=utcnow(),
            )
        )

    def mark_refund_processing(self) -> None:
        self._set_payment_status(PaymentStatus.REFUND_PROCESSING)

    def record_refund(self, refund_id: str, refund_amount: float, refund_percentage: float | None = None) -> None:
        """Book a completed refund; the unrefunded remainder is retained."""
        now = utcnow()
        amount = to_money(refund_amount)
        retained = subtract(self.total_amt, amount)
        self.refund_details = OrderRefundDetails(
            refund_id=refund_id,
            refund_amount=amount,
            refund_percentage=refund_percentage,
            refund_date=now,
            retained_amount=retained,
        )
        self._set_payment_status(PaymentStatus.REFUND_SUCCESSFUL)
        self.raise_(
            OrderRefundRecorded(
                order_id=str(self.id),
                refund_id=refund_id,
                refund_amount=amount,
                refund_percentage=refund_percentage,
                retained_amount=retained,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Partial cancellation
    # -------------------------------------------------------------------
    def cancel_lines(self, item_ids: list[str], actor: str | None = None, reason: str | None = None) -> None:
        """Cancel some active lines and re-total the order.

        Cancelling the last active line cancels the whole order instead, and
        the original totals are kept for accounting.
        """
        wanted = {str(item_id) for item_id in item_ids}
        lines = [item for item in self.active_items if str(item.id) in wanted]
        if not wanted or len(lines) != len(wanted):
            raise InvalidState("Only active lines of the order can be cancelled", order_id=str(self.id))

        now = utcnow()
        for line in lines:
            line.status = LineStatus.CANCELLED.value

        remaining = self.active_items
        if remaining:
            remaining_total = total(item.item_total or multiply(item.price, item.quantity) for item in remaining)
            self.sub_total_amt = remaining_total
            self.total_amt = remaining_total
        else:
            remaining_total = 0.0
            self.change_status(OrderStatus.CANCELLED, reason=reason or "All lines cancelled", actor=actor, now=now)
            self.mark_refund_processing()

        self.raise_(
            OrderLinesCancelled(
                order_id=str(self.id),
                item_ids=json.dumps(sorted(wanted)),
                remaining_total=remaining_total,
                cancelled_by=actor or SYSTEM_ACTOR,
                cancelled_at=now,
            )
        )

    def delivered_at(self) -> datetime | None:
        return as_utc(self.actual_delivery_date or self.delivered_date)

    def to_dict(self) -> dict:
        def _iso(value):
            value = as_utc(value)
            return value.isoformat() if value else None

        return {
            "order_id": str(self.id),
            "order_code": self.order_code,
            "user_id": str(self.user_id),
            "status": self.status,
            "status_info": status_display_info(self.status),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "total_amt": self.total_amt,
            "sub_total_amt": self.sub_total_amt,
            "order_date": _iso(self.order_date),
            "estimated_delivery_date": _iso(self.estimated_delivery_date),
            "actual_delivery_date": _iso(self.actual_delivery_date),
            "shipped_date": _iso(self.shipped_date),
            "delivered_date": _iso(self.delivered_date),
            "delivery_duration_hours": self.delivery_duration_hours,
            "refund_date": _iso(self.refund_date),
            "refund_details": (
                {
                    "refund_id": self.refund_details.refund_id,
                    "refund_amount": self.refund_details.refund_amount,
                    "refund_percentage": self.refund_details.refund_percentage,
                    "retained_amount": self.refund_details.retained_amount,
                    "refund_date": _iso(self.refund_details.refund_date),
                }
                if self.refund_details
                else None
            ),
            "items": [
                {
                    "item_id": str(item.id),
                    "item_type": item.item_type,
                    "reference_id": item.reference_id,
                    "name": item.name,
                    "size": item.size,
                    "price": item.price,
                    "quantity": item.quantity,
                    "item_total": item.item_total,
                    "status": item.status,
                }
                for item in (self.items or [])
            ],
            "status_history": [
                {
                    "status": entry.status,
                    "reason": entry.reason,
                    "updated_by": entry.updated_by,
                    "timestamp": _iso(entry.timestamp),
                }
                for entry in self.history
            ],
        }
