"""CancellationRequest aggregate: one customer attempt to void an order or some of its lines.

Requests live apart from the Order; the workflow handlers move the order
through its state machine when a request is approved.

State Machine:
    PENDING → APPROVED → (refund PROCESSING → COMPLETED)
    PENDING → REJECTED

A request never returns to PENDING. While PENDING, or APPROVED for a
whole-order request, it holds ``active_order_key`` (unique), so an order has
at most one active request. A partial request lists the cancelled order
lines and is refunded per line.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from refunds.cancellation.events import (
    CancellationApproved,
    CancellationRefundCompleted,
    CancellationRejected,
    CancellationRequested,
)
from refunds.clock import as_utc, utcnow
from refunds.domain import refunds
from refunds.errors import Conflict, InvalidState
from refunds.money import multiply, percentage_of, total


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class CancellationStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class CancellationType(Enum):
    FULL_ORDER = "Full_Order"
    PARTIAL_ITEMS = "Partial_Items"


class RefundStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class RefundMethod(Enum):
    ORIGINAL_PAYMENT_METHOD = "Original_Payment_Method"
    BANK_TRANSFER = "Bank_Transfer"
    WALLET_CREDIT = "Wallet_Credit"


_ACTIVE_STATUSES = {CancellationStatus.PENDING, CancellationStatus.APPROVED}


def generate_refund_id(now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"REF-{int(now.timestamp() * 1000)}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@refunds.value_object(part_of="CancellationRequest")
class CancellationDecision:
    """Admin response; ``refund_percentage`` is pre-filled at request time."""

    processed_by = String(max_length=100)
    processed_date = DateTime()
    comments = String(max_length=1000)
    refund_percentage = Float(min_value=0.0, max_value=100.0)
    refund_amount = Float(min_value=0.0)


@refunds.value_object(part_of="CancellationRequest")
class CancellationRefund:
    refund_status = String(max_length=20, choices=RefundStatus)
    refund_id = String(max_length=100)
    refund_date = DateTime()
    refund_method = String(max_length=50, choices=RefundMethod)


@refunds.value_object(part_of="CancellationRequest")
class DeliverySnapshot:
    """The order's delivery situation when the cancellation was requested."""

    order_status = String(max_length=50)
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    was_past_delivery_date = Boolean(default=False)


@refunds.entity(part_of="CancellationRequest")
class CancelledLine:
    """Snapshot of an order line named in a partial cancellation."""

    item_id = Identifier(required=True)
    name = String(max_length=255)
    size = String(max_length=20)
    quantity = Integer(min_value=1)
    item_total = Float(min_value=0.0, default=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@refunds.aggregate
class CancellationRequest:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True, max_length=100)
    additional_reason = String(max_length=500)
    status = String(
        max_length=20,
        choices=CancellationStatus,
        default=CancellationStatus.PENDING.value,
    )
    request_date = DateTime()
    admin_response = ValueObject(CancellationDecision)
    refund_details = ValueObject(CancellationRefund)
    delivery_info = ValueObject(DeliverySnapshot)
    cancellation_type = String(
        max_length=20,
        choices=CancellationType,
        default=CancellationType.FULL_ORDER.value,
    )
    lines = HasMany(CancelledLine)
    active_order_key = String(max_length=50, unique=True)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def submit(
        cls,
        order,
        user_id: str,
        reason: str,
        refund_percentage: float,
        additional_reason: str | None = None,
        items: list | None = None,
    ):
        """Open a PENDING request carrying the policy's refund percentage.

        Passing ``items`` makes it a partial request over those order lines.
        """
        now = utcnow()
        estimated = as_utc(order.estimated_delivery_date)
        cancellation_type = CancellationType.PARTIAL_ITEMS if items else CancellationType.FULL_ORDER
        request = cls(
            order_id=str(order.id),
            user_id=user_id,
            reason=reason,
            additional_reason=additional_reason,
            status=CancellationStatus.PENDING.value,
            request_date=now,
            admin_response=CancellationDecision(refund_percentage=refund_percentage),
            delivery_info=DeliverySnapshot(
                order_status=order.status,
                estimated_delivery_date=order.estimated_delivery_date,
                actual_delivery_date=order.actual_delivery_date,
                was_past_delivery_date=bool(estimated and now > estimated),
            ),
            cancellation_type=cancellation_type.value,
            active_order_key=str(order.id),
        )
        for item in items or []:
            request.add_lines(
                CancelledLine(
                    item_id=str(item.id),
                    name=item.name,
                    size=item.size,
                    quantity=item.quantity,
                    item_total=item.item_total or multiply(item.price, item.quantity),
                )
            )
        request.raise_(
            CancellationRequested(
                request_id=str(request.id),
                order_id=str(order.id),
                user_id=user_id,
                reason=reason,
                refund_percentage=refund_percentage,
                cancellation_type=request.cancellation_type,
                requested_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return CancellationStatus(self.status) in _ACTIVE_STATUSES

    @property
    def is_partial(self) -> bool:
        return self.cancellation_type == CancellationType.PARTIAL_ITEMS.value

    @property
    def item_ids(self) -> list[str]:
        return [str(line.item_id) for line in self.lines or []]

    @property
    def total_item_value(self) -> float:
        return total(line.item_total for line in self.lines or [])

    @property
    def requested_percentage(self) -> float:
        return self.admin_response.refund_percentage if self.admin_response else 0.0

    @property
    def refund_amount(self) -> float:
        return (self.admin_response.refund_amount or 0.0) if self.admin_response else 0.0

    @property
    def refund_completed(self) -> bool:
        return bool(self.refund_details and self.refund_details.refund_status == RefundStatus.COMPLETED.value)

    def is_owned_by(self, user_id: str) -> bool:
        return str(self.user_id) == str(user_id)

    # -------------------------------------------------------------------
    # Admin decision
    # -------------------------------------------------------------------
    def _assert_pending(self) -> None:
        if CancellationStatus(self.status) != CancellationStatus.PENDING:
            raise Conflict(
                f"Cancellation request has already been {self.status.lower()}",
                request_id=str(self.id),
            )

    def approve(
        self,
        processed_by: str,
        order_total: float,
        comments: str | None = None,
        custom_refund_percentage: float | None = None,
    ) -> None:
        self._assert_pending()
        now = utcnow()
        percentage = (
            custom_refund_percentage if custom_refund_percentage is not None else self.requested_percentage
        )
        if self.is_partial:
            # Rounded per line, then summed
            amount = total(percentage_of(line.item_total, percentage) for line in self.lines)
        else:
            amount = percentage_of(order_total, percentage)

        self.status = CancellationStatus.APPROVED.value
        if self.is_partial:
            # The rest of the order stays open to further requests
            self.active_order_key = None
        self.admin_response = CancellationDecision(
            processed_by=processed_by,
            processed_date=now,
            comments=comments,
            refund_percentage=percentage,
            refund_amount=amount,
        )
        self.refund_details = CancellationRefund(
            refund_status=RefundStatus.PROCESSING.value,
            refund_method=RefundMethod.ORIGINAL_PAYMENT_METHOD.value,
        )
        self.raise_(
            CancellationApproved(
                request_id=str(self.id),
                order_id=str(self.order_id),
                processed_by=processed_by,
                refund_percentage=percentage,
                refund_amount=amount,
                approved_at=now,
            )
        )

    def reject(self, processed_by: str, comments: str | None = None) -> None:
        self._assert_pending()
        now = utcnow()
        self.status = CancellationStatus.REJECTED.value
        self.active_order_key = None
        self.admin_response = CancellationDecision(
            processed_by=processed_by,
            processed_date=now,
            comments=comments,
            refund_percentage=self.requested_percentage,
            refund_amount=0.0,
        )
        self.raise_(
            CancellationRejected(
                request_id=str(self.id),
                order_id=str(self.order_id),
                processed_by=processed_by,
                comments=comments or "",
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Refund completion
    # -------------------------------------------------------------------
    def complete_refund(self, transaction_id: str | None = None, comments: str | None = None) -> str:
        """Mark the refund COMPLETED and return its refund id."""
        if CancellationStatus(self.status) != CancellationStatus.APPROVED:
            raise InvalidState(
                "Refund can only be completed for approved cancellation requests",
                request_id=str(self.id),
                status=self.status,
            )
        if self.refund_completed:
            raise InvalidState(
                "Refund has already been completed",
                request_id=str(self.id),
                refund_id=self.refund_details.refund_id,
            )

        now = utcnow()
        refund_id = transaction_id or generate_refund_id(now)
        self.refund_details = CancellationRefund(
            refund_status=RefundStatus.COMPLETED.value,
            refund_id=refund_id,
            refund_date=now,
            refund_method=(self.refund_details.refund_method if self.refund_details else None)
            or RefundMethod.ORIGINAL_PAYMENT_METHOD.value,
        )
        if comments:
            self.admin_response = CancellationDecision(
                processed_by=self.admin_response.processed_by,
                processed_date=self.admin_response.processed_date,
                comments=comments,
                refund_percentage=self.admin_response.refund_percentage,
                refund_amount=self.admin_response.refund_amount,
            )
        self.raise_(
            CancellationRefundCompleted(
                request_id=str(self.id),
                order_id=str(self.order_id),
                refund_id=refund_id,
                refund_amount=self.refund_amount,
                completed_at=now,
            )
        )
        return refund_id

    def to_dict(self) -> dict:
        admin = self.admin_response
        refund = self.refund_details
        delivery = self.delivery_info
        return {
            "request_id": str(self.id),
            "order_id": str(self.order_id),
            "user_id": str(self.user_id),
            "reason": self.reason,
            "additional_reason": self.additional_reason,
            "status": self.status,
            "cancellation_type": self.cancellation_type,
            "items": [
                {
                    "item_id": str(line.item_id),
                    "name": line.name,
                    "size": line.size,
                    "quantity": line.quantity,
                    "item_total": line.item_total,
                    "refund_amount": percentage_of(line.item_total, admin.refund_percentage or 0.0) if admin else 0.0,
                }
                for line in self.lines or []
            ],
            "total_item_value": self.total_item_value if self.is_partial else None,
            "request_date": self.request_date.isoformat() if self.request_date else None,
            "admin_response": {
                "processed_by": admin.processed_by,
                "processed_date": admin.processed_date.isoformat() if admin.processed_date else None,
                "comments": admin.comments,
                "refund_percentage": admin.refund_percentage,
                "refund_amount": admin.refund_amount,
            }
            if admin
            else None,
            "refund_details": {
                "refund_status": refund.refund_status,
                "refund_id": refund.refund_id,
                "refund_date": refund.refund_date.isoformat() if refund.refund_date else None,
                "refund_method": refund.refund_method,
            }
            if refund
            else None,
            "delivery_info": {
                "order_status": delivery.order_status,
                "estimated_delivery_date": delivery.estimated_delivery_date.isoformat()
                if delivery.estimated_delivery_date
                else None,
                "actual_delivery_date": delivery.actual_delivery_date.isoformat()
                if delivery.actual_delivery_date
                else None,
                "was_past_delivery_date": bool(delivery.was_past_delivery_date),
            }
            if delivery
            else None,
        }
