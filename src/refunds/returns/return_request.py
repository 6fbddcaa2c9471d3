"""ReturnRequest aggregate (CQRS): one attempt to send back a delivered line item.

State Machine:
    REQUESTED → UNDER_REVIEW → {APPROVED, REJECTED}
    REQUESTED → {APPROVED, REJECTED, CANCELLED}
    APPROVED → PICKUP_SCHEDULED → PICKED_UP → INSPECTED → REFUND_PROCESSED → COMPLETED
    APPROVED → REFUND_PROCESSED (refund completed)
    REJECTED → REQUESTED (re-request after the cooldown)

Every change appends to ``timeline``. Requests that are neither REJECTED nor
CANCELLED count against the line's purchased quantity. While a request is in
flight it holds ``in_flight_key`` (unique per order line).
"""

from datetime import datetime, timedelta
from enum import Enum

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

from refunds.cancellation.cancellation import RefundMethod, RefundStatus
from refunds.clock import as_utc, utcnow
from refunds.domain import refunds
from refunds.errors import Conflict, InvalidState, TooSoon
from refunds.money import multiply, to_money
from refunds.returns.events import (
    ReturnApproved,
    ReturnCancelled,
    ReturnRejected,
    ReturnReRequested,
    ReturnRefundStatusUpdated,
    ReturnRequested,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReturnStatus(Enum):
    REQUESTED = "Requested"
    UNDER_REVIEW = "Under_Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PICKUP_SCHEDULED = "Pickup_Scheduled"
    PICKED_UP = "Picked_Up"
    INSPECTED = "Inspected"
    REFUND_PROCESSED = "Refund_Processed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ReturnReason(Enum):
    DEFECTIVE_PRODUCT = "Defective_Product"
    WRONG_SIZE = "Wrong_Size"
    WRONG_ITEM = "Wrong_Item"
    QUALITY_ISSUE = "Quality_Issue"
    NOT_AS_DESCRIBED = "Not_As_Described"
    DAMAGED_IN_SHIPPING = "Damaged_In_Shipping"
    OTHER = "Other"


# Do not count against the purchased quantity
RELEASED_STATUSES = {ReturnStatus.REJECTED, ReturnStatus.CANCELLED}

# No longer in flight; the line may be requested again
SETTLED_STATUSES = RELEASED_STATUSES | {ReturnStatus.REFUND_PROCESSED, ReturnStatus.COMPLETED}

_DECIDABLE_STATUSES = {ReturnStatus.REQUESTED, ReturnStatus.UNDER_REVIEW}

TIMELINE_RE_REQUESTED = "Re_Requested"
TIMELINE_CUSTOM_AMOUNT = "Custom_Refund_Amount"


def in_flight_key_for(order_id: str, item_id: str) -> str:
    return f"{order_id}:{item_id}"


def refund_timeline_tag(refund_status: RefundStatus) -> str:
    return f"Refund_{refund_status.value}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@refunds.value_object(part_of="ReturnRequest")
class ReturnItemSnapshot:
    """The order line as it was when the return was requested."""

    item_type = String(max_length=20)
    product_id = Identifier()
    bundle_id = Identifier()
    name = String(max_length=255)
    image = String(max_length=500)
    size = String(max_length=20)
    quantity = Integer(min_value=1)
    original_price = Float(min_value=0.0)
    refund_amount = Float(min_value=0.0)  # per unit


@refunds.value_object(part_of="ReturnRequest")
class ReturnDecision:
    processed_by = String(max_length=100)
    processed_date = DateTime()
    comments = String(max_length=1000)
    inspection_notes = String(max_length=1000)


@refunds.value_object(part_of="ReturnRequest")
class ReturnRefund:
    refund_status = String(max_length=20, choices=RefundStatus)
    refund_id = String(max_length=100)
    refund_method = String(max_length=50, choices=RefundMethod)
    actual_refund_amount = Float(min_value=0.0)
    original_calculated_amount = Float(min_value=0.0)
    is_custom_amount = Boolean(default=False)
    refund_date = DateTime()
    admin_notes = String(max_length=1000)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@refunds.entity(part_of="ReturnRequest")
class TimelineEntry:
    """Append-only audit entry."""

    sequence = Integer(required=True)
    status = String(required=True, max_length=50)
    note = String(max_length=1000)
    actor = String(max_length=100)
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@refunds.aggregate
class ReturnRequest:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    reason = String(required=True, max_length=50, choices=ReturnReason)
    additional_comments = String(max_length=500)
    status = String(
        max_length=50,
        choices=ReturnStatus,
        default=ReturnStatus.REQUESTED.value,
    )
    request_date = DateTime()
    eligibility_expiry_date = DateTime()
    item_details = ValueObject(ReturnItemSnapshot)
    admin_response = ValueObject(ReturnDecision)
    refund_details = ValueObject(ReturnRefund)
    timeline = HasMany(TimelineEntry)
    in_flight_key = String(max_length=100, unique=True)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(
        cls,
        order,
        item,
        user_id: str,
        reason: str,
        quantity: int,
        refund_per_unit: float,
        return_window_days: int,
        additional_comments: str | None = None,
    ):
        """Open a REQUESTED return for ``quantity`` units of ``item``."""
        now = utcnow()
        request = cls(
            order_id=str(order.id),
            user_id=user_id,
            item_id=str(item.id),
            reason=reason,
            additional_comments=additional_comments,
            status=ReturnStatus.REQUESTED.value,
            request_date=now,
            eligibility_expiry_date=order.delivered_at() + timedelta(days=return_window_days),
            item_details=ReturnItemSnapshot(
                item_type=item.item_type,
                product_id=item.product_id,
                bundle_id=item.bundle_id,
                name=item.name,
                image=item.image,
                size=item.size,
                quantity=quantity,
                original_price=item.price,
                refund_amount=to_money(refund_per_unit),
            ),
            in_flight_key=in_flight_key_for(order.id, item.id),
        )
        request._record(ReturnStatus.REQUESTED.value, "Return request submitted", user_id, now)
        request.raise_(
            ReturnRequested(
                return_id=str(request.id),
                order_id=str(order.id),
                item_id=str(item.id),
                user_id=user_id,
                quantity=quantity,
                reason=reason,
                expected_refund=request.expected_refund,
                requested_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def quantity(self) -> int:
        return self.item_details.quantity if self.item_details else 0

    @property
    def expected_refund(self) -> float:
        if not self.item_details:
            return 0.0
        return multiply(self.item_details.refund_amount, self.item_details.quantity)

    @property
    def counts_toward_quantity(self) -> bool:
        return ReturnStatus(self.status) not in RELEASED_STATUSES

    @property
    def is_in_flight(self) -> bool:
        return ReturnStatus(self.status) not in SETTLED_STATUSES

    @property
    def refund_amount(self) -> float:
        if self.refund_details and self.refund_details.actual_refund_amount is not None:
            return self.refund_details.actual_refund_amount
        return self.expected_refund

    @property
    def entries(self) -> list:
        """Timeline, oldest first."""
        return sorted(self.timeline or [], key=lambda e: e.sequence)

    def is_owned_by(self, user_id: str) -> bool:
        return str(self.user_id) == str(user_id)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _record(self, status: str, note: str | None, actor: str | None, timestamp: datetime | None = None) -> None:
        self.add_timeline(
            TimelineEntry(
                sequence=len(self.timeline or []) + 1,
                status=status,
                note=note,
                actor=actor,
                timestamp=timestamp or utcnow(),
            )
        )

    def _set_status(self, status: ReturnStatus) -> None:
        self.status = status.value
        if status in SETTLED_STATUSES:
            self.in_flight_key = None

    # -------------------------------------------------------------------
    # Admin review
    # -------------------------------------------------------------------
    def mark_under_review(self, actor: str) -> None:
        if ReturnStatus(self.status) != ReturnStatus.REQUESTED:
            raise InvalidState(
                f"Cannot review a return in {self.status} status",
                return_id=str(self.id),
            )
        self._set_status(ReturnStatus.UNDER_REVIEW)
        self._record(ReturnStatus.UNDER_REVIEW.value, "Return request under review", actor)

    def _assert_decidable(self) -> None:
        if ReturnStatus(self.status) not in _DECIDABLE_STATUSES:
            raise Conflict(
                f"Return request has already been processed ({self.status})",
                return_id=str(self.id),
            )

    def approve(
        self,
        processed_by: str,
        comments: str | None = None,
        inspection_notes: str | None = None,
        custom_refund_amount: float | None = None,
    ) -> None:
        self._assert_decidable()
        now = utcnow()
        calculated = self.expected_refund
        is_custom = custom_refund_amount is not None
        amount = to_money(custom_refund_amount) if is_custom else calculated

        self._set_status(ReturnStatus.APPROVED)
        self.admin_response = ReturnDecision(
            processed_by=processed_by,
            processed_date=now,
            comments=comments,
            inspection_notes=inspection_notes,
        )
        self.refund_details = ReturnRefund(
            refund_status=RefundStatus.PENDING.value,
            actual_refund_amount=amount,
            original_calculated_amount=calculated,
            is_custom_amount=is_custom,
        )
        self._record(ReturnStatus.APPROVED.value, comments or "Return request approved", processed_by, now)
        if is_custom:
            self._record(
                TIMELINE_CUSTOM_AMOUNT,
                f"Refund amount set to {amount:.2f} (calculated {calculated:.2f})",
                processed_by,
                now,
            )
        self.raise_(
            ReturnApproved(
                return_id=str(self.id),
                processed_by=processed_by,
                refund_amount=amount,
                approved_at=now,
            )
        )

    def reject(
        self,
        processed_by: str,
        comments: str | None = None,
        inspection_notes: str | None = None,
    ) -> None:
        self._assert_decidable()
        now = utcnow()
        self._set_status(ReturnStatus.REJECTED)
        self.admin_response = ReturnDecision(
            processed_by=processed_by,
            processed_date=now,
            comments=comments,
            inspection_notes=inspection_notes,
        )
        self._record(ReturnStatus.REJECTED.value, comments or "Return request rejected", processed_by, now)
        self.raise_(ReturnRejected(return_id=str(self.id), processed_by=processed_by, rejected_at=now))

    # -------------------------------------------------------------------
    # Refund tracking
    # -------------------------------------------------------------------
    def update_refund_status(
        self,
        refund_status: RefundStatus | str,
        actor: str,
        refund_id: str | None = None,
        refund_method: str | None = None,
        refund_amount: float | None = None,
        admin_notes: str | None = None,
    ) -> bool:
        """Record refund progress. Returns False for a repeated COMPLETED."""
        refund_status = RefundStatus(refund_status)
        if refund_status == RefundStatus.COMPLETED and self.refund_completed:
            return False

        now = utcnow()
        current = self.refund_details
        calculated = current.original_calculated_amount if current else self.expected_refund
        if refund_amount is not None:
            amount = to_money(refund_amount)
        elif current and current.actual_refund_amount is not None:
            amount = current.actual_refund_amount
        else:
            amount = calculated

        completed = refund_status == RefundStatus.COMPLETED
        self.refund_details = ReturnRefund(
            refund_status=refund_status.value,
            refund_id=refund_id or (current.refund_id if current else None),
            refund_method=refund_method or (current.refund_method if current else None),
            actual_refund_amount=amount,
            original_calculated_amount=calculated,
            is_custom_amount=bool(amount != calculated),
            refund_date=now if completed else (current.refund_date if current else None),
            admin_notes=admin_notes or (current.admin_notes if current else None),
        )
        # A released request must not start counting against the line again
        if completed and ReturnStatus(self.status) not in RELEASED_STATUSES:
            self._set_status(ReturnStatus.REFUND_PROCESSED)

        self._record(
            refund_timeline_tag(refund_status),
            admin_notes or f"Refund status updated to {refund_status.value}",
            actor,
            now,
        )
        self.raise_(
            ReturnRefundStatusUpdated(
                return_id=str(self.id),
                refund_status=refund_status.value,
                refund_amount=amount,
                updated_by=actor,
                updated_at=now,
            )
        )
        return True

    @property
    def refund_completed(self) -> bool:
        return bool(self.refund_details and self.refund_details.refund_status == RefundStatus.COMPLETED.value)

    def process_refund(self, actor: str, refund_id: str | None = None) -> None:
        """Complete the refund of an APPROVED return."""
        if ReturnStatus(self.status) != ReturnStatus.APPROVED:
            raise InvalidState(
                "Only approved returns can be refunded",
                return_id=str(self.id),
                status=self.status,
            )
        self.update_refund_status(
            RefundStatus.COMPLETED,
            actor=actor,
            refund_id=refund_id,
            refund_method=RefundMethod.ORIGINAL_PAYMENT_METHOD.value,
        )

    # -------------------------------------------------------------------
    # Customer actions
    # -------------------------------------------------------------------
    def re_request(self, user_id: str, cooldown_hours: int, now: datetime | None = None) -> None:
        """Reopen a REJECTED request once the cooldown since rejection has passed."""
        if ReturnStatus(self.status) != ReturnStatus.REJECTED:
            raise InvalidState("Only rejected returns can be re-requested", return_id=str(self.id))

        now = now or utcnow()
        processed = as_utc(self.admin_response.processed_date) if self.admin_response else None
        if processed is not None and now - processed < timedelta(hours=cooldown_hours):
            available_at = processed + timedelta(hours=cooldown_hours)
            raise TooSoon(
                f"Return can be re-requested after {available_at.isoformat()}",
                return_id=str(self.id),
                available_at=available_at.isoformat(),
            )

        self.status = ReturnStatus.REQUESTED.value
        self.in_flight_key = in_flight_key_for(self.order_id, self.item_id)
        self.admin_response = None
        self._record(TIMELINE_RE_REQUESTED, "Return re-requested by customer", user_id, now)
        self.raise_(ReturnReRequested(return_id=str(self.id), user_id=user_id, re_requested_at=now))

    def cancel(self, user_id: str) -> None:
        if ReturnStatus(self.status) != ReturnStatus.REQUESTED:
            raise InvalidState(
                "Only returns awaiting review can be cancelled",
                return_id=str(self.id),
                status=self.status,
            )
        now = utcnow()
        self._set_status(ReturnStatus.CANCELLED)
        self._record(ReturnStatus.CANCELLED.value, "Return request cancelled by customer", user_id, now)
        self.raise_(ReturnCancelled(return_id=str(self.id), user_id=user_id, cancelled_at=now))

    def to_dict(self) -> dict:
        item = self.item_details
        admin = self.admin_response
        refund = self.refund_details
        return {
            "return_id": str(self.id),
            "order_id": str(self.order_id),
            "user_id": str(self.user_id),
            "item_id": str(self.item_id),
            "reason": self.reason,
            "additional_comments": self.additional_comments,
            "status": self.status,
            "request_date": self.request_date.isoformat() if self.request_date else None,
            "eligibility_expiry_date": self.eligibility_expiry_date.isoformat()
            if self.eligibility_expiry_date
            else None,
            "item_details": {
                "item_type": item.item_type,
                "product_id": item.product_id,
                "bundle_id": item.bundle_id,
                "name": item.name,
                "image": item.image,
                "size": item.size,
                "quantity": item.quantity,
                "original_price": item.original_price,
                "refund_amount": item.refund_amount,
            }
            if item
            else None,
            "admin_response": {
                "processed_by": admin.processed_by,
                "processed_date": admin.processed_date.isoformat() if admin.processed_date else None,
                "comments": admin.comments,
                "inspection_notes": admin.inspection_notes,
            }
            if admin
            else None,
            "refund_details": {
                "refund_status": refund.refund_status,
                "refund_id": refund.refund_id,
                "refund_method": refund.refund_method,
                "actual_refund_amount": refund.actual_refund_amount,
                "original_calculated_amount": refund.original_calculated_amount,
                "is_custom_amount": bool(refund.is_custom_amount),
                "refund_date": refund.refund_date.isoformat() if refund.refund_date else None,
                "admin_notes": refund.admin_notes,
            }
            if refund
            else None,
            "timeline": [
                {
                    "status": e.status,
                    "note": e.note,
                    "actor": e.actor,
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                }
                for e in self.entries
            ],
        }
