"""Cancellation request store."""

from protean.exceptions import ObjectNotFoundError, ValidationError

from refunds.cancellation.cancellation import CancellationRequest, CancellationStatus
from refunds.domain import refunds
from refunds.errors import Conflict, NotFound


@refunds.repository(part_of=CancellationRequest)
class CancellationRequestRepository:
    def find_by_id(self, request_id: str) -> CancellationRequest:
        try:
            return self.get(request_id)
        except ObjectNotFoundError:
            raise NotFound("Cancellation request not found", request_id=request_id) from None

    def find_active_for_order(self, order_id: str) -> CancellationRequest | None:
        return self._dao.query.filter(active_order_key=str(order_id)).all().first

    def find_by_order(self, order_id: str) -> list[CancellationRequest]:
        return self._dao.query.filter(order_id=str(order_id)).limit(None).all().items

    def find_for_user(self, user_id: str) -> list[CancellationRequest]:
        return self._dao.query.filter(user_id=str(user_id)).limit(None).all().items

    def find_completed_refund(self, refund_id: str, user_id: str) -> CancellationRequest | None:
        """The user's approved request whose refund ``refund_id`` has completed."""
        approved = (
            self._dao.query.filter(user_id=str(user_id), status=CancellationStatus.APPROVED.value).limit(None).all()
        )
        for request in approved.items:
            if request.refund_completed and request.refund_details.refund_id == refund_id:
                return request
        return None

    def save_new(self, request: CancellationRequest) -> None:
        """Persist a new request; a second active request for the order is a conflict."""
        try:
            self.add(request)
        except ValidationError as exc:
            if "active_order_key" in exc.messages:
                raise Conflict(
                    "An active cancellation request already exists for this order",
                    order_id=str(request.order_id),
                ) from exc
            raise
