"""Return request store."""

from protean.exceptions import ObjectNotFoundError, ValidationError

from refunds.domain import refunds
from refunds.errors import Conflict, NotFound
from refunds.returns.return_request import ReturnRequest, in_flight_key_for


@refunds.repository(part_of=ReturnRequest)
class ReturnRequestRepository:
    def find_by_id(self, return_id: str) -> ReturnRequest:
        try:
            return self.get(return_id)
        except ObjectNotFoundError:
            raise NotFound("Return request not found", return_id=return_id) from None

    def get_owned(self, return_id: str, user_id: str) -> ReturnRequest:
        request = self.find_by_id(return_id)
        if not request.is_owned_by(user_id):
            raise NotFound("Return request not found", return_id=return_id)
        return request

    def find_in_flight(self, order_id: str, item_id: str) -> ReturnRequest | None:
        return self._dao.query.filter(in_flight_key=in_flight_key_for(order_id, item_id)).all().first

    def find_for_order(self, order_id: str) -> list[ReturnRequest]:
        return self._dao.query.filter(order_id=str(order_id)).limit(None).all().items

    def find_for_user(self, user_id: str) -> list[ReturnRequest]:
        return self._dao.query.filter(user_id=str(user_id)).limit(None).all().items

    def save_guarded(self, request: ReturnRequest) -> None:
        """Persist, turning a clash on the in-flight key into a conflict."""
        try:
            self.add(request)
        except ValidationError as exc:
            if "in_flight_key" in exc.messages:
                raise Conflict(
                    "A return for this item is already in progress",
                    order_id=str(request.order_id),
                    item_id=str(request.item_id),
                ) from exc
            raise
