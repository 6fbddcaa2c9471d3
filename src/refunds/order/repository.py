"""Order store: custom lookups on top of the standard repository."""

from protean.exceptions import ObjectNotFoundError

from refunds.domain import refunds
from refunds.errors import NotFound
from refunds.order.order import Order


@refunds.repository(part_of=Order)
class OrderRepository:
    def find_by_id(self, order_id: str) -> Order:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise NotFound("Order not found", order_id=order_id) from None

    def get_owned(self, order_id: str, user_id: str) -> Order:
        """Load an order, treating someone else's order as missing."""
        order = self.find_by_id(order_id)
        if not order.is_owned_by(user_id):
            raise NotFound("Order not found", order_id=order_id)
        return order

    def find_by_user_and_status(
        self,
        user_id: str,
        statuses: list[str] | str | None = None,
        order_id: str | None = None,
    ) -> list[Order]:
        """Every matching order of the user, without the default page cap."""
        criteria = {"user_id": user_id}
        if isinstance(statuses, str):
            criteria["status"] = statuses
        elif statuses:
            criteria["status__in"] = list(statuses)
        if order_id:
            criteria["id"] = str(order_id)
        return self._dao.query.filter(**criteria).limit(None).all().items

    def find_by_code(self, order_code: str) -> Order | None:
        return self._dao.query.filter(order_code=order_code).all().first
