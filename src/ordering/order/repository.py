"""Repository for the Order aggregate."""

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    """Order queries beyond get/add.

    Both listings are newest first. The base repository caps unbounded
    queries, so the per-user history lifts the limit explicitly.
    """

    def find_for_user(self, user_id) -> list[Order]:
        return self._dao.query.filter(user_id=str(user_id)).order_by("-created_at").limit(None).all().items

    def page(self, page: int, size: int):
        """Return one zero-based page of all orders as a Protean ResultSet."""
        return self._dao.query.order_by("-created_at").offset(page * size).limit(size).all()
