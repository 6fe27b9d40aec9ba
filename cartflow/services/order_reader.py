# cartflow/services/order_reader.py
from sqlalchemy.orm import Session

from cartflow.domain.errors import CheckoutError
from cartflow.domain.schemas import OrderDetailOut, OrderLineOut, OrderOut
from cartflow.repos.order_repo import OrderRepo


class OrderReader:
    """Read side of placed orders, scoped to the buyer who placed them."""

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, order_id: int, buyer_id: str) -> OrderDetailOut:
        order = self.repo.get_order(order_id)
        # someone else's order is reported the same way as a missing one
        if order is None or order.buyer_id != buyer_id:
            raise CheckoutError(f"Order {order_id} not found", code="order_not_found")

        lines = [OrderLineOut.model_validate(line) for line in self.repo.get_order_lines(order_id)]
        return OrderDetailOut(**OrderOut.model_validate(order).model_dump(), lines=lines)
