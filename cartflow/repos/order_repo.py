# cartflow/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from cartflow.data.models.order import OrderModel
from cartflow.data.models.order_line import OrderLineModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def create_order_lines(self, lines: list[OrderLineModel]) -> list[OrderLineModel]:
        self.db.add_all(lines)
        self.db.commit()
        return lines

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_lines(self, order_id: int) -> list[OrderLineModel]:
        stmt = (
            select(OrderLineModel)
            .where(OrderLineModel.order_id == order_id)
            .order_by(OrderLineModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def rollback(self):
        self.db.rollback()
