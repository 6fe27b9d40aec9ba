# cartflow/repos/cart_repo.py
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from cartflow.data.models.cart_line import CartLineModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_lines(self, owner_id: str) -> list[CartLineModel]:
        stmt = (
            select(CartLineModel)
            .where(CartLineModel.owner_id == owner_id)
            .order_by(CartLineModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_line(self, owner_id: str, product_id: str) -> CartLineModel | None:
        stmt = select(CartLineModel).where(
            CartLineModel.owner_id == owner_id,
            CartLineModel.product_id == product_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_line(self, owner_id: str, values: dict) -> CartLineModel:
        line = self.get_line(owner_id, values["product_id"])
        if line is None:
            line = CartLineModel(owner_id=owner_id, **values)
            self.db.add(line)
        else:
            for key, value in values.items():
                setattr(line, key, value)
        self.db.commit()
        return line

    def delete_line(self, owner_id: str, product_id: str) -> int:
        res = self.db.execute(
            delete(CartLineModel).where(
                CartLineModel.owner_id == owner_id,
                CartLineModel.product_id == product_id,
            )
        )
        self.db.commit()
        return res.rowcount

    def delete_all(self, owner_id: str) -> int:
        res = self.db.execute(
            delete(CartLineModel).where(CartLineModel.owner_id == owner_id)
        )
        self.db.commit()
        return res.rowcount
