# cartflow/repos/voucher_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from cartflow.data.models.voucher import VoucherModel


class VoucherRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> list[VoucherModel]:
        stmt = (
            select(VoucherModel)
            .where(VoucherModel.status == "active")
            .order_by(VoucherModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def add(self, voucher: VoucherModel) -> VoucherModel:
        self.db.add(voucher)
        self.db.commit()
        self.db.refresh(voucher)
        return voucher
