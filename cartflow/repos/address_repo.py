# cartflow/repos/address_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from cartflow.data.models.saved_address import SavedAddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self, buyer_id: str) -> list[SavedAddressModel]:
        stmt = (
            select(SavedAddressModel)
            .where(
                SavedAddressModel.buyer_id == buyer_id,
                SavedAddressModel.deleted_at.is_(None),
            )
            .order_by(SavedAddressModel.is_default.desc(), SavedAddressModel.created_at, SavedAddressModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_active(self, buyer_id: str, address_id: int) -> SavedAddressModel | None:
        stmt = select(SavedAddressModel).where(
            SavedAddressModel.id == address_id,
            SavedAddressModel.buyer_id == buyer_id,
            SavedAddressModel.deleted_at.is_(None),
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, address: SavedAddressModel) -> SavedAddressModel:
        self.db.add(address)
        self.db.commit()
        self.db.refresh(address)
        return address

    def clear_default(self, buyer_id: str) -> None:
        self.db.execute(
            update(SavedAddressModel)
            .where(SavedAddressModel.buyer_id == buyer_id)
            .values(is_default=False)
        )

    def soft_delete(self, address: SavedAddressModel) -> SavedAddressModel:
        address.deleted_at = datetime.now(timezone.utc)
        address.is_default = False
        self.db.commit()
        return address

    def commit(self):
        self.db.commit()
