# cartflow/data/models/voucher.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime

from cartflow.data.database import Base


class VoucherModel(Base):
    __tablename__ = "vouchers"

    id = Column(Integer, primary_key=True)
    seller_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=True)
    code = Column(String, nullable=False)

    discount_type = Column(String, nullable=False)  # percentage | fixed
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_purchase = Column(Numeric(12, 2), nullable=True)
    max_discount = Column(Numeric(12, 2), nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_to = Column(DateTime(timezone=True), nullable=True)
    status = Column(String, nullable=False, default="active")
