# cartflow/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Float
from sqlalchemy.orm import relationship

from cartflow.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(String, nullable=True, index=True)

    status = Column(String, nullable=False, default="Pending")  # Pending, Paid, Shipped, Delivered
    total_amount = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    item_count = Column(Integer, nullable=False)

    summary_title = Column(String, nullable=True)
    summary_image = Column(String, nullable=True)
    color = Column(String, nullable=True)
    voucher_code = Column(String, nullable=True)
    payment_method = Column(String, nullable=False)

    dropoff_lat = Column(Float, nullable=True)
    dropoff_lng = Column(Float, nullable=True)
    dropoff_address = Column(String, nullable=True)
    courier_quotation_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    lines = relationship(
        "OrderLineModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
