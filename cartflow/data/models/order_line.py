# cartflow/data/models/order_line.py
from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.orm import relationship

from cartflow.data.database import Base


class OrderLineModel(Base):
    """Snapshot of a purchased cart line. Never updated from the catalog."""

    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(String, nullable=False, index=True)
    product_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    image = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)

    buyer_name = Column(String, nullable=True)
    buyer_address = Column(String, nullable=True)
    payment_method = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Pending")

    order = relationship("OrderModel", back_populates="lines")
