# cartflow/data/models/cart_line.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint

from cartflow.data.database import Base


class CartLineModel(Base):
    """Remote mirror of one cart line, keyed by owner and product."""

    __tablename__ = "cart_lines"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    product_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    original_price = Column(Numeric(12, 2), nullable=True)
    quantity = Column(Integer, nullable=False)
    stock_limit = Column(Integer, nullable=True)
    weight_kg = Column(Numeric(8, 2), nullable=False, default=0)
    seller_id = Column(String, nullable=True)
    image_ref = Column(String, nullable=True)
    color_variant = Column(String, nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (UniqueConstraint("owner_id", "product_id", name="u_owner_product"),)
