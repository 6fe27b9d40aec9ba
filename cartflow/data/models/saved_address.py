# cartflow/data/models/saved_address.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float

from cartflow.data.database import Base


class SavedAddressModel(Base):
    __tablename__ = "saved_addresses"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(String, nullable=False, index=True)

    label = Column(String, nullable=False, default="Home Address")
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    street = Column(String, nullable=False)
    city = Column(String, nullable=False)
    province = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)

    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    formatted_address = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    #soft delete, row stays for the audit trail
    deleted_at = Column(DateTime(timezone=True), nullable=True)
