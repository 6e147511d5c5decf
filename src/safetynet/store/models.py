import uuid

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DeliveryHistoryModel(Base):
    __tablename__ = "safetynet_histories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    address = Column(String, nullable=False)
    channel = Column(String, nullable=False)
    # "method" is the historical column name for the triggering action
    method = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("safetynet_histories_idx", "address", "channel", "method", "created_at"),
    )
