"""Cached store classification (military / college / downtown / suburban)."""
from sqlalchemy import Column, String, DateTime
from datetime import datetime

from store_intelligence.models.base import Base


class StoreClassificationRecord(Base):
    """
    One row per store. Written back after geometry-based auto-classification
    so later requests skip the proximity search; managers may also pin a
    classification here by hand.
    """
    __tablename__ = "store_classifications"

    store_id = Column(String, primary_key=True, index=True)
    store_type = Column(String, nullable=False)   # military, college, downtown, suburban
    sub_type = Column(String, nullable=True)      # base / campus name, or "standard"
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
