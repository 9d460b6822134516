from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from ..config import Base


def utcnow():
    return datetime.now(timezone.utc)


class StoredCollection(Base):
    """One whole-collection JSON snapshot, keyed by its storage name."""

    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
