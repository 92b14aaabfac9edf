from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime, timezone
from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordCollection(Base):
    """
    One named collection, stored as a JSON array in `payload`.
    """
    __tablename__ = "record_collections"

    name = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False, default="[]")
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
