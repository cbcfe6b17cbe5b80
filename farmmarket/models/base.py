from datetime import datetime, timezone

from sqlalchemy import Column, Integer, TIMESTAMP
from sqlalchemy.sql import func
from farmmarket.db.session import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel(Base):
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)
