"""Base SQLAlchemy model utilities."""
import uuid

from sqlalchemy import Column, DateTime, String, func


def new_uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UUIDMixin:
    id = Column(String(36), primary_key=True, default=new_uuid)
