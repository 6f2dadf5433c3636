"""Worker model: directory records owned by the worker CRUD / approval flow."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from jaipurhelp.db.base import Base


class Worker(Base):
    __tablename__ = "workers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    agent_id = Column(String(255), nullable=True, index=True)  # field agent who registered the worker

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)  # maid, driver, cook, ...
    area = Column(String(100), nullable=False, index=True)  # mansarovar, c-scheme, ...
    experience_years = Column(Integer, nullable=False, default=0)
    bio = Column(Text, nullable=True)

    # Private contact fields, only ever returned through the disclosure guard
    phone = Column(String(20), nullable=False)
    whatsapp = Column(String(20), nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))
