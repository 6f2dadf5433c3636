"""ContactDisclosure model: append-only journal of revealed worker contacts."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from jaipurhelp.db.base import Base


class ContactDisclosure(Base):
    """One row per (user, worker) pair, written the moment a disclosure is granted.

    The unique constraint is the idempotency key: concurrent reveals of the
    same pair race on it and exactly one insert wins.
    """

    __tablename__ = "contact_disclosures"
    __table_args__ = (UniqueConstraint("user_id", "worker_id", name="uq_contact_disclosures_user_worker"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    worker_id = Column(String(36), ForeignKey("workers.id"), nullable=False, index=True)

    # Subscription that was charged for this disclosure
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=True)

    disclosed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
