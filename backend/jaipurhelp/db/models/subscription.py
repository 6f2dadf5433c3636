"""Subscription model: a user's plan assignment and metered usage counters."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from jaipurhelp.db.base import Base

ACTIVE_STATUS_CLAUSE = text("status = 'active'")


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        # At most one active subscription per user
        Index(
            "uq_subscriptions_user_active",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_STATUS_CLAUSE,
            sqlite_where=ACTIVE_STATUS_CLAUSE,
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)

    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=False)
    plan = relationship("SubscriptionPlan", back_populates="subscriptions")

    status = Column(String(20), nullable=False, default="active")  # active, expired, cancelled
    start_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    end_date = Column(DateTime(timezone=True), nullable=True)  # NULL = open-ended (free tier)

    # Metered usage; only ever incremented through SubscriptionLedger
    contacts_used = Column(Integer, nullable=False, default=0)
    job_posts_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))
