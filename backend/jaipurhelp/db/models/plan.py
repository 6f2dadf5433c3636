"""SubscriptionPlan model: seeded tier catalog with entitlement limits."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from jaipurhelp.db.base import Base


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    tier = Column(String(20), unique=True, nullable=False, index=True)  # free, basic, premium, business

    # Pricing (whole currency units, no payment integration here)
    price = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="INR")

    # Limits (-1 = unlimited)
    contact_limit = Column(Integer, nullable=False, default=0)
    job_post_limit = Column(Integer, nullable=False, default=0)
    user_limit = Column(Integer, nullable=False, default=1)

    has_whatsapp_access = Column(Boolean, nullable=False, default=False)

    # Marketing bullets shown on the pricing page
    features = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    subscriptions = relationship("Subscription", back_populates="plan")
