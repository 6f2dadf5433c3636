"""Pydantic schemas for contact disclosure, subscriptions and plans."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from jaipurhelp.domain.tiers import QuotaSnapshot


# ==================== CONTACT DISCLOSURE ====================


class RevealRequest(BaseModel):
    worker_id: str = Field(..., min_length=1)


class ContactResponse(BaseModel):
    """Private contact fields returned only after a successful reveal."""

    worker_id: str
    phone: str
    whatsapp: str | None = None
    already_disclosed: bool


class DisclosureRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    worker_id: str
    subscription_id: str | None = None
    disclosed_at: datetime


# ==================== PLANS & SUBSCRIPTIONS ====================


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    tier: str
    price: int
    currency: str
    contact_limit: int  # -1 = unlimited
    job_post_limit: int  # -1 = unlimited
    has_whatsapp_access: bool
    user_limit: int
    features: list[str] = Field(default_factory=list)


class QuotaResponse(BaseModel):
    used: int
    limit: int  # -1 = unlimited
    remaining: int | None  # None = unlimited

    @classmethod
    def from_snapshot(cls, snapshot: QuotaSnapshot) -> "QuotaResponse":
        return cls(used=snapshot.used, limit=snapshot.limit, remaining=snapshot.remaining)


class SubscriptionResponse(BaseModel):
    id: str
    status: str
    start_date: datetime
    end_date: datetime | None = None
    plan: PlanResponse
    contacts: QuotaResponse
    job_posts_used: int


class ChangePlanRequest(BaseModel):
    tier: str = Field(..., min_length=1)


# ==================== WORKERS ====================


class WorkerPublicResponse(BaseModel):
    """Directory listing view. Never carries phone or WhatsApp."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str
    area: str
    experience_years: int
    bio: str | None = None
