"""Idempotent seed data for subscription plans."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jaipurhelp.db.base import get_session_factory
from jaipurhelp.db.models.plan import SubscriptionPlan
from jaipurhelp.domain.tiers import UNLIMITED

SUBSCRIPTION_PLANS = [
    {
        "tier": "free",
        "name": "Free",
        "price": 0,
        "contact_limit": 3,
        "job_post_limit": 1,
        "has_whatsapp_access": False,
        "user_limit": 1,
        "features": ["View 3 worker contacts", "Post 1 job", "Basic search filters"],
    },
    {
        "tier": "basic",
        "name": "Basic",
        "price": 299,
        "contact_limit": 20,
        "job_post_limit": 5,
        "has_whatsapp_access": False,
        "user_limit": 1,
        "features": ["View 20 worker contacts", "Post 5 jobs", "All search filters", "Email support"],
    },
    {
        "tier": "premium",
        "name": "Premium",
        "price": 599,
        "contact_limit": 50,
        "job_post_limit": 15,
        "has_whatsapp_access": True,
        "user_limit": 1,
        "features": [
            "View 50 worker contacts",
            "Post 15 jobs",
            "WhatsApp access",
            "Priority support",
            "Featured job posts",
        ],
    },
    {
        "tier": "business",
        "name": "Business",
        "price": 1499,
        "contact_limit": UNLIMITED,
        "job_post_limit": UNLIMITED,
        "has_whatsapp_access": True,
        "user_limit": 5,
        "features": [
            "Unlimited contacts",
            "Unlimited jobs",
            "WhatsApp access",
            "Dedicated support",
            "5 team members",
            "Analytics dashboard",
        ],
    },
]


async def seed_plans(session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    """Insert default subscription plans if they don't already exist."""
    factory = session_factory or get_session_factory()

    async with factory() as session:
        for plan_data in SUBSCRIPTION_PLANS:
            result = await session.execute(
                select(SubscriptionPlan).where(SubscriptionPlan.tier == plan_data["tier"])
            )
            existing = result.scalar_one_or_none()

            if existing is None:
                session.add(SubscriptionPlan(**plan_data))

        await session.commit()
