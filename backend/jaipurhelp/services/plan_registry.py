"""PlanRegistry: read-only lookups over the seeded subscription plan catalog."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jaipurhelp.core.exceptions import PlanNotFoundError
from jaipurhelp.db.models.plan import SubscriptionPlan
from jaipurhelp.domain.tiers import Tier


class PlanRegistry:
    """Plan catalog lookups bound to a caller-owned session.

    Plans are immutable once seeded; nothing here writes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_plan(self, tier: Tier | str) -> SubscriptionPlan:
        """Return the plan for a tier.

        Raises:
            PlanNotFoundError: tier is not seeded
        """
        result = await self.session.execute(select(SubscriptionPlan).where(SubscriptionPlan.tier == str(tier)))
        plan = result.scalar_one_or_none()
        if plan is None:
            raise PlanNotFoundError(str(tier))
        return plan

    async def list_plans(self) -> list[SubscriptionPlan]:
        """Active plans in tier order (free first)."""
        result = await self.session.execute(select(SubscriptionPlan).where(SubscriptionPlan.is_active.is_(True)))
        plans = list(result.scalars().all())
        order = {tier.value: tier.rank for tier in Tier}
        return sorted(plans, key=lambda p: order.get(p.tier, len(order)))
