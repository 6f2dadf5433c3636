"""Subscription ledger: active subscription lookup, provisioning and metered usage.

Every write to ``contacts_used`` goes through ``increment_contacts_used``, a
single conditional UPDATE. Provisioning uses ON CONFLICT DO NOTHING against
the partial unique index on active subscriptions, so concurrent first requests
for one user converge on a single row.
"""

import uuid
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jaipurhelp.core.config import Settings, get_settings
from jaipurhelp.core.exceptions import (
    ConcurrencyConflictError,
    NoActiveSubscriptionError,
    PlanNotFoundError,
)
from jaipurhelp.db.models.plan import SubscriptionPlan
from jaipurhelp.db.models.subscription import ACTIVE_STATUS_CLAUSE, Subscription
from jaipurhelp.domain.tiers import QuotaSnapshot, Tier, is_unlimited, is_upgrade
from jaipurhelp.services.plan_registry import PlanRegistry

logger = structlog.get_logger(__name__)


def _insert_for(session: AsyncSession):
    """Return the dialect-specific ``insert`` that supports ON CONFLICT."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


async def get_active_subscription(
    session: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> Subscription | None:
    """Return the user's active subscription with its plan loaded.

    Active rows whose ``end_date`` has passed are flipped to ``expired`` first
    and committed, so they read as absent.

    Args:
        session: Caller-owned session
        user_id: Authenticated user identifier
        now: Current time (for deterministic testing)
    """
    now = now or datetime.now(UTC)

    expired = await session.execute(
        update(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.end_date.is_not(None),
            Subscription.end_date <= now,
        )
        .values(status="expired", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if expired.rowcount:
        await session.commit()
        logger.info("subscription_expired", user_id=user_id)

    result = await session.execute(
        select(Subscription)
        .options(selectinload(Subscription.plan))
        .where(Subscription.user_id == user_id, Subscription.status == "active")
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _provision(
    session: AsyncSession,
    user_id: str,
    plan: SubscriptionPlan,
    now: datetime,
    settings: Settings,
) -> Subscription:
    """Race-safe idempotent insert of an active subscription, then re-select."""
    stmt = (
        _insert_for(session)(Subscription)
        .values(
            id=str(uuid.uuid4()),
            user_id=user_id,
            plan_id=plan.id,
            status="active",
            start_date=now,
            end_date=_period_end(plan, now, settings),
            contacts_used=0,
            job_posts_used=0,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["user_id"], index_where=ACTIVE_STATUS_CLAUSE)
    )
    await session.execute(stmt)
    await session.commit()

    # Handles both the new insert and the lost-race no-op
    subscription = await get_active_subscription(session, user_id, now)
    if subscription is None:
        raise NoActiveSubscriptionError(user_id)
    return subscription


async def provision_free_subscription(
    session: AsyncSession,
    user_id: str,
    settings: Settings | None = None,
) -> Subscription:
    """Give a user the default (free) plan. Repeat calls are no-ops.

    Raises:
        PlanNotFoundError: default tier has not been seeded
    """
    settings = settings or get_settings()
    plan = await PlanRegistry(session).get_plan(settings.default_tier)
    subscription = await _provision(session, user_id, plan, datetime.now(UTC), settings)
    logger.info("subscription_provisioned", user_id=user_id, tier=subscription.plan.tier)
    return subscription


async def get_or_provision(
    session: AsyncSession,
    user_id: str,
    settings: Settings | None = None,
) -> Subscription:
    """Load the active subscription, lazily provisioning the free tier.

    Raises:
        NoActiveSubscriptionError: none exists and provisioning is disabled or
            the default plan is missing
    """
    settings = settings or get_settings()

    subscription = await get_active_subscription(session, user_id)
    if subscription is not None:
        return subscription

    if not settings.lazy_provision_subscriptions:
        raise NoActiveSubscriptionError(user_id)

    try:
        return await provision_free_subscription(session, user_id, settings)
    except PlanNotFoundError as exc:
        logger.error("default_plan_missing", user_id=user_id, tier=settings.default_tier)
        raise NoActiveSubscriptionError(user_id) from exc


async def increment_contacts_used(
    session: AsyncSession,
    subscription_id: str,
    plan_id: str,
    contact_limit: int,
) -> int:
    """Atomically charge one contact disclosure. Does not commit.

    The WHERE clause re-checks the plan and the limit inside the UPDATE, so two
    requests that both passed the read-time quota check cannot push the
    counter past the limit, and a plan change that committed after the read
    cannot be charged against the old plan's limit.

    Returns:
        The new ``contacts_used`` value

    Raises:
        ConcurrencyConflictError: the row is no longer active, moved to another
            plan, or the counter reached the limit since it was read
    """
    stmt = update(Subscription).where(
        Subscription.id == subscription_id,
        Subscription.status == "active",
        Subscription.plan_id == plan_id,
    )
    if not is_unlimited(contact_limit):
        stmt = stmt.where(Subscription.contacts_used < contact_limit)
    stmt = (
        stmt.values(contacts_used=Subscription.contacts_used + 1, updated_at=datetime.now(UTC))
        .returning(Subscription.contacts_used)
        .execution_options(synchronize_session=False)
    )

    result = await session.execute(stmt)
    new_value = result.scalar_one_or_none()
    if new_value is None:
        raise ConcurrencyConflictError(subscription_id)
    return new_value


def _period_end(plan: SubscriptionPlan, now: datetime, settings: Settings) -> datetime | None:
    # Free tier is open-ended
    if plan.price == 0:
        return None
    return now + timedelta(days=settings.paid_period_days)


async def _move_in_place(
    session: AsyncSession,
    subscription: Subscription,
    plan: SubscriptionPlan,
    now: datetime,
    settings: Settings,
) -> bool:
    """Point the active row at ``plan`` if its usage fits the new limit.

    Commits on success. On a miss the open transaction is left for the caller.
    """
    stmt = update(Subscription).where(Subscription.id == subscription.id, Subscription.status == "active")
    if not is_unlimited(plan.contact_limit):
        stmt = stmt.where(Subscription.contacts_used <= plan.contact_limit)
    result = await session.execute(
        stmt.values(
            plan_id=plan.id,
            start_date=now,
            end_date=_period_end(plan, now, settings),
            updated_at=now,
        )
        .returning(Subscription.id)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        return False
    await session.commit()
    return True


async def _replace(
    session: AsyncSession,
    subscription: Subscription,
    plan: SubscriptionPlan,
    now: datetime,
    settings: Settings,
) -> Subscription:
    """Close the active row and open a new one on ``plan`` in one transaction."""
    await session.execute(
        update(Subscription)
        .where(Subscription.id == subscription.id, Subscription.status == "active")
        .values(status="cancelled", end_date=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return await _provision(session, subscription.user_id, plan, now, settings)


async def change_plan(
    session: AsyncSession,
    user_id: str,
    tier: Tier | str,
    settings: Settings | None = None,
) -> Subscription:
    """Move the user onto ``tier``. Paid tiers get a fresh billing period.

    When current usage fits the new plan's limit the active row is re-pointed
    and its counters carry over. Otherwise the active row is closed with its
    counters untouched and a new subscription starts at zero usage.
    ``contacts_used`` is never rewritten here.

    Raises:
        PlanNotFoundError: tier is not seeded
    """
    settings = settings or get_settings()
    plan = await PlanRegistry(session).get_plan(tier)
    now = datetime.now(UTC)

    subscription = await get_active_subscription(session, user_id, now)
    if subscription is None:
        subscription = await _provision(session, user_id, plan, now, settings)
        logger.info("subscription_provisioned", user_id=user_id, tier=plan.tier)
        return subscription

    previous_id = subscription.id
    previous_tier = subscription.plan.tier
    if await _move_in_place(session, subscription, plan, now, settings):
        subscription = await get_active_subscription(session, user_id, now)
    else:
        subscription = await _replace(session, subscription, plan, now, settings)
    if subscription is None:
        raise NoActiveSubscriptionError(user_id)

    logger.info(
        "subscription_plan_changed",
        user_id=user_id,
        from_tier=previous_tier,
        to_tier=subscription.plan.tier,
        upgrade=is_upgrade(Tier(previous_tier), Tier(plan.tier)),
        replaced=subscription.id != previous_id,
    )
    return subscription


async def cancel_subscription(session: AsyncSession, user_id: str) -> Subscription:
    """Cancel the active subscription. The next entitlement check re-provisions free.

    Raises:
        NoActiveSubscriptionError: nothing to cancel
    """
    subscription = await get_active_subscription(session, user_id)
    if subscription is None:
        raise NoActiveSubscriptionError(user_id)

    subscription.status = "cancelled"
    subscription.end_date = datetime.now(UTC)
    await session.commit()

    logger.info("subscription_cancelled", user_id=user_id, subscription_id=subscription.id)
    return subscription


def usage_snapshot(subscription: Subscription, plan: SubscriptionPlan) -> QuotaSnapshot:
    return QuotaSnapshot(used=subscription.contacts_used, limit=plan.contact_limit)
