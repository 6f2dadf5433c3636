"""Tests for subscription provisioning, expiry, plan changes and the usage counter."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from jaipurhelp.core.config import Settings
from jaipurhelp.core.exceptions import ConcurrencyConflictError, NoActiveSubscriptionError, PlanNotFoundError
from jaipurhelp.db.models.subscription import Subscription
from jaipurhelp.domain.tiers import UNLIMITED
from jaipurhelp.services.plan_registry import PlanRegistry
from jaipurhelp.services.subscription_ledger import (
    cancel_subscription,
    change_plan,
    get_active_subscription,
    get_or_provision,
    increment_contacts_used,
    provision_free_subscription,
    usage_snapshot,
)

pytestmark = pytest.mark.integration


async def _subscription_rows(session_factory, user_id: str) -> list[Subscription]:
    async with session_factory() as session:
        result = await session.execute(select(Subscription).where(Subscription.user_id == user_id))
        return list(result.scalars().all())


class TestProvisioning:
    async def test_first_lookup_provisions_free_plan(self, db_session):
        subscription = await get_or_provision(db_session, "user_new")

        assert subscription.status == "active"
        assert subscription.plan.tier == "free"
        assert subscription.contacts_used == 0
        assert subscription.end_date is None

    async def test_repeat_provisioning_is_a_no_op(self, db_session, session_factory):
        first = await provision_free_subscription(db_session, "user_repeat")
        second = await provision_free_subscription(db_session, "user_repeat")
        await db_session.commit()

        assert first.id == second.id
        assert len(await _subscription_rows(session_factory, "user_repeat")) == 1

    async def test_concurrent_provisioning_converges_on_one_row(self, session_factory):
        async def provision():
            async with session_factory() as session:
                subscription = await get_or_provision(session, "user_race")
                return subscription.id

        ids = await asyncio.gather(*(provision() for _ in range(8)))

        assert len(set(ids)) == 1
        assert len(await _subscription_rows(session_factory, "user_race")) == 1

    async def test_provisioning_disabled(self, db_session):
        settings = Settings(lazy_provision_subscriptions=False)

        with pytest.raises(NoActiveSubscriptionError):
            await get_or_provision(db_session, "user_no_lazy", settings)

    async def test_missing_default_plan_reads_as_no_subscription(self, db_session):
        settings = Settings(default_tier="platinum")

        with pytest.raises(NoActiveSubscriptionError):
            await get_or_provision(db_session, "user_no_plan", settings)


class TestExpiry:
    async def test_lapsed_subscription_is_expired_and_absent(self, db_session):
        premium = await PlanRegistry(db_session).get_plan("premium")
        now = datetime.now(UTC)
        db_session.add(
            Subscription(
                user_id="user_lapsed",
                plan_id=premium.id,
                status="active",
                start_date=now - timedelta(days=40),
                end_date=now - timedelta(days=10),
                contacts_used=7,
            )
        )
        await db_session.commit()

        assert await get_active_subscription(db_session, "user_lapsed") is None

        result = await db_session.execute(select(Subscription.status).where(Subscription.user_id == "user_lapsed"))
        assert result.scalar_one() == "expired"

    async def test_lapsed_user_is_reprovisioned_on_free(self, db_session):
        basic = await PlanRegistry(db_session).get_plan("basic")
        now = datetime.now(UTC)
        db_session.add(
            Subscription(
                user_id="user_lapsed_again",
                plan_id=basic.id,
                status="active",
                start_date=now - timedelta(days=31),
                end_date=now - timedelta(days=1),
            )
        )
        await db_session.commit()

        subscription = await get_or_provision(db_session, "user_lapsed_again")

        assert subscription.plan.tier == "free"
        assert subscription.contacts_used == 0


class TestIncrement:
    async def test_increment_returns_new_value(self, db_session):
        subscription = await get_or_provision(db_session, "user_inc")

        assert await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3) == 1
        assert await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3) == 2
        await db_session.commit()

    async def test_increment_refuses_to_pass_limit(self, db_session):
        subscription = await get_or_provision(db_session, "user_cap")
        for _ in range(3):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3)

        with pytest.raises(ConcurrencyConflictError):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3)

    async def test_unlimited_increment_is_uncapped(self, db_session):
        subscription = await get_or_provision(db_session, "user_unlimited")
        for _ in range(5):
            used = await increment_contacts_used(db_session, subscription.id, subscription.plan_id, UNLIMITED)

        assert used == 5

    async def test_increment_after_downgrade_in_place_conflicts(self, db_session):
        subscription = await change_plan(db_session, "user_stale_plan", "business")
        for _ in range(3):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, UNLIMITED)
        await db_session.commit()
        read_plan_id, read_limit = subscription.plan_id, subscription.plan.contact_limit

        downgraded = await change_plan(db_session, "user_stale_plan", "free")
        assert downgraded.id == subscription.id

        with pytest.raises(ConcurrencyConflictError):
            await increment_contacts_used(db_session, subscription.id, read_plan_id, read_limit)
        await db_session.rollback()

        current = await get_active_subscription(db_session, "user_stale_plan")
        assert current.contacts_used == 3
        assert current.contacts_used <= current.plan.contact_limit

    async def test_increment_after_replacing_downgrade_conflicts(self, db_session):
        subscription = await change_plan(db_session, "user_stale_row", "business")
        for _ in range(5):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, UNLIMITED)
        await db_session.commit()
        read_id, read_plan_id, read_limit = subscription.id, subscription.plan_id, subscription.plan.contact_limit

        downgraded = await change_plan(db_session, "user_stale_row", "free")
        assert downgraded.id != read_id

        with pytest.raises(ConcurrencyConflictError):
            await increment_contacts_used(db_session, read_id, read_plan_id, read_limit)
        await db_session.rollback()

        current = await get_active_subscription(db_session, "user_stale_row")
        assert current.contacts_used == 0

    async def test_increment_on_cancelled_subscription_conflicts(self, db_session):
        subscription = await get_or_provision(db_session, "user_cancelled_inc")
        await cancel_subscription(db_session, "user_cancelled_inc")

        with pytest.raises(ConcurrencyConflictError):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3)


class TestPlanChanges:
    async def test_upgrade_carries_usage_over(self, db_session):
        subscription = await get_or_provision(db_session, "user_upgrade")
        for _ in range(3):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 3)
        await db_session.commit()

        upgraded = await change_plan(db_session, "user_upgrade", "business")

        assert upgraded.id == subscription.id
        assert upgraded.plan.tier == "business"
        assert upgraded.contacts_used == 3
        assert upgraded.end_date is not None
        snapshot = usage_snapshot(upgraded, upgraded.plan)
        assert snapshot.unlimited
        assert not snapshot.exhausted

    async def test_downgrade_within_limit_keeps_subscription(self, db_session):
        await change_plan(db_session, "user_down_fit", "basic")
        subscription = await get_or_provision(db_session, "user_down_fit")
        for _ in range(2):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 20)
        await db_session.commit()

        downgraded = await change_plan(db_session, "user_down_fit", "free")

        assert downgraded.id == subscription.id
        assert downgraded.plan.tier == "free"
        assert downgraded.contacts_used == 2
        assert downgraded.end_date is None

    async def test_downgrade_below_usage_opens_new_subscription(self, db_session, session_factory):
        await change_plan(db_session, "user_down", "basic")
        subscription = await get_or_provision(db_session, "user_down")
        for _ in range(5):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, 20)
        await db_session.commit()

        downgraded = await change_plan(db_session, "user_down", "free")
        await db_session.commit()

        assert downgraded.id != subscription.id
        assert downgraded.plan.tier == "free"
        assert downgraded.contacts_used == 0

        rows = {row.id: row for row in await _subscription_rows(session_factory, "user_down")}
        assert rows[subscription.id].status == "cancelled"
        assert rows[subscription.id].contacts_used == 5

    async def test_plan_changes_never_lower_a_counter(self, db_session, session_factory):
        subscription = await change_plan(db_session, "user_round_trip", "business")
        for _ in range(10):
            await increment_contacts_used(db_session, subscription.id, subscription.plan_id, UNLIMITED)
        await db_session.commit()

        await change_plan(db_session, "user_round_trip", "free")
        back = await change_plan(db_session, "user_round_trip", "business")
        await db_session.commit()

        rows = {row.id: row for row in await _subscription_rows(session_factory, "user_round_trip")}
        assert rows[subscription.id].contacts_used == 10
        assert rows[subscription.id].status == "cancelled"
        # Each counter matches the disclosures charged to its own row
        assert rows[back.id].contacts_used == 0

    async def test_paid_period_follows_injected_settings(self, db_session):
        settings = Settings(paid_period_days=7)

        subscription = await change_plan(db_session, "user_period", "premium", settings)

        assert subscription.end_date - subscription.start_date == timedelta(days=7)

    async def test_change_plan_without_subscription_provisions_target(self, db_session):
        subscription = await change_plan(db_session, "user_direct", "premium")

        assert subscription.plan.tier == "premium"
        assert subscription.status == "active"

    async def test_change_to_unknown_tier_raises(self, db_session):
        with pytest.raises(PlanNotFoundError):
            await change_plan(db_session, "user_bad_tier", "platinum")

    async def test_cancel_then_lookup_provisions_fresh_free(self, db_session, session_factory):
        original = await get_or_provision(db_session, "user_cancel")
        await increment_contacts_used(db_session, original.id, original.plan_id, 3)
        await db_session.commit()

        cancelled = await cancel_subscription(db_session, "user_cancel")
        assert cancelled.status == "cancelled"

        fresh = await get_or_provision(db_session, "user_cancel")
        assert fresh.id != original.id
        assert fresh.contacts_used == 0
        await db_session.commit()

        async with session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(Subscription)
                .where(Subscription.user_id == "user_cancel", Subscription.status == "active")
            )
            assert result.scalar_one() == 1

    async def test_cancel_without_subscription_raises(self, db_session):
        with pytest.raises(NoActiveSubscriptionError):
            await cancel_subscription(db_session, "user_nothing")
