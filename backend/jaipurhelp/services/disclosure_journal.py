"""Disclosure journal: which (user, worker) pairs have been unlocked."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from jaipurhelp.db.models.contact_disclosure import ContactDisclosure


async def has_disclosed(session: AsyncSession, user_id: str, worker_id: str) -> bool:
    result = await session.execute(
        select(ContactDisclosure.id).where(
            ContactDisclosure.user_id == user_id,
            ContactDisclosure.worker_id == worker_id,
        )
    )
    return result.first() is not None


async def record_disclosure(
    session: AsyncSession,
    user_id: str,
    worker_id: str,
    subscription_id: str | None,
) -> ContactDisclosure | None:
    """Insert the journal row for a pair. Does not commit.

    Returns None when the pair is already journaled (including by a concurrent
    request that committed first); the caller must not charge quota then.
    """
    insert = sqlite.insert if session.get_bind().dialect.name == "sqlite" else postgresql.insert
    stmt = (
        insert(ContactDisclosure)
        .values(
            id=str(uuid.uuid4()),
            user_id=user_id,
            worker_id=worker_id,
            subscription_id=subscription_id,
            disclosed_at=datetime.now(UTC),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "worker_id"])
        .returning(ContactDisclosure.id)
    )
    result = await session.execute(stmt)
    disclosure_id = result.scalar_one_or_none()
    if disclosure_id is None:
        return None
    return await session.get(ContactDisclosure, disclosure_id)


async def list_disclosures(session: AsyncSession, user_id: str) -> list[ContactDisclosure]:
    """All disclosures for a user, newest first."""
    result = await session.execute(
        select(ContactDisclosure)
        .where(ContactDisclosure.user_id == user_id)
        .order_by(ContactDisclosure.disclosed_at.desc(), ContactDisclosure.id)
    )
    return list(result.scalars().all())


async def count_disclosures(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(ContactDisclosure).where(ContactDisclosure.user_id == user_id)
    )
    return result.scalar_one()
