"""Shared test fixtures for all test groups.

Database tests run against a throwaway SQLite file by default. Point
TEST_DATABASE_URL at a PostgreSQL database to run them against asyncpg.
"""

import os
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from jaipurhelp.db.base import Base, build_engine, build_session_factory

_TEST_DB_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """Create a test engine with fresh tables and seeded plans.

    Sets the global session factory so code calling get_session_factory()
    (routes, DisclosureGuard defaults) uses this database.
    """
    import jaipurhelp.db.base as db_mod

    url = _TEST_DB_URL or f"sqlite+aiosqlite:///{tmp_path / 'jaipurhelp_test.db'}"
    engine = build_engine(url)

    # Import all models so metadata is populated
    import jaipurhelp.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = build_session_factory(engine)

    from jaipurhelp.db.seed import seed_plans

    await seed_plans()

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_worker(session_factory):
    """Factory for worker directory records. Defaults to an approved, active worker."""

    async def _make(**overrides):
        from jaipurhelp.db.models.worker import Worker

        suffix = uuid.uuid4().hex[:6]
        fields = {
            "name": f"Worker {suffix}",
            "category": "maid",
            "area": "mansarovar",
            "experience_years": 3,
            "phone": "+91 98290 00000",
            "whatsapp": "+91 98290 00000",
            "status": "approved",
            "is_active": True,
        }
        fields.update(overrides)
        async with session_factory() as session:
            worker = Worker(**fields)
            session.add(worker)
            await session.commit()
            return worker

    return _make
