"""API-specific test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from jaipurhelp.core.auth import AuthUser, require_auth


def override_auth(user: AuthUser):
    """Dependency override factory for require_auth."""

    async def _override():
        return user

    return _override


@pytest.fixture
def test_user():
    return AuthUser(user_id="user_api_test", claims={"sub": "user_api_test"})


@pytest.fixture
def app(engine):
    """Full application with the test database already wired into the global factory.

    ASGITransport does not run the lifespan, so init_db/seed_plans are covered
    by the engine fixture instead.
    """
    from jaipurhelp.main import create_app

    return create_app()


@pytest.fixture
async def client(app):
    """Unauthenticated client: requests go through the real require_auth."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def auth_client(app, test_user):
    """Client whose requests are authenticated as ``test_user``."""
    app.dependency_overrides[require_auth] = override_auth(test_user)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
