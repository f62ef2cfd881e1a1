"""Shared test fixtures for folioguard tests."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folioguard.app.config import Settings, get_settings
from folioguard.app.container import ServiceContainer, build_container
from folioguard.app.main import app, install_services
from folioguard.core.models import Role, User
from folioguard.infra import close_db, init_db
from folioguard.services.session_service import sign_session_id

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery-staple"
SESSION_SECRET = "test-session-secret"


@pytest.fixture(autouse=True)
def setup_test_env(tmp_path, monkeypatch):
    """Set up test environment variables and a per-test SQLite file."""
    monkeypatch.setenv("APP_ENVIRONMENT", "test")
    monkeypatch.setenv("ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.delenv("ADMIN_PASSWORD_HASH", raising=False)
    monkeypatch.setenv("SESSION_SECRET", SESSION_SECRET)
    monkeypatch.setenv(
        "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'folioguard.db'}"
    )
    monkeypatch.setenv("MAINTENANCE_ENABLED", "false")

    # Clear settings cache to pick up new env vars
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def admin_login_body() -> dict[str, str]:
    return {"identifier": ADMIN_USERNAME, "password": ADMIN_PASSWORD}


@pytest_asyncio.fixture
async def session_factory(settings):
    factory = await init_db(settings.database.url, echo=False, create_tables=True)
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]):
    async with session_factory() as session:
        yield session


@pytest.fixture
def services(settings, session_factory) -> ServiceContainer:
    return build_container(settings, session_factory)


@pytest_asyncio.fixture
async def client(services) -> AsyncClient:
    """Client without a session."""
    install_services(app, services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def use_session_cookie(client: AsyncClient, settings: Settings, value: str) -> None:
    client.cookies.clear()
    client.cookies.set(settings.session.cookie_name, value)


async def login_as_admin(client: AsyncClient, settings: Settings):
    response = await client.post(
        "/api/v1/login",
        json={"identifier": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    use_session_cookie(
        client, settings, response.cookies[settings.session.cookie_name]
    )
    return response


@pytest_asyncio.fixture
async def admin_client(client, settings) -> AsyncClient:
    """Client holding the authorized admin session."""
    await login_as_admin(client, settings)
    return client


@pytest_asyncio.fixture
async def viewer_user(db_session) -> User:
    user = User(id="viewer-1", username="reader", role=Role.VIEWER.value)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def viewer_client(client, settings, services, db_session, viewer_user):
    """Client holding a valid session for a non-admin identity."""
    session = await services.sessions.create(db_session, viewer_user, "127.0.0.1")
    use_session_cookie(
        client, settings, sign_session_id(session.id, services.session_secret)
    )
    return client
