"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from api.main import create_app
from core.auth import AccessTokenAuthenticator
from core.config import Settings
from db.token_store import InMemoryTokenStore
from models.base import Base
from models.user import User
from schemas.user import UserDetails
from services.token_service import AccessTokenService
from services.user_directory import InMemoryUserDirectory, grant_authorities

# 2023-11-14T22:13:20Z
NOW_MS = 1_700_000_000_000

ENABLED_USER_ID = 1
OTHER_USER_ID = 2
DISABLED_USER_ID = 3


class FrozenClock:
    """Clock pinned to a fixed instant until moved with advance() or set()."""

    def __init__(self, now_ms: int) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, millis: int) -> None:
        self.now_ms += millis

    def set(self, now_ms: int) -> None:
        self.now_ms = now_ms


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at NOW_MS."""
    return FrozenClock(NOW_MS)


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    """Empty in-memory token store."""
    return InMemoryTokenStore()


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    """Directory with two enabled users and one disabled user."""
    return InMemoryUserDirectory([
        UserDetails(
            id=ENABLED_USER_ID,
            username="alice",
            display_name="Alice",
            enabled=True,
            authorities=grant_authorities(is_admin=True, roles=[]),
        ),
        UserDetails(
            id=OTHER_USER_ID,
            username="bob",
            display_name="Bob",
            enabled=True,
            authorities=grant_authorities(is_admin=False, roles=[]),
        ),
        UserDetails(
            id=DISABLED_USER_ID,
            username="mallory",
            display_name=None,
            enabled=False,
            authorities=grant_authorities(is_admin=False, roles=[]),
        ),
    ])


@pytest.fixture
def token_service(token_store: InMemoryTokenStore) -> AccessTokenService:
    """Lifecycle service over the in-memory store."""
    return AccessTokenService(token_store)


@pytest.fixture
def authenticator(
    token_service: AccessTokenService,
    user_directory: InMemoryUserDirectory,
    clock: FrozenClock,
) -> AccessTokenAuthenticator:
    """Enabled bearer authenticator over the in-memory collaborators."""
    return AccessTokenAuthenticator(
        token_service, user_directory, clock, enabled=True, lookup_timeout=1.0,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings that never read the environment's .env file."""
    return Settings(
        _env_file=None,
        database_url="postgresql+asyncpg://localhost/access_tokens_test",
        security_enabled=True,
    )


@pytest.fixture
def app(
    settings: Settings,
    token_store: InMemoryTokenStore,
    user_directory: InMemoryUserDirectory,
    clock: FrozenClock,
) -> FastAPI:
    """Application wired to the in-memory collaborators."""
    return create_app(
        settings,
        token_store=token_store,
        user_directory=user_directory,
        clock=clock,
    )


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create a test client for the application."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client


@pytest.fixture
async def alice_token(token_service: AccessTokenService) -> str:
    """Secret of a valid token owned by the enabled user."""
    return await token_service.issue(
        ENABLED_USER_ID, "alice-cli", "used by the test client", NOW_MS + 3_600_000,
    )


@pytest.fixture
def alice_headers(alice_token: str) -> dict[str, str]:
    """Authorization header for the enabled user."""
    return {"Authorization": f"Bearer {alice_token}"}


# =============================================================================
# PostgreSQL fixtures (only started by tests that request them)
# =============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer]:
    """Start a PostgreSQL container for the test session."""
    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        yield postgres


@pytest.fixture
async def async_engine(postgres_container: PostgresContainer) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with a fresh schema for each test."""
    engine = create_async_engine(postgres_container.get_connection_url(), echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory for stores and directories.

    Unlike a shared test transaction, each store operation commits on its own,
    which is what the stores are written for.
    """
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_users(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, User]:
    """Create an enabled user, a second user and a disabled user."""
    users = {
        "alice": User(username="alice", display_name="Alice", is_admin=True, roles=[]),
        "bob": User(username="bob", display_name="Bob", roles=["ROLE_AGENT"]),
        "mallory": User(username="mallory", enabled=False, roles=[]),
    }
    async with session_factory() as session:
        session.add_all(users.values())
        await session.commit()
    return users
