"""Test fixtures for schoolcal-api."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from schoolcal_api.auth import create_session_token, hash_password
from schoolcal_api.config import jwt_settings, settings
from schoolcal_api.db import get_db
from schoolcal_api.main import app
from schoolcal_api.models import Base, MemberRole, User, Workspace, WorkspaceMember

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DEFAULT_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the cheapest bcrypt cost factor in tests."""
    monkeypatch.setattr(settings, "bcrypt_salt_rounds", 4)


@pytest.fixture
async def async_engine():
    """Create a test database engine with schema initialized."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory for reading back state with a fresh identity map."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@asynccontextmanager
async def _app_client(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with isolated database."""
    async with _app_client(session_maker) as ac:
        yield ac


# --- File-backed database ---
#
# The in-memory engine shares one connection between sessions, so their
# transactions interleave. Tests that race several sessions against each
# other need a real file with one connection per session.


@pytest.fixture
async def file_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'schoolcal.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_session_maker(file_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(file_engine, expire_on_commit=False)


@pytest.fixture
async def file_client(file_session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests each get their own database connection."""
    async with _app_client(file_session_maker) as ac:
        yield ac


# --- Helpers ---


async def create_user(
    session: AsyncSession,
    email: str,
    name: str = "Test User",
    password: str = DEFAULT_PASSWORD,
) -> User:
    user = User(name=name, email=email, password_hash=hash_password(password))
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    """Session cookie header for a user, bypassing login."""
    token = create_session_token(user.id, user.email)
    return {"Cookie": f"{jwt_settings.cookie_name}={token}"}


async def add_member(
    session: AsyncSession,
    workspace: Workspace,
    user: User,
    role: MemberRole = MemberRole.USER,
) -> WorkspaceMember:
    membership = WorkspaceMember(
        workspace_id=workspace.id, user_id=user.id, role=role
    )
    session.add(membership)
    await session.commit()
    await session.refresh(membership)
    return membership


# --- Common actors ---


@pytest.fixture
async def owner(async_session: AsyncSession) -> User:
    return await create_user(async_session, "owner@example.com", name="Olivia Owner")


@pytest.fixture
async def workspace(async_session: AsyncSession, owner: User) -> Workspace:
    """Class workspace owned by ``owner``, who also has an ADMIN row."""
    workspace = Workspace(name="Class 5B", description="Spring term", owner_id=owner.id)
    async_session.add(workspace)
    await async_session.flush()
    async_session.add(
        WorkspaceMember(
            workspace_id=workspace.id, user_id=owner.id, role=MemberRole.ADMIN
        )
    )
    await async_session.commit()
    await async_session.refresh(workspace)
    return workspace


@pytest.fixture
async def member(
    async_session: AsyncSession, workspace: Workspace
) -> User:
    """Regular USER member of ``workspace``."""
    user = await create_user(async_session, "member@example.com", name="Max Member")
    await add_member(async_session, workspace, user)
    return user


@pytest.fixture
async def outsider(async_session: AsyncSession) -> User:
    return await create_user(async_session, "outsider@example.com", name="Otto Outsider")
