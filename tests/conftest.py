"""
Test fixtures for the Payments API test suite.

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - member / other_member / admin: Registered users with bearer headers
  - owner / admin_user: Users inserted directly, for service-level tests

Environment is set before the app is imported: settings are read once at
import time, and the Fernet key ring is built from them. The key ring holds
a current key and one retired key so rotation can be exercised.

Every HTTP fixture shares one client, so requests pass their user's headers
explicitly instead of mutating client.headers.
"""

import json
import os
from dataclasses import dataclass

from cryptography.fernet import Fernet

os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PAYMENT_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["PAYMENT_ENCRYPTION_PREVIOUS_KEYS"] = json.dumps([Fernet.generate_key().decode()])
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import update  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass
class RegisteredUser:
    id: int
    email: str
    headers: dict[str, str]


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    Overrides get_db so all requests hit the in-memory test database.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client: AsyncClient, name: str, email: str, password: str) -> RegisteredUser:
    """Sign up through the real endpoint and return the user's id and auth headers."""
    response = await client.post(
        "/auth/signup",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    data = response.json()
    return RegisteredUser(
        id=data["user_id"],
        email=email,
        headers={"Authorization": f"Bearer {data['token']}"},
    )


@pytest_asyncio.fixture
async def member(client):
    """A MEMBER user who will own payments."""
    return await register(client, "Jane Doe", "jane@example.com", "SecurePass123!")


@pytest_asyncio.fixture
async def other_member(client):
    """A second MEMBER for cross-user authorization tests."""
    return await register(client, "Sam Other", "sam@example.com", "SecurePass456!")


@pytest_asyncio.fixture
async def admin(client, db_engine):
    """
    An ADMIN user.

    Signs up normally, then is promoted directly in the database, the way an
    operator provisions admins. The JWT only carries the user id, so the
    token from signup keeps working after promotion.
    """
    user = await register(client, "Admin User", "admin@example.com", "AdminPass123!")

    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with async_session() as session:
        await session.execute(
            update(User)
            .where(User.id == user.id)
            .values(role=UserRole.ADMIN)
        )
        await session.commit()

    return user


@pytest_asyncio.fixture
async def owner(db_session):
    """A MEMBER inserted directly for service-level tests."""
    user = User(name="Jane Doe", email="owner@example.com", hashed_password="not-a-real-hash")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session):
    """An ADMIN inserted directly for service-level tests."""
    user = User(
        name="Admin User",
        email="root@example.com",
        hashed_password="not-a-real-hash",
        role=UserRole.ADMIN,
    )
    db_session.add(user)
    await db_session.commit()
    return user
