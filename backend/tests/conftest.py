"""Pytest configuration and fixtures for FutureHuman tests.

Every test gets a fresh in-memory SQLite database; Redis-backed token
revocation is replaced by an in-process fake.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import time
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from futurehuman.auth.jwt import create_access_token
from futurehuman.auth.password import hash_password
from futurehuman.auth.revocation import TokenRevocation
from futurehuman.database import Base, get_db
from futurehuman.main import app
from futurehuman.models.user import User, UserRole


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client against the real app with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Token revocation (Redis) ─────────────────────────────────────

class FakeRevocation:
    """In-memory stand-in for the Redis revocation store."""

    def __init__(self):
        self.tokens: set[str] = set()
        self.user_markers: dict[str, float] = {}

    async def revoke_token(self, token: str, expires_at: float) -> bool:
        self.tokens.add(token)
        return True

    async def is_revoked(self, token: str) -> bool:
        return token in self.tokens

    async def revoke_all_user_tokens(self, user_id: str) -> bool:
        self.user_markers[user_id] = float(int(time.time()))
        return True

    async def is_user_revoked(self, user_id: str, issued_at: float) -> bool:
        marker = self.user_markers.get(user_id)
        return marker is not None and issued_at < marker


@pytest.fixture(autouse=True)
def revocation(monkeypatch) -> FakeRevocation:
    fake = FakeRevocation()
    for name in ("revoke_token", "is_revoked", "revoke_all_user_tokens", "is_user_revoked"):
        monkeypatch.setattr(TokenRevocation, name, getattr(fake, name))
    return fake


# ── Test Data Fixtures ───────────────────────────────────────────

async def _make_user(session: AsyncSession, email: str, first_name: str) -> User:
    user = User(
        email=email,
        hashed_password=hash_password("testpassword123"),
        first_name=first_name,
        last_name="Tester",
        role=UserRole.USER,
        is_active=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "test@futurehuman.io", "Test")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@futurehuman.io", "Other")


@pytest.fixture
def test_token(test_user: User) -> str:
    return create_access_token(user_id=test_user.id, role=test_user.role.value)


@pytest.fixture
def auth_headers(test_token: str) -> dict:
    return {"Authorization": f"Bearer {test_token}"}


@pytest.fixture
def other_headers(other_user: User) -> dict:
    token = create_access_token(user_id=other_user.id, role=other_user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def agent_payload():
    """Factory for a complete, valid create body for /api/agents/."""

    def build(**overrides) -> dict:
        payload = {
            "identity": {"name": "Nova", "role": "Support", "company_name": "Acme"},
            "appearance": {"persona_id": "p1", "background_color": "#112233"},
            "voice": {"language": "en", "name": "alex"},
            "style": {
                "formality": 5, "pace": 5, "calm": 5, "introvert": 5,
                "empathy": 5, "humor": 5, "creativity": 5, "directness": 5,
            },
            "brain": {"id": "level1", "instructions": "Be brief"},
            "background": {"background_id": "bg-1"},
        }
        payload.update(overrides)
        return payload

    return build


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "auth: Authentication tests")
    config.addinivalue_line("markers", "wizard: Wizard client tests")
