"""Pytest configuration for all tests."""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vouchledger.application.services import IntegrityEngine
from vouchledger.core.config import Settings
from vouchledger.domain.entities import Identity
from vouchledger.infrastructure.persistence.database import Base
from vouchledger.infrastructure.persistence.repositories import IdentityRepository


class FakeClock:
    """Controllable UTC clock for expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="testing",
        database_url="sqlite+aiosqlite:///:memory:",
        external_url="https://wiki.example.org/",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def engine(db_session, settings, clock) -> IntegrityEngine:
    """Integrity engine on the test session with a fake clock."""
    return IntegrityEngine.from_session(db_session, settings, clock)


@pytest.fixture
def make_identity(db_session):
    """Factory creating committed identities."""
    repo = IdentityRepository(db_session)

    async def _make(name: str, role: str = "member") -> Identity:
        identity = await repo.create(name=name, role=role)
        await db_session.commit()
        return identity

    return _make


@pytest_asyncio.fixture
async def system_identity(engine) -> Identity:
    outcome = await engine.guard.ensure()
    assert outcome.is_ready
    return outcome.identity
