import sys
import os
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is on sys.path so `import core` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from database.base import Base
from database.models import Agent, Clinic, Referral, SelfEmployedStatus
from database.repositories import AgentRepository, ClinicRepository, ReferralRepository
from services.commission_recalc import AgentMonthLocks


# Test database URL (in-memory SQLite unless overridden)
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async engine for tests."""
    options = {}
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection, otherwise every connection gets its own empty DB
        options = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **options)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests."""
    async_session = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def month_locks() -> AgentMonthLocks:
    return AgentMonthLocks()


@pytest_asyncio.fixture
async def sample_agent(db_session: AsyncSession) -> Agent:
    """Create sample agent for tests."""
    agent = await AgentRepository(db_session).create(
        full_name="Смирнова Анна Петровна",
        telegram_id=123456789,
        is_self_employed=SelfEmployedStatus.NO,
    )
    await db_session.commit()
    return agent


@pytest_asyncio.fixture
async def sample_clinic(db_session: AsyncSession) -> Clinic:
    """Create sample clinic for tests."""
    clinic = await ClinicRepository(db_session).create(name="Мечта", commission_rate=10)
    await db_session.commit()
    return clinic


@pytest_asyncio.fixture
async def sample_referral(db_session: AsyncSession, sample_agent: Agent) -> Referral:
    """Create sample referral for tests."""
    referral = await ReferralRepository(db_session).create(
        agent_id=sample_agent.id,
        patient_full_name="Иванов Иван Иванович",
        clinic="Мечта",
        created_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
    )
    await db_session.commit()
    return referral
