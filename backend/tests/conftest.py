"""
Pytest fixtures for engine testing.
Provides database sessions, deterministic clocks and factor-cache isolation.
"""

import os
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ghg_engine.core.config import get_settings
from ghg_engine.db.models import Activity, ActivityType, Base
from ghg_engine.modules.factors.cache import reset_factor_cache

# Test database URL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL") or "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Manually advanced UTC clock for ledger and summary timestamps."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    """Manually advanced monotonic clock, in seconds, for the factor cache."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> float:
        self.value += seconds
        return self.value


@pytest.fixture(autouse=True)
def isolate_engine_state() -> Iterator[None]:
    """Reload settings and drop the process-wide factor cache around every test."""
    get_settings.cache_clear()
    reset_factor_cache()
    yield
    reset_factor_cache()
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine."""
    is_sqlite = TEST_DATABASE_URL.startswith("sqlite")
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        **({"poolclass": StaticPool} if is_sqlite else {}),
    )

    if is_sqlite:
        # pysqlite's implicit transactions break SAVEPOINT; emit BEGIN ourselves.
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn) -> None:
            conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for each test."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def company_id() -> UUID:
    return uuid4()


@pytest.fixture
def reporting_period_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_activity(db_session: AsyncSession, company_id: UUID, reporting_period_id: UUID):
    """Factory inserting a bare activity row (payload is not validated)."""

    async def _make(
        activity_type: ActivityType = ActivityType.STATIONARY_COMBUSTION,
        payload: dict | None = None,
        *,
        period_id: UUID | None = None,
    ) -> Activity:
        activity = Activity(
            company_id=company_id,
            reporting_period_id=period_id or reporting_period_id,
            activity_type=activity_type,
            payload=payload or {},
            entered_by="test-user-123",
        )
        db_session.add(activity)
        await db_session.flush()
        return activity

    return _make
