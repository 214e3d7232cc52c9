"""
Pytest configuration and shared fixtures.

Provides:
- A wired in-memory environment (repo, stub provider, fake clock and ids)
- FastAPI TestClient bound to that environment
- SQLite in-memory engine for repository tests
- Automatic circuit breaker reset between tests
"""

from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.dependencies import build_use_cases, get_use_cases
from app.application.interfaces.clock import FakeClock
from app.application.interfaces.identifier_generator import FakeIdentifierGenerator
from app.application.services.notification_dispatcher import NotificationDispatcher
from app.config import Settings
from app.infrastructure.db.tables import metadata
from app.infrastructure.in_memory import (
    InMemoryCounterStore,
    InMemoryReservationRepo,
    NoopTransactionManager,
    StubProviderGateway,
)
from app.main import app
from tests.builders import NOW, BookingEnv, RecordingNotifier

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# IN-MEMORY ENVIRONMENT
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        use_in_memory=True,
        hold_duration_minutes=24 * 60,
        update_cutoff_minutes=120,
        code_generation_max_attempts=3,
        lookup_rate_limit_max=3,
        lookup_rate_limit_window_seconds=900,
    )


@pytest.fixture
def env(test_settings: Settings) -> BookingEnv:
    notifier = RecordingNotifier()
    bundle = BookingEnv(
        repo=InMemoryReservationRepo(),
        tx=NoopTransactionManager(),
        gateway=StubProviderGateway(),
        clock=FakeClock(NOW),
        ids=FakeIdentifierGenerator(),
        notifier=notifier,
        notifications=NotificationDispatcher(notifier),
        counters=InMemoryCounterStore(),
        settings=test_settings,
    )
    bundle.use_cases = build_use_cases(
        test_settings,
        reservation_repo=bundle.repo,
        tx_manager=bundle.tx,
        counter_store=bundle.counters,
        provider_gateway=bundle.gateway,
        clock=bundle.clock,
        id_generator=bundle.ids,
        notifications=bundle.notifications,
    )
    return bundle


# ============================================================================
# HTTP CLIENT
# ============================================================================


@pytest.fixture
def client(env: BookingEnv) -> Generator[TestClient, None, None]:
    """TestClient whose use cases run against the fixture environment."""
    app.dependency_overrides[get_use_cases] = lambda: env.use_cases

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# DATABASE
# ============================================================================


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


# ============================================================================
# HOOKS
# ============================================================================


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """
    Reset the provider breaker before each test.
    Prevents an open breaker from leaking between tests.
    """
    from app.infrastructure.circuit_breaker import provider_breaker

    provider_breaker.close()
    yield
    provider_breaker.close()
