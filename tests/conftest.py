"""
Test configuration and shared fixtures for the QR check-in API.

Provides an isolated in-memory database per test, an HTTP client wired to
it, seeded attendees/events, and Faker providers for generated data.
"""

import os

# Must be set before qrcheckin.config is imported
os.environ["QRCHECKIN_ENV"] = "testing"

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from faker import Faker
from hypothesis import HealthCheck
from hypothesis import settings as hypothesis_settings
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import qrcheckin.models  # noqa: F401
from qrcheckin.config import settings
from qrcheckin.database import (
    Base,
    TransactionGate,
    get_async_session,
    get_session_factory,
    get_transaction_gate,
)
from qrcheckin.main import app
from tests.fixtures.factories import create_attendee, create_event, permit
from tests.fixtures.faker_providers import setup_faker_providers

# Configure Hypothesis for testing
hypothesis_settings.register_profile(
    "test",
    max_examples=50,
    deadline=2000,
    suppress_health_check=[HealthCheck.too_slow],
)
hypothesis_settings.register_profile(
    "ci",
    max_examples=200,
    deadline=5000,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.data_too_large],
)
hypothesis_settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "test"))

# Test database URL - use in-memory SQLite for fast tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_API_KEY = "test-api-key-0123456789"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def gate() -> TransactionGate:
    return TransactionGate()


@pytest_asyncio.fixture
async def client(session_factory, gate) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the app, with the database dependencies overridden."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_transaction_gate] = lambda: gate

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def api_key():
    """Configure an API key for the duration of a test."""
    previous = settings.get("API_KEY", "")
    settings.set("API_KEY", TEST_API_KEY)
    yield TEST_API_KEY
    settings.set("API_KEY", previous)


@pytest.fixture
def faker_instance() -> Faker:
    """Create a Faker instance with the event providers and a fixed seed."""
    fake = Faker("es_MX")
    fake.seed_instance(12345)  # Reproducible fake data
    return setup_faker_providers(fake)


@pytest_asyncio.fixture
async def scenario(db_session):
    """
    The reference scenario: attendee A1 permitted for E1 but not E2, plus an
    inactive attendee permitted for E1.
    """
    e1 = await create_event(db_session, code="E1", name="Cumbre Regional")
    e2 = await create_event(db_session, code="E2", name="Taller de Datos")
    a1 = await create_attendee(
        db_session,
        qr_code="A1",
        email="ana.perez@example.org",
        display_name="Ana Pérez",
        registered_events="E1",
    )
    inactive = await create_attendee(
        db_session,
        qr_code="B1",
        email="bruno@example.org",
        display_name="Bruno Díaz",
        is_active=False,
    )
    await permit(db_session, a1, e1)
    await permit(db_session, inactive, e1)
    await db_session.commit()

    return {"a1": a1, "inactive": inactive, "e1": e1, "e2": e2}
