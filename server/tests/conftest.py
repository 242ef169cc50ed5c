"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at SQLite before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ceylonbooking.core.config import settings
from ceylonbooking.core.database import Base, get_db
from ceylonbooking.models import *  # noqa: F403 - Import all models
from ceylonbooking.models import InventoryType, Listing, UserType
from ceylonbooking.services.user_service import UserService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application without lifespan or instrumentation."""
    from fastapi import FastAPI

    from ceylonbooking.main import register_routes

    app = FastAPI(title="CeylonBooking API (Test)", version="1.0.0-test")
    register_routes(app)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def make_token(user_id, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Sign a bearer token the way the auth provider would."""
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.bearer_token_secret, algorithm=settings.bearer_token_algorithm)


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user."""
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {make_token(user.id)}"}
    return _headers


@pytest_asyncio.fixture
async def host(test_session):
    return await UserService(test_session).create_user(
        email="host@example.com", full_name="Nimal Silva", user_type=UserType.HOST, country="LK"
    )


@pytest_asyncio.fixture
async def local_traveler(test_session):
    return await UserService(test_session).create_user(
        email="kamal@example.com", full_name="Kamal Perera", country="LK"
    )


@pytest_asyncio.fixture
async def foreign_traveler(test_session):
    return await UserService(test_session).create_user(
        email="john@example.com", full_name="John Doe", country="US"
    )


@pytest_asyncio.fixture
async def unknown_traveler(test_session):
    return await UserService(test_session).create_user(
        email="anon@example.com", full_name="Unknown"
    )


async def _add_listing(session, host, inventory_type: InventoryType, capacity: int) -> Listing:
    listing = Listing(
        host_id=host.id,
        title="Mirissa Whale Watching" if inventory_type is InventoryType.SLOT else "Ella Hill Homestay",
        location="Mirissa" if inventory_type is InventoryType.SLOT else "Ella",
        inventory_type=inventory_type.value,
        local_price=Decimal("3500.00"),
        foreign_price=Decimal("50.00"),
        capacity=capacity,
    )
    session.add(listing)
    await session.commit()
    await session.refresh(listing)
    return listing


@pytest_asyncio.fixture
async def slot_listing(test_session, host):
    """Slot-based listing with capacity 10."""
    return await _add_listing(test_session, host, InventoryType.SLOT, capacity=10)


@pytest_asyncio.fixture
async def date_listing(test_session, host):
    """Date-based listing with capacity 2."""
    return await _add_listing(test_session, host, InventoryType.DATE, capacity=2)


@pytest.fixture
def sample_listing_data():
    """Sample listing payload for testing."""
    return {
        "title": "Galle Fort Walking Tour",
        "description": "Two hours through the ramparts with a local guide",
        "inventory_type": "slot",
        "location": "Galle",
        "local_price": "2500.00",
        "foreign_price": "25.00",
        "capacity": 12,
    }
