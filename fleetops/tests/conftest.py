"""
Centralized Test Configuration.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from fleetops.app.main import app
from fleetops.app.db.session import get_db, Base
from fleetops.app.core.redis_client import get_redis
from fleetops.app.core.security import get_password_hash
from fleetops.app.domain.lifecycle.driver_service import DriverService
from fleetops.app.domain.lifecycle.vehicle_service import VehicleService
from fleetops.app.models.enums import UserRole
from fleetops.app.models.fleet_enums import VehicleType
from fleetops.app.models.user import User

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


class MockRedis:
    """In-memory stand-in for the token revocation store."""

    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}


@pytest.fixture(scope="session")
def mock_redis():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(mock_redis):
    """Route the app's DB and Redis dependencies to the test doubles."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database(mock_redis):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await mock_redis.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def auth_headers(client, db_session):
    """
    Factory: create a user with the given role, log in through the API
    and return Authorization headers.
    """
    async def _make(role: UserRole, user_name: str = None) -> dict:
        user_name = user_name or role.value.lower()
        db_session.add(User(
            email=f"{user_name}@fleetops.io",
            user_name=user_name,
            hashed_password=get_password_hash("password123"),
            role=role,
            is_active=True,
        ))
        await db_session.commit()

        response = await client.post("/v1/auth/login", json={
            "user_name": user_name,
            "password": "password123",
        })
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}

    return _make


@pytest.fixture
async def admin_headers(auth_headers):
    return await auth_headers(UserRole.ADMIN)


@pytest.fixture
async def vehicle(db_session):
    """An Available van with a 500 kg limit."""
    return await VehicleService.create(
        db_session, license_plate="VAN-05", model="Ford Transit",
        type=VehicleType.VAN, max_load=500.0, acquisition_cost=42000.0,
    )


@pytest.fixture
async def driver(db_session):
    """An Off Duty driver with a license valid for a year."""
    return await DriverService.create(
        db_session, name="Alex Morgan", license_expiry=date.today() + timedelta(days=365)
    )
