"""
Centralized Test Configuration.
"""

import uuid
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from courier_billing.app.main import app
from courier_billing.app.core.jwt import create_access_token
from courier_billing.app.db.session import get_db, Base
from courier_billing.app.domain.billing.events import InvoiceEvent, get_event_publisher
from courier_billing.app.models.enums import UserRole

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
    engine, class_=AsyncSession, expire_on_commit=False
)


class RecordingInvoiceEventPublisher:
    """Keeps published events in memory for assertions."""

    def __init__(self):
        self.events = []

    async def publish(self, event: InvoiceEvent) -> None:
        self.events.append(event)

    @property
    def event_types(self):
        return [event.event_type for event in self.events]


@pytest.fixture
def publisher():
    return RecordingInvoiceEventPublisher()


@pytest.fixture(autouse=True)
def apply_overrides(publisher):
    """Route the app to the in-memory database and the recording publisher."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_headers(role: UserRole, user_id: int = 1) -> dict:
    token = create_access_token(data={"sub": f"{role.value.lower()}_user", "user_id": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return auth_headers(UserRole.ADMIN, user_id=1)


@pytest.fixture
def finance_headers():
    return auth_headers(UserRole.FINANCE, user_id=2)


@pytest.fixture
def dispatcher_headers():
    return auth_headers(UserRole.DISPATCHER, user_id=3)


@pytest.fixture
def customer_id():
    return uuid.uuid4()

