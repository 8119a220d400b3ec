import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, time, timedelta

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_FORMAT", "console")

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import get_clock  # noqa: E402
from app.main import app  # noqa: E402
from app.models import metadata  # noqa: E402
from app.schemas.users import Role, UserRecord  # noqa: E402
from app.services.appointment_service import AppointmentService  # noqa: E402
from app.services.slot_calendar import OfficeHours  # noqa: E402
from app.services.user_service import UserService  # noqa: E402

# Test database URL - defaults to a throwaway SQLite file
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL") or (
    f"sqlite+aiosqlite:///{tempfile.gettempdir()}/scheduler_test_{os.getpid()}.db"
)

if not TEST_DATABASE_URL.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

# Use NullPool to avoid event loop issues between tests
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Monday 2025-06-02, 08:00 UTC
NOW = datetime(2025, 6, 2, 8, 0, tzinfo=UTC)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

OFFICE_HOURS = OfficeHours(start=time(9, 0), end=time(17, 0), slot_duration=timedelta(minutes=30))


class FixedClock:
    """Clock frozen at a given instant."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def tomorrow():
    return TOMORROW


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on freshly created tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def service(db_session: AsyncSession, clock: FixedClock) -> AppointmentService:
    return AppointmentService(db_session, clock=clock, hours=OFFICE_HOURS)


async def _create_user(session: AsyncSession, role: Role, first: str, last: str) -> UserRecord:
    return await UserService().create_user(session, role, first, last, "+48500100200")


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> UserRecord:
    return await _create_user(db_session, Role.PATIENT, "Anna", "Nowak")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> UserRecord:
    return await _create_user(db_session, Role.PATIENT, "Jan", "Kowalski")


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> UserRecord:
    return await _create_user(db_session, Role.DOCTOR, "Ewa", "Lis")


@pytest_asyncio.fixture
async def receptionist(db_session: AsyncSession) -> UserRecord:
    return await _create_user(db_session, Role.RECEPTIONIST, "Piotr", "Wozniak")


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    clock: FixedClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory for bearer headers identifying a user."""

    def make(user: UserRecord) -> dict:
        token = create_access_token(data={"sub": str(user.id)}, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return make
