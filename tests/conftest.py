import os
import sys
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Settings need these before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./viewing_booking.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-development-only")
os.environ.setdefault("LOG_FORMAT", "console")

from app.config import settings  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.database import build_engine, get_async_database_url, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import metadata, properties, users  # noqa: E402
from app.schemas.users import ActingUser, UserRole  # noqa: E402

# Test database URL - MUST be different from the application database.
# Defaults to a throwaway SQLite file; set TEST_DATABASE_URL for PostgreSQL.
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'viewing_booking_test.db')}",
)
TEST_DATABASE_URL = get_async_database_url(TEST_DATABASE_URL)

# Additional safety: ensure we're not using the application database
if get_async_database_url(settings.database_url) == TEST_DATABASE_URL:
    print("\n❌ CRITICAL ERROR: Test database URL is same as application database!")
    print("This would DROP all data during tests.")
    print("Please set TEST_DATABASE_URL to a separate test database in .env")
    sys.exit(1)

# Use NullPool so every session gets its own connection
test_engine = build_engine(TEST_DATABASE_URL, poolclass=NullPool)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh schema."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def session_factory(db_session: AsyncSession) -> async_sessionmaker[AsyncSession]:
    """Factory for independent sessions, one per simulated request handler."""
    return TestSessionLocal


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


UserFactory = Callable[..., Awaitable[ActingUser]]
PropertyFactory = Callable[..., Awaitable[dict]]
HeadersFactory = Callable[[ActingUser], dict]


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Factory inserting a user row and returning it as an acting user."""

    async def _make_user(role: UserRole, name: str) -> ActingUser:
        user_id = uuid4()
        await db_session.execute(
            insert(users).values(
                id=user_id,
                email=f"{name}-{user_id.hex[:8]}@example.com",
                full_name=name.replace("_", " ").title(),
                role=role.value,
                is_active=True,
            )
        )
        await db_session.commit()
        return ActingUser(id=user_id, role=role)

    return _make_user


@pytest_asyncio.fixture
async def admin(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.ADMIN, "admin")


@pytest_asyncio.fixture
async def agent(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.AGENT, "agent")


@pytest_asyncio.fixture
async def other_agent(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.AGENT, "other_agent")


@pytest_asyncio.fixture
async def customer_a(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.CUSTOMER, "customer_a")


@pytest_asyncio.fixture
async def customer_b(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.CUSTOMER, "customer_b")


@pytest_asyncio.fixture
async def customer_c(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.CUSTOMER, "customer_c")


@pytest_asyncio.fixture
async def customer_d(make_user: UserFactory) -> ActingUser:
    return await make_user(UserRole.CUSTOMER, "customer_d")


@pytest.fixture
def make_property(db_session: AsyncSession) -> PropertyFactory:
    """Factory inserting a catalog property."""

    async def _make_property(
        agent_id: UUID | None = None,
        status: str = "available",
        title: str = "Sunny Two Bedroom",
    ) -> dict:
        property_id = uuid4()
        await db_session.execute(
            insert(properties).values(
                id=property_id,
                title=title,
                address="12 Harbour Street",
                status=status,
                assigned_agent_id=agent_id,
            )
        )
        await db_session.commit()
        return {"id": property_id, "title": title, "status": status, "assigned_agent_id": agent_id}

    return _make_property


@pytest_asyncio.fixture
async def listing(make_property: PropertyFactory, agent: ActingUser) -> dict:
    """An available property assigned to ``agent``."""
    return await make_property(agent_id=agent.id)


@pytest.fixture
def auth_headers() -> HeadersFactory:
    """Bearer headers for a user."""

    def _auth_headers(user: ActingUser) -> dict:
        token = create_access_token(user.id, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
