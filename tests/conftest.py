import itertools
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import incident_desk.mcp.tools.dashboard as mcp_dashboard
import incident_desk.mcp.tools.search as mcp_search
from incident_desk.database import get_db
from incident_desk.main import create_app
from incident_desk.models import Base
from incident_desk.models.base import TicketCategory, TicketPriority, TicketStatus, UserRole
from incident_desk.models.ticket import Ticket
from incident_desk.models.user import User
from incident_desk.services.auth_service import create_access_token, hash_password

# A single in-memory SQLite database per test; StaticPool keeps every session
# on the same connection so the schema stays visible.
TEST_DB_URL = "sqlite+aiosqlite://"

TEST_PASSWORD = "s3cret-pass"
# bcrypt is slow by design; hash once for every fixture user.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create all tables before each test and drop them after."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app with test DB override."""
    app = create_app()

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def mcp_db(db: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> AsyncSession:
    """Point the MCP tools at the test session instead of their own."""
    @asynccontextmanager
    async def _test_session():
        yield db

    monkeypatch.setattr(mcp_search, "async_session", _test_session)
    monkeypatch.setattr(mcp_dashboard, "async_session", _test_session)
    return db


async def _create_user(db: AsyncSession, username: str, full_name: str, role: UserRole) -> User:
    user = User(
        username=username,
        email=f"{username}@test.com",
        full_name=full_name,
        hashed_password=_PASSWORD_HASH,
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _create_user(db, "testadmin", "Test Admin", UserRole.admin)


@pytest.fixture
async def desk_user(db: AsyncSession) -> User:
    """A service desk agent; privileged for search and the global dashboard."""
    return await _create_user(db, "deskagent", "Dana Desk", UserRole.service_desk)


@pytest.fixture
async def regular_user(db: AsyncSession) -> User:
    return await _create_user(db, "reguser", "Riley Regular", UserRole.regular)


@pytest.fixture
async def other_user(db: AsyncSession) -> User:
    return await _create_user(db, "otheruser", "Olivia Other", UserRole.regular)


@pytest.fixture
def desk_token(desk_user: User) -> str:
    return create_access_token(desk_user.id, desk_user.role.value)


@pytest.fixture
def regular_token(regular_user: User) -> str:
    return create_access_token(regular_user.id, regular_user.role.value)


@pytest.fixture
def make_ticket(db: AsyncSession, regular_user: User):
    """Factory inserting tickets with increasing ``created_at`` unless one is given."""
    numbers = itertools.count(1)

    async def _make(
        title: str,
        description: str = "No further details provided",
        *,
        reporter: User | None = None,
        assignee: User | None = None,
        created_at: datetime | None = None,
        **fields,
    ) -> Ticket:
        number = next(numbers)
        fields.setdefault("status", TicketStatus.open)
        fields.setdefault("priority", TicketPriority.medium)
        fields.setdefault("category", TicketCategory.other)
        created = created_at or BASE_TIME + timedelta(minutes=number)
        ticket = Ticket(
            ticket_number=f"INC-{number:04d}",
            title=title,
            description=description,
            reporter_id=(reporter or regular_user).id,
            assignee_id=assignee.id if assignee else None,
            created_at=created,
            updated_at=created,
            **fields,
        )
        db.add(ticket)
        await db.commit()
        return ticket

    return _make


def auth_header(token: str) -> dict:
    """Helper to create Authorization header."""
    return {"Authorization": f"Bearer {token}"}
