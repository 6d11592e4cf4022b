"""Pytest configuration and fixtures."""
import os
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DB_PATH = Path("test_taskhub.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()

TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("FRONTEND_URL", "http://frontend.example.com/")

from taskhub.main import app  # noqa: E402
from taskhub.core.security import create_session_token  # noqa: E402
from taskhub.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from taskhub.models.user import User  # noqa: E402
from taskhub.realtime.hub import BroadcastHub  # noqa: E402


# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class FakeConnection:
    """Stand-in for a WebSocket: records what the hub sends."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)

    def types(self):
        return [message["type"] for message in self.sent]


def auth_headers(user: User) -> dict:
    """Bearer header carrying a session token for ``user``."""
    token = create_session_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory that inserts a user."""

    async def _make_user(user_id: str, email: str, display_name: str = "") -> User:
        db_user = User(id=user_id, email=email, display_name=display_name, avatar_url="")
        db_session.add(db_user)
        await db_session.commit()
        await db_session.refresh(db_user)
        return db_user

    return _make_user


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("google-alice", "alice@example.com", "Alice")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("google-bob", "bob@example.com", "Bob")


@pytest_asyncio.fixture
async def carol(make_user):
    return await make_user("google-carol", "carol@example.com", "Carol")


@pytest.fixture
def hub():
    """Fresh in-memory hub installed on the app for the duration of a test."""
    previous = app.state.hub
    app.state.hub = BroadcastHub()
    yield app.state.hub
    app.state.hub = previous


@pytest_asyncio.fixture
async def api_client(db_session: AsyncSession, hub: BroadcastHub):
    """Async HTTP client against the app with the test database session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
