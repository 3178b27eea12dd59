"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time, so these must precede eventpix imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_CACHE_URL"] = ""
os.environ["RATE_LIMIT_STORAGE_URL"] = ""
os.environ["ACCESS_CODE_RATE_LIMIT"] = "1000/minute"
os.environ["BULK_DOWNLOAD_RATE_LIMIT"] = "3/minute"
os.environ["CELERY_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret"

from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix import models  # noqa: F401 - register tables
from eventpix.core.cache import InMemoryStore, set_store
from eventpix.core.limiter import limiter
from eventpix.core.security import create_access_token
from eventpix.core.storage import StorageError, get_storage
from eventpix.db import get_session
from eventpix.main import create_application
from eventpix.models import Event, EventMember, User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeStorage:
    """Object storage double that records calls and keeps keys in a set."""

    def __init__(self) -> None:
        self.objects: set[str] = set()
        self.deleted: list[str] = []
        self.signed: list[str] = []
        self.download_names: list[Optional[str]] = []
        self.fail_signing = False

    async def signed_download_url(
        self, key: str, expires_in: int, filename: Optional[str] = None
    ) -> str:
        if self.fail_signing:
            raise StorageError("storage offline")
        self.signed.append(key)
        self.download_names.append(filename)
        return f"https://storage.example.com/{key}?expires={expires_in}"

    async def signed_upload_url(self, key: str, expires_in: int) -> str:
        if self.fail_signing:
            raise StorageError("storage offline")
        return f"https://storage.example.com/upload/{key}?expires={expires_in}"

    async def head_object(self, key: str) -> bool:
        return key in self.objects

    async def read_object(self, key: str) -> bytes:
        if key not in self.objects:
            raise StorageError(f"missing {key}")
        return f"data:{key}".encode()

    async def delete_object(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.discard(key)

    async def list_keys(self, prefix: str) -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, store: InMemoryStore, storage: FakeStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with the database session and object storage overridden."""
    app = create_application()

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make(email: str, *, is_super_admin: bool = False) -> User:
        user = User(
            email=email,
            name=email.split("@")[0],
            hashed_password="not-a-real-hash",
            is_super_admin=is_super_admin,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(owner: User, **overrides) -> Event:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "name": f"Event {n}",
            "date": datetime(2026, 6, 1, 18, 0, tzinfo=timezone.utc),
            "event_code": f"EVT{n:05d}",
            "access_code": f"AC{n:04d}",
            "created_by": owner.id,
        }
        data.update(overrides)
        event = Event(**data)
        db_session.add(event)
        db_session.add(EventMember(event_id=event.id, user_id=owner.id, role="host"))
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make


@pytest.fixture
def add_member(db_session: AsyncSession):
    async def _add(event: Event, user: User, role: str) -> EventMember:
        membership = EventMember(event_id=event.id, user_id=user.id, role=role)
        db_session.add(membership)
        await db_session.commit()
        return membership

    return _add


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture(scope="function")
async def host(make_user) -> User:
    return await make_user("host@example.com")


@pytest.fixture
def host_headers(host: User) -> dict:
    return auth_headers(host)


@pytest.fixture
def headers_for():
    return auth_headers
