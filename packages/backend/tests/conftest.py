"""Test fixtures — a fresh in-memory SQLite database per test.

Learn: Pattern for async SQLAlchemy + FastAPI without a Postgres server:

1. Each test gets its own aiosqlite engine on a StaticPool (one shared
   connection, so the in-memory database survives across sessions)
2. Base.metadata.create_all builds the schema; dispose() throws it away
3. Routes get that session through a get_db override, and a fixed
   identity through a get_current_user override

Realtime tests never open real sockets or Redis: RecordingTransport
stands in for a WebSocket and FakeRedis for the pub/sub broker.
"""

import os

# Must be set before anything imports lexdesk.config
os.environ.setdefault("LEXDESK_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LEXDESK_ENVIRONMENT", "test")

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from lexdesk.auth.dependencies import CurrentIdentity, get_current_user
from lexdesk.db.engine import get_db
from lexdesk.db.models import Base, Folder, User
from lexdesk.db.repository import stamp_created
from lexdesk.main import create_app

TEST_DB_URL = "sqlite+aiosqlite://"

# The identity every `client` request runs as
CURRENT_USER_ID = 1
OTHER_USER_ID = 2


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


async def create_user(db: AsyncSession, user_id: int, full_name: str | None = None) -> User:
    user = User(
        id=user_id,
        email=f"user{user_id}@lexdesk.test",
        full_name=full_name or f"User {user_id}",
    )
    stamp_created(user)
    db.add(user)
    await db.commit()
    return user


async def create_folder(db: AsyncSession, folder_id: int, **fields) -> Folder:
    folder = Folder(
        id=folder_id,
        title=fields.pop("title", f"Folder {folder_id}"),
        status=fields.pop("status", "active"),
        deleted=fields.pop("deleted", False),
        **fields,
    )
    stamp_created(folder)
    db.add(folder)
    await db.commit()
    return folder


@pytest.fixture
def make_user(db_session):
    async def _make(user_id: int, full_name: str | None = None) -> User:
        return await create_user(db_session, user_id, full_name)
    return _make


@pytest.fixture
def make_folder(db_session):
    async def _make(folder_id: int, **fields) -> Folder:
        return await create_folder(db_session, folder_id, **fields)
    return _make


@pytest_asyncio.fixture()
async def users(db_session):
    """The signed-in user (1) and somebody else (2)."""
    return (
        await create_user(db_session, CURRENT_USER_ID, "Ana Souza"),
        await create_user(db_session, OTHER_USER_ID, "Bruno Lima"),
    )


# ═══════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def app():
    """A fresh application (own gateway, bridge, overrides) per test."""
    app = create_app()
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app, db_session):
    """HTTP client with get_db and auth overridden for testing.

    Every request runs as CURRENT_USER_ID without a real JWT.
    """
    async def override_get_db():
        yield db_session

    def override_get_current_user():
        return CurrentIdentity(user_id=CURRENT_USER_ID)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauthenticated_client(app, db_session):
    """HTTP client WITHOUT the auth override — the real JWT pipeline runs."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ═══════════════════════════════════════════════════════════
# Realtime doubles
# ═══════════════════════════════════════════════════════════


class RecordingTransport:
    """Anything with `async send_json` can back a Connection."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise ConnectionResetError("socket gone")
        self.frames.append(data)

    def events(self) -> list[str]:
        return [f["event"] for f in self.frames]

    def last(self, event: str) -> dict:
        return [f for f in self.frames if f["event"] == event][-1]


class FakeRedis:
    """In-memory broker shared by several bridges ("server instances").

    publish() records the envelope and hands it to every bridge wired
    to the broker, including the publisher itself, like real pub/sub.
    """

    def __init__(self):
        self.published: list[tuple[str, dict]] = []
        self.bridges: list = []

    def wire(self, bridge):
        bridge.attach(self)
        self.bridges.append(bridge)
        return bridge

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, json.loads(message)))
        for bridge in self.bridges:
            if bridge.channel == channel:
                await bridge.handle_message(message)
        return len(self.bridges)


@pytest.fixture
def transport():
    return RecordingTransport


@pytest.fixture
def fake_redis():
    return FakeRedis()
