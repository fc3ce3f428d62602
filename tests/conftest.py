"""Shared test fixtures."""

from __future__ import annotations

import os

os.environ["PREPQUEST_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PREPQUEST_SEED_CATALOG_ON_STARTUP"] = "false"
os.environ["PREPQUEST_LOG_FORMAT"] = "console"

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from prepquest.auth.dependencies import get_clock  # noqa: E402
from prepquest.auth.jwt import create_access_token  # noqa: E402
from prepquest.config import get_settings  # noqa: E402
from prepquest.database import close_db, get_engine, init_db  # noqa: E402
from prepquest.db.base import Base  # noqa: E402
from prepquest.main import create_app  # noqa: E402
from prepquest.redis_client import get_redis_optional  # noqa: E402
from prepquest.rewards.seed import seed_catalogs  # noqa: E402

get_settings.cache_clear()

FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def redis_mock() -> MagicMock:
    """Redis stand-in that records pub/sub publishes."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database with all tables and seeded catalogs."""
    await init_db(get_settings().database_url)
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSession(engine, expire_on_commit=False) as session:
        await seed_catalogs(session)
        yield session
        await session.rollback()

    await close_db()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, clock: FakeClock, redis_mock: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test database, clock and Redis mock."""
    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_redis_optional] = lambda: redis_mock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers_for():
    """Build a bearer header for any user id."""

    def _headers(uid: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(uid)}"}

    return _headers


@pytest.fixture
def auth_headers(user_id: uuid.UUID, headers_for) -> dict[str, str]:
    """Bearer header for ``user_id``."""
    return headers_for(user_id)
