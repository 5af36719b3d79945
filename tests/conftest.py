"""Shared pytest fixtures: isolated store per test, fixed clock, temp uploads."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from paperboy.infrastructure.database import Database
from paperboy.infrastructure.file_storage import LocalFileStorage
from paperboy.infrastructure.posts_repo import PostsRepository
from paperboy.main import create_app
from paperboy.services.lifecycle import LifecycleEngine
from paperboy.services.post_service import PostService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def lifecycle(clock) -> LifecycleEngine:
    return LifecycleEngine(clock=clock)


@pytest_asyncio.fixture
async def service(database, lifecycle, storage):
    async with database.session() as session:
        yield PostService(PostsRepository(session), lifecycle=lifecycle, storage=storage)


@pytest_asyncio.fixture
async def client(database, storage, clock):
    app = create_app(database=database, storage=storage, clock=clock, strict=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
