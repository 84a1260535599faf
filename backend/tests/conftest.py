"""Shared fixtures: in-memory SQLite record store, API client, sample routes."""

import os

# Must be set before roadbook.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from roadbook.database import Base, get_db
from roadbook.main import app
from roadbook.models import record  # noqa: F401  registers tables
from roadbook.models.drive import GeoPoint, Route, Waypoint, WaypointType
from roadbook.services.photo_storage import PhotoStorage
from roadbook.services.record_store import SqlRecordStore
from roadbook.services.route_library import RouteLibrary

SAMPLE_POINTS = [(37.0, -122.0), (37.1, -122.1)]


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
def store(session) -> SqlRecordStore:
    return SqlRecordStore(session)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def photo_storage(tmp_path) -> PhotoStorage:
    return PhotoStorage(tmp_path / "photos")


@pytest.fixture
def library(photo_storage) -> RouteLibrary:
    return RouteLibrary(storage=photo_storage)


@pytest.fixture
def sample_route() -> Route:
    route = Route(name="Skyline Loop", description="Ridge road above the bay")
    route.update_route(
        SAMPLE_POINTS,
        [
            Waypoint(GeoPoint(37.0, -122.0), name="Trailhead", waypoint_type=WaypointType.START),
            Waypoint(GeoPoint(37.05, -122.05), waypoint_type=WaypointType.GAS),
        ],
    )
    return route
