"""
Pytest configuration and fixtures.

The scheduling core is exercised against the in-memory store; the SQL store
and the HTTP API run against an in-memory SQLite database (aiosqlite), one
fresh database per test. The schedule cache runs on fakeredis.
"""
import os

# Must be set before salon_booking.core.db builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date, datetime, time

import fakeredis
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from salon_booking.core.db import Base
from salon_booking import models
from salon_booking.scheduling.cache import ScheduleCache
from salon_booking.scheduling.memory_store import MemoryStore


# 2035-01-01 is a Monday (weekday 0); NOW is the morning before.
MONDAY = date(2035, 1, 1)
TUESDAY = date(2035, 1, 2)
SUNDAY = date(2035, 1, 7)
NOW = datetime(2035, 1, 1, 8, 0)

SALON = "s1"


def at(day: date, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime.combine(day, time(int(hours), int(minutes)))


@pytest.fixture
def store():
    """
    One salon open Monday 09:00-12:00 and 13:00-18:00, stylist "a" working
    10:00-16:00 and stylist "b" working 13:00-18:00, a 30 minute "cut".
    """
    store = MemoryStore()
    store.add_salon(SALON, "Test Salon")
    store.add_stylist(SALON, "a", "Alex")
    store.add_stylist(SALON, "b", "Blair")
    store.add_service(SALON, "cut", 30)
    store.add_service(SALON, "consult", None)
    store.set_salon_hours(SALON, 0, ("09:00", "12:00"), ("13:00", "18:00"))
    store.set_stylist_hours("a", 0, ("10:00", "16:00"))
    store.set_stylist_hours("b", 0, ("13:00", "18:00"))

    store.add_salon("s2", "Other Salon")
    store.add_stylist("s2", "z", "Zed")
    store.set_salon_hours("s2", 0, ("09:00", "17:00"))
    store.set_stylist_hours("z", 0, ("09:00", "17:00"))
    return store


# ────────────────────────────────────────────────────────────────
# Schedule cache
# ────────────────────────────────────────────────────────────────

@pytest.fixture
def redis_server():
    """One fake Redis server; clients created from it share data like separate workers would."""
    return fakeredis.FakeServer()


def make_redis(server):
    return fakeredis.FakeAsyncRedis(server=server, decode_responses=True)


@pytest.fixture
def schedule_cache(redis_server):
    return ScheduleCache(make_redis(redis_server))


# ────────────────────────────────────────────────────────────────
# Database
# ────────────────────────────────────────────────────────────────

@pytest.fixture(scope="function")
async def async_engine():
    """Fresh in-memory SQLite database; StaticPool keeps the single connection alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


async def seed_test_salon(factory):
    """Same salon as the `store` fixture."""
    async with factory() as session:
        session.add_all([models.Salon(id=SALON, name="Test Salon"), models.Salon(id="s2", name="Other Salon")])
        await session.flush()
        session.add_all(
            [
                models.Stylist(id="a", salon_id=SALON, name="Alex"),
                models.Stylist(id="b", salon_id=SALON, name="Blair"),
                models.Stylist(id="z", salon_id="s2", name="Zed"),
                models.Service(id="cut", salon_id=SALON, name="Cut", duration_minutes=30),
                models.Service(id="consult", salon_id=SALON, name="Consult", duration_minutes=None),
            ]
        )
        await session.flush()
        session.add_all(
            [
                models.SalonHours(salon_id=SALON, weekday=0, open_time=time(9), close_time=time(12)),
                models.SalonHours(salon_id=SALON, weekday=0, open_time=time(13), close_time=time(18)),
                models.SalonHours(salon_id="s2", weekday=0, open_time=time(9), close_time=time(17)),
                models.StylistSchedule(stylist_id="a", weekday=0, start_time=time(10), end_time=time(16)),
                models.StylistSchedule(stylist_id="b", weekday=0, start_time=time(13), end_time=time(18)),
                models.StylistSchedule(stylist_id="z", weekday=0, start_time=time(9), end_time=time(17)),
            ]
        )
        await session.commit()


@pytest.fixture(scope="function")
async def seeded_factory(session_factory):
    await seed_test_salon(session_factory)
    return session_factory


@pytest.fixture(scope="function")
async def file_factory(tmp_path):
    """
    Seeded SQLite database in a file, with a real connection pool.

    Unlike the StaticPool fixtures each session gets its own connection, so
    concurrent bookings really race on the database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await seed_test_salon(factory)
    yield factory
    await engine.dispose()


@pytest.fixture(scope="function")
async def client(seeded_factory, schedule_cache):
    """
    FastAPI AsyncClient with the session factory overridden to the test database.
    """
    # Import here so DATABASE_URL above is in place first
    from salon_booking.main import app
    from salon_booking.core.db import get_session_factory

    app.dependency_overrides[get_session_factory] = lambda: seeded_factory
    app.state.schedule_cache = schedule_cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()
