"""Shared test configuration and fixtures.

Store and API tests run against an in-memory SQLite database (aiosqlite):
- Each test gets a fresh engine with all tables created.
- The API client overrides ``get_db`` so the real ``BookingStore`` reads the
  test session.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stay_calendar.database import Base, get_db
from stay_calendar.main import app
from stay_calendar.models.booking import Booking
from stay_calendar.models.property import Property

AddBooking = Callable[..., Awaitable[Booking]]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory engine with every table."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on the in-memory database."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: properties and bookings
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_property(db_session: AsyncSession) -> Property:
    """Create and return a test property directly in the DB."""
    prop = Property(name="Test Villa", location="Ubud, Bali")
    db_session.add(prop)
    await db_session.commit()
    return prop


@pytest_asyncio.fixture
async def add_booking(db_session: AsyncSession) -> AddBooking:
    """Return a coroutine that inserts a booking and commits it."""

    async def _add(
        prop: Property,
        check_in: date,
        check_out: date,
        status: str = "confirmed",
        guest_name: str | None = "Test Guest",
        amount: Decimal | None = None,
    ) -> Booking:
        booking = Booking(
            id=uuid.uuid4(),
            property_id=prop.id,
            check_in=check_in,
            check_out=check_out,
            status=status,
            guest_name=guest_name,
            amount=amount,
        )
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _add
