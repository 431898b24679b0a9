"""Shared pytest fixtures."""

import asyncio
import os
import tempfile

# Settings are read at import time, so configure before any wayfarer import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="wayfarer-logs-"))
os.environ["AMADEUS_CLIENT_ID"] = ""
os.environ["SMTP_HOST"] = ""

from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from wayfarer.database import Base  # noqa: E402
from wayfarer.models import Trip, User  # noqa: E402


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


@pytest.fixture
def session_factory(tmp_path):
    """Async session factory over a fresh SQLite file."""
    # NullPool: each asyncio.run gets its own connection
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(_create())
    yield async_sessionmaker(engine, expire_on_commit=False)
    run(engine.dispose())


def make_flight(price, currency="USD", dep="2025-01-01T08:00:00", arr="2025-01-01T10:00:00", segments=1):
    """Amadeus-shaped flight offer with ``segments`` outbound segments."""
    segs = []
    for i in range(segments):
        segs.append({
            "departure": {"iataCode": "AAA" if i == 0 else f"X{i}", "at": dep},
            "arrival": {"iataCode": "BBB" if i == segments - 1 else f"X{i + 1}", "at": arr},
        })
    return {
        "price": {"total": str(price), "currency": currency},
        "itineraries": [{"segments": segs}],
    }


def make_hotel(price, rating=None, name="Hotel"):
    hotel = {"name": name, "offers": [{"price": {"total": str(price)}}]}
    if rating is not None:
        hotel["rating"] = rating
    return hotel


async def add_user(db, email="ada@example.com", first_name="Ada", last_name="Lovelace") -> User:
    user = User(email=email, password_hash="x", first_name=first_name, last_name=last_name)
    db.add(user)
    await db.commit()
    return user


async def add_trip(db, user, **overrides) -> Trip:
    today = date.today()
    values = dict(
        user_id=user.id,
        trip_name="Paris Spring",
        origin="New York",
        origin_city_code="NYC",
        destination="Paris",
        destination_city_code="PAR",
        start_date=today + timedelta(days=30),
        end_date=today + timedelta(days=37),
        budget=Decimal("1500"),
        currency="USD",
        flight_options=[make_flight(500)],
        hotel_options=[],
        notify_price_drop=True,
        notify_email=True,
    )
    values.update(overrides)
    trip = Trip(**values)
    db.add(trip)
    await db.commit()
    return trip


class FakeOfferClient:
    """Stands in for the Amadeus client; records every call."""

    def __init__(self, flights=None, hotels=None, error=None, hotel_error=None):
        self.flights = flights if flights is not None else []
        self.hotels = hotels if hotels is not None else []
        self.error = error
        self.hotel_error = hotel_error
        self.flight_calls = []
        self.hotel_calls = []

    async def search_flight_offers(self, **kwargs):
        self.flight_calls.append(kwargs)
        if self.error:
            raise self.error
        return list(self.flights)

    async def search_hotels_by_city(self, city_code):
        self.hotel_calls.append(city_code)
        if self.hotel_error:
            raise self.hotel_error
        return list(self.hotels)
