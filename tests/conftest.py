"""
Shared test fixtures.

Uses an on-disk SQLite database per test (via aiosqlite) so tests run
without Docker / PostgreSQL.  The production models are portable: the
partial unique indexes that guard open trips exist in SQLite too, so the
conflict tests exercise the real constraint.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from dispatcher.infrastructure.database import Base, create_session_factory
from dispatcher.infrastructure.models import TripModel  # noqa: F401  (registers table)
from dispatcher.infrastructure.repositories import SqlTripStore
from tests.fakes import T0, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, dispose afterwards."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'trips.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine: AsyncEngine, clock: FakeClock) -> SqlTripStore:
    return SqlTripStore(create_session_factory(engine), clock=clock)
