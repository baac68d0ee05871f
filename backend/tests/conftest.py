"""Common test fixtures and configuration for pytest.

Integration tests run against an in-memory SQLite database that is created from
the model metadata for every test function.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from credibill import models  # noqa: F401
from credibill.models._base import Base

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.billing import (  # noqa
    billing_app,
    customer,
    flat_plan,
    organization,
)


@pytest.fixture
async def db_engine():
    """Create a fresh in-memory database engine for each test function."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine
    )


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for integration tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def session_factory(session_maker):
    """Context manager factory with the signature of get_db_context."""

    @asynccontextmanager
    async def factory():
        async with session_maker() as session:
            yield session

    return factory
