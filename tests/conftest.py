import os
import sys
from collections.abc import AsyncGenerator, Iterator


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import anyio
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from demo_service.db import base as db_base
from demo_service.db.models import Base
from demo_service.main import create_app


def _memory_engine() -> AsyncEngine:
    return create_async_engine(
        "sqlite+aiosqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest_asyncio.fixture
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an ephemeral in-memory SQLite AsyncSession for async tests.

    Creates schema per-test to ensure isolation.
    """
    engine = _memory_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:  # type: ignore[misc]
        yield session
    await engine.dispose()


@pytest.fixture
def session_maker() -> async_sessionmaker[AsyncSession]:
    engine = _memory_engine()

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    anyio.run(_create)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def app(session_maker) -> Iterator[FastAPI]:
    """A fresh application (fresh counters) wired to an in-memory database."""
    application = create_app()

    async def _dep():
        async with session_maker() as session:  # type: ignore[misc]
            yield session

    application.dependency_overrides[db_base.get_session] = _dep
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
