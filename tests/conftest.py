"""Shared test fixtures: in-memory database, sessions and an API client."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from learnmap import models  # noqa: F401
from learnmap.api.deps import get_db
from learnmap.core.database import Base
from learnmap.main import app
from learnmap.models import Roadmap
from learnmap.schemas import RoadmapCreate
from learnmap.services import roadmap_service

TEST_USER = "test-user"


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def roadmap(test_session: AsyncSession) -> Roadmap:
    """A roadmap owned by TEST_USER (comes with its Intro node)."""
    return await roadmap_service.create_roadmap(
        test_session, TEST_USER, RoadmapCreate(title="Web Development")
    )


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": TEST_USER},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
