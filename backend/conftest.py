"""
Pytest configuration and fixtures for backend tests.

Tests run against a fresh in-memory SQLite database per test function:
- ``session`` gives services a real AsyncSession
- ``client`` drives the FastAPI app over ASGI with the same database
- ``dispatched_jobs`` captures job events posted by the effect dispatcher
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ.pop("JOB_DISPATCH_URL", None)

from collections.abc import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from clientboard.api.deps import get_activity_logger, get_job_dispatcher  # noqa: E402
from clientboard.db import base  # noqa: F401,E402  # register table metadata
from clientboard.db.session import get_session  # noqa: E402
from clientboard.main import app  # noqa: E402
from clientboard.services.effects import ActivityLogger, JobDispatcher  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"
JOB_DISPATCH_TEST_URL = "http://jobs.test/events"


@pytest.fixture(scope="function")
async def engine():
    """Create an isolated in-memory database with every table."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as test_session:
        yield test_session


@pytest.fixture
def dispatched_jobs() -> list[httpx.Request]:
    return []


@pytest.fixture
def job_dispatcher(dispatched_jobs: list[httpx.Request]) -> JobDispatcher:
    """Dispatcher whose HTTP calls land in ``dispatched_jobs``."""

    def handler(request: httpx.Request) -> httpx.Response:
        dispatched_jobs.append(request)
        return httpx.Response(202)

    return JobDispatcher(JOB_DISPATCH_TEST_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
async def client(
    session: AsyncSession,
    session_factory,
    job_dispatcher: JobDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client bound to the app.

    The request session is the test ``session``; background effects write
    activity through their own sessions on the same database.
    """

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_job_dispatcher] = lambda: job_dispatcher
    app.dependency_overrides[get_activity_logger] = lambda: ActivityLogger(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
