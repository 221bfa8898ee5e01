"""
Pytest configuration and fixtures for Job Monitor tests.

Provides:
- Async test database with SQLite
- Test client for API testing
- Drop/archive directories under tmp_path
- Factory fixtures for creating test data
"""

import os
import time
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobmonitor.config import get_config, get_settings
from jobmonitor.core.database import get_db
from jobmonitor.core.datetime_utils import utc_now
from jobmonitor.main import app
from jobmonitor.models import Base
from jobmonitor.models.execution import ImportedJobExecution
from jobmonitor.models.favorite import JobFavorite
from jobmonitor.models.user import Session, User

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CSV_HEADER = 'ID, Typ, Name, Script, Prio, Strat., Status, von, am, gestartet, beendet, auf, parent, "Laufzeit (s)"'


def build_csv_row(
    execution_id: int | str,
    job_name: str = "NightlyETL",
    status: str = "DONE",
    job_type: str = "PE",
    script: str = "/opt/jobs/etl.sh",
    priority: str = "5",
    strategy: str = "1",
    submitted_by: str = "batch",
    submitted_at: str = "2024-01-15 10:00:00",
    started_at: str = "2024-01-15 10:00:05",
    ended_at: str = "2024-01-15 10:05:00",
    host: str = "app01",
    parent: str = "",
    duration: str = "295",
) -> str:
    """Build one legacy CSV line."""
    return ",".join(
        str(v)
        for v in (
            execution_id,
            job_type,
            job_name,
            script,
            priority,
            strategy,
            status,
            submitted_by,
            submitted_at,
            started_at,
            ended_at,
            host,
            parent,
            duration,
        )
    )


def write_csv_file(path: Path, rows: list[str], header: str = CSV_HEADER) -> Path:
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def csv_row():
    """Builder for legacy CSV lines."""
    return build_csv_row


@pytest.fixture
def write_csv():
    """Writer for CSV files with the legacy header."""
    return write_csv_file


@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_sessionmaker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(db_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with db_sessionmaker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def west_of_utc():
    """Run with a local clock behind UTC, as on an operator machine in New York."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if previous is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = previous
    time.tzset()


@pytest.fixture
def import_dirs(tmp_path: Path, monkeypatch) -> tuple[Path, Path]:
    """Point the configured drop and archive directories at tmp_path."""
    import_dir = tmp_path / "import"
    processed_dir = import_dir / "processed"
    monkeypatch.setenv("IMPORT_DIRECTORY", str(import_dir))
    monkeypatch.setenv("PROCESSED_DIRECTORY", str(processed_dir))
    get_settings.cache_clear()
    get_config.cache_clear()

    yield import_dir, processed_dir

    get_settings.cache_clear()
    get_config.cache_clear()


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification channel stand-in that accepts every message."""
    mock = AsyncMock()
    mock.enabled = True
    mock.notify.return_value = True
    mock.send_test.return_value = True
    return mock


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, notifier: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database override."""
    from jobmonitor.core.rate_limit import limiter
    from jobmonitor.dependencies import get_notifier

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    # Reset rate limiter storage before each test
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    """Factory for creating test users."""

    async def _create_user(
        username: str = None,
        email: str = None,
        is_admin: bool = False,
    ) -> User:
        if username is None:
            username = f"user-{uuid.uuid4().hex[:8]}"
        if email is None:
            email = f"{username}@example.com"

        user = User(username=username, email=email, is_admin=is_admin)
        db_session.add(user)
        await db_session.flush()
        return user

    return _create_user


@pytest_asyncio.fixture
async def session_factory(db_session: AsyncSession, user_factory):
    """Factory for creating test sessions."""

    async def _create_session(user: User = None) -> Session:
        if user is None:
            user = await user_factory()

        session = Session(
            user_id=user.id,
            expires_at=utc_now() + timedelta(days=30),
        )
        db_session.add(session)
        await db_session.flush()
        return session

    return _create_session


@pytest_asyncio.fixture
async def login(client: AsyncClient, session_factory, user_factory):
    """Log the test client in as a new user and return that user."""

    async def _login(is_admin: bool = False) -> User:
        user = await user_factory(is_admin=is_admin)
        session = await session_factory(user)
        client.cookies.set("session_id", str(session.id))
        return user

    return _login


@pytest_asyncio.fixture
async def execution_factory(db_session: AsyncSession):
    """Factory for creating imported executions."""

    async def _create_execution(
        execution_id: int,
        job_name: str = "NightlyETL",
        status: str = "DONE",
        submitted_at: datetime = None,
        started_at: datetime = None,
        ended_at: datetime = None,
        parent_execution_id: int = None,
        duration_seconds: int = 60,
        job_type: str = "PE",
        host: str = "app01",
        submitted_by: str = "batch",
    ) -> ImportedJobExecution:
        if submitted_at is None:
            submitted_at = datetime(2024, 1, 15, 10, 0, 0) + timedelta(minutes=execution_id % 1000)

        execution = ImportedJobExecution(
            execution_id=execution_id,
            job_type=job_type,
            job_name=job_name,
            script_path="/opt/jobs/run.sh",
            priority=5,
            strategy=1,
            status=status,
            submitted_by=submitted_by,
            submitted_at=submitted_at,
            started_at=started_at,
            ended_at=ended_at,
            host=host,
            parent_execution_id=parent_execution_id,
            duration_seconds=duration_seconds,
            import_timestamp=utc_now(),
            csv_source_file="fixture.csv",
        )
        db_session.add(execution)
        await db_session.flush()
        return execution

    return _create_execution


@pytest_asyncio.fixture
async def favorite_factory(db_session: AsyncSession, user_factory):
    """Factory for creating job favorites."""

    async def _create_favorite(
        job_name: str = "NightlyETL",
        user: User = None,
        notify_on_failure: bool = True,
        notify_on_success: bool = False,
        notify_on_start: bool = False,
        last_notified_execution_id: int = None,
    ) -> JobFavorite:
        if user is None:
            user = await user_factory()

        favorite = JobFavorite(
            job_name=job_name,
            user_id=user.id,
            notify_on_failure=notify_on_failure,
            notify_on_success=notify_on_success,
            notify_on_start=notify_on_start,
            last_notified_execution_id=last_notified_execution_id,
        )
        db_session.add(favorite)
        await db_session.flush()
        return favorite

    return _create_favorite
