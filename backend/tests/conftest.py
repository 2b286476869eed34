"""
School Directory Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (service unit tests)
    ├── mock_blob_store: Blob Store with AsyncMock save/delete
    ├── temp_storage: Temporary directory for file operations
    ├── sample_png_bytes / sample_jpeg_bytes: Tiny image payloads
    ├── school_form: Valid create form fields
    ├── db_engine: SQLite (aiosqlite) engine with the schema created
    └── test_client: HTTPX AsyncClient bound to the app and db_engine
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before anything imports school_directory: settings, the engine and
# the file_service singleton are all built at import time
_TEST_ROOT = tempfile.mkdtemp(prefix="school_directory_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/health.db"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["PUBLIC_DIR"] = os.path.join(_TEST_ROOT, "public")
os.environ["LOG_LEVEL"] = "WARNING"

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from school_directory.database import Base, get_db_session  # noqa: E402
from school_directory.models.school import School  # noqa: E402,F401  (registers the table)
from school_directory.services.blob_store import StoredImage  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Unit-test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = school
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_blob_store():
    """Blob Store double: save() returns a fixed StoredImage, delete() succeeds."""
    store = MagicMock()
    store.name = "mock"
    store.save = AsyncMock(
        return_value=StoredImage(key="1700000000000-new.png", url="/schoolImages/1700000000000-new.png")
    )
    store.delete = AsyncMock(return_value=None)
    return store


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an empty IHDR-sized tail; enough for upload tests."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def sample_jpeg_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def school_form():
    return {
        "name": "Oak Hill",
        "address": "1 Elm St",
        "city": "Springfield",
        "state": "IL",
        "contact": "5551234567",
        "email_id": "x@y.com",
    }


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database per test with the schools table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    get_db_session is overridden so every request gets a session on the
    per-test SQLite database.
    """
    from school_directory.main import app

    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
