"""Pytest configuration and fixtures."""

import os
import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set DATABASE_URL for tests BEFORE importing blogroll_sync.db
# This prevents the module from trying to create /data directory
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

# The override signal must not leak in from the developer's shell
os.environ.pop("BLOGROLL_SYNC_PASS", None)
os.environ.pop("BLOGROLL_SYNC_BLOCK_PRIVATE_URLS", None)
os.environ.pop("BLOGROLL_SYNC_ALLOWED_PORTS", None)

from blogroll_sync.db import Base
from blogroll_sync.models import *  # noqa: F401,F403 - register all models
from blogroll_sync.models import LinkCategory
from blogroll_sync.schemas import CategoryRef, SettingsRecord
from blogroll_sync.services.category_service import CategorySnapshot


@pytest.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def no_encryption(monkeypatch):
    """Run without an encryption key configured."""
    monkeypatch.delenv("BLOGROLL_SYNC_ENCRYPTION_KEY", raising=False)


@pytest.fixture
def encryption_key(monkeypatch):
    """Configure a fresh encryption key and return it."""
    from cryptography.fernet import Fernet

    key = Fernet.generate_key().decode()
    monkeypatch.setenv("BLOGROLL_SYNC_ENCRYPTION_KEY", key)
    return key


@pytest.fixture
def password_override(monkeypatch):
    """Activate the deployment-level password override."""
    monkeypatch.setenv("BLOGROLL_SYNC_PASS", "defined-elsewhere")


@pytest.fixture
def make_categories(db):
    """Factory fixture inserting link categories with fixed identifiers.

    Usage:
        await make_categories({5: "Friends", 7: "Podcasts"})
    """
    async def _make_categories(categories: dict[int, str], taxonomy: str = "link_category"):
        for identifier, name in categories.items():
            db.add(LinkCategory(id=identifier, name=name, taxonomy=taxonomy))
        await db.commit()

    return _make_categories


@pytest.fixture
def category_lookup():
    """Snapshot lookup with categories 5 (Friends) and 7 (Podcasts)."""
    return CategorySnapshot([CategoryRef(id=5, name="Friends"), CategoryRef(id=7, name="Podcasts")])


@pytest.fixture
def stored_record():
    """A fully populated record as it would be stored after a good save."""
    return SettingsRecord(
        url="https://example.com/opml",
        username="reader",
        password="s3cret",
        denylist="spam.example\r\nads.example",
        categories_enabled=True,
        default_category=5,
    )


@pytest.fixture
async def app():
    """Create FastAPI app for testing."""
    from blogroll_sync.main import app as application
    return application


@pytest.fixture
async def client(app, db):
    """Async test client bound to the test database."""
    from httpx import AsyncClient, ASGITransport
    from blogroll_sync.db import get_db

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()
