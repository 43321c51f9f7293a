"""Shared pytest fixtures for unit and integration tests."""

import os
import uuid

# Settings are read at import time; point them at a throwaway SQLite database
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["LOG_FORMAT"] = "text"
os.environ["DEBUG"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app import models  # noqa: F401  (registers every table on Base.metadata)
from app.api import deps
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.enums import UserRole
from tests.factories import make_batch, make_user


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite file database per test, schema created from the models."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crypto_hub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def api_base() -> str:
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
async def async_client(session_factory, api_base: str):
    """HTTP client against the app, with every request using the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    client = AsyncClient(transport=transport, base_url=api_base, timeout=30.0)
    yield client
    await client.aclose()
    app.dependency_overrides.clear()


@pytest.fixture
def unique_suffix() -> str:
    """Unique suffix for test data to avoid collisions."""
    return str(uuid.uuid4())[:8]


@pytest.fixture
async def student(db):
    return await make_user(db, name="Alice Student")


@pytest.fixture
async def admin(db):
    return await make_user(db, role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
async def batch(db):
    return await make_batch(db)
