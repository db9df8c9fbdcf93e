"""
Pytest configuration and fixtures for editorial console tests
"""

import asyncio
import os
import sys
from collections.abc import AsyncGenerator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Import Base first, before importing the app
from editorial.database import Base, get_db
from editorial.dependencies import get_upload_service
from editorial.models.document import Document  # noqa: F401
from editorial.services.repository import SQLAlchemyRepository
from editorial.services.upload_service import LocalBlobStore, UploadService
from utils.mocks import InMemoryBlobStore, InMemoryRepository

from main import app  # noqa: E402


def make_engine(path):
    """File-backed sqlite engine; NullPool so every session opens a connection on the running loop."""
    return create_async_engine(f"sqlite+aiosqlite:///{path}", echo=False, poolclass=NullPool)


async def create_tables(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    engine = make_engine(tmp_path / "test.db")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session on a fresh schema."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(test_db: AsyncSession) -> SQLAlchemyRepository:
    return SQLAlchemyRepository(test_db)


@pytest.fixture
def memory_repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def uploads(blob_store: InMemoryBlobStore) -> UploadService:
    return UploadService(blob_store)


@pytest.fixture
def client_session_factory(tmp_path):
    """Session factory for route tests; tables are created before the client starts."""
    engine = make_engine(tmp_path / "routes.db")
    asyncio.run(create_tables(engine))
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def client(client_session_factory, tmp_path):
    """Create a test client for the FastAPI application with test database and media directory"""

    async def override_get_db():
        async with client_session_factory() as session:
            yield session

    test_uploads = UploadService(LocalBlobStore(root=tmp_path / "uploads", base_url="/media/"))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upload_service] = lambda: test_uploads
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_in_db(client_session_factory):
    """Run ``func(repository)`` against the route tests' database, e.g. to seed records."""

    def _run(func):
        async def _inner():
            async with client_session_factory() as session:
                return await func(SQLAlchemyRepository(session))

        return asyncio.run(_inner())

    return _run
