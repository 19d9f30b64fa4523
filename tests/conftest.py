"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.config import Settings
from backend.app.db.engine import create_session_factory, create_tables
from backend.app.db.inmemory import InMemoryDocumentStore
from backend.app.db.sql_repositories import SqlDocumentStore
from backend.app.main import app
from backend.app.runtime import ProcessContext, build_process_context, get_process_context
from tests.helpers import FakeGenerator, RecordingMetrics, RecordingSleep, provider_resolver


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        database_url=None,
        openai_api_key=None,
        retry_max_retries=3,
        retry_base_delay_ms=2000,
        max_sources=8,
        chunk_target_chars=500,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine on a throwaway SQLite file with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        poolclass=NullPool,
        echo=False,
    )
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine: AsyncEngine) -> SqlDocumentStore:
    """SQL document store backed by the SQLite test engine."""
    return SqlDocumentStore(create_session_factory(sqlite_engine))


@pytest.fixture
def fake_generator() -> FakeGenerator:
    """Generator behind the API's answer provider; tests may rescript it."""
    return FakeGenerator("Photosynthesis uses light [1].")


@pytest.fixture
def process_context(
    settings: Settings,
    fake_generator: FakeGenerator,
    recording_sleep: RecordingSleep,
) -> ProcessContext:
    """Fresh in-memory process context with a scripted answer provider."""
    return build_process_context(
        settings,
        resolver=provider_resolver(fake_generator),
        sleep_fn=recording_sleep,
        metrics=RecordingMetrics(),
    )


@pytest.fixture
def client(process_context: ProcessContext) -> Generator[TestClient, None, None]:
    """Test client wired to ``process_context``."""
    app.dependency_overrides[get_process_context] = lambda: process_context
    yield TestClient(app)
    app.dependency_overrides.clear()
