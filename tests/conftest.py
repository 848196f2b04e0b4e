"""Pytest configuration and fixtures for depgraph tests."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from depgraph.api.dependencies import get_adjacency, get_graph_settings, get_stores
from depgraph.api.main import app
from depgraph.common.config import GraphSettings, Settings
from depgraph.common.database import create_engine, create_schema, create_session_factory
from depgraph.graph.adjacency import AdjacencyIndex
from depgraph.stores.base import GraphStores
from depgraph.stores.memory import MemoryGraphStores
from depgraph.stores.sql import SqlGraphStores


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Get test settings backed by in-memory SQLite."""
    return Settings(
        environment="development",
        debug=True,
        database={"url": "sqlite+aiosqlite:///:memory:"},
        graph={"backend": "sql", "record_observations": True},
    )


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with the graph schema."""
    engine = create_engine(test_settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    factory = create_session_factory(test_engine)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def memory_stores() -> MemoryGraphStores:
    return MemoryGraphStores.create()


@pytest_asyncio.fixture
async def sql_stores(test_db: AsyncSession) -> SqlGraphStores:
    return SqlGraphStores(test_db, record_observations=True)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def stores(request, test_settings: Settings) -> AsyncGenerator[GraphStores, None]:
    """Graph stores for each backend in turn."""
    if request.param == "memory":
        yield MemoryGraphStores.create()
        return

    engine = create_engine(test_settings)
    await create_schema(engine)
    factory = create_session_factory(engine)
    async with factory() as session:
        yield SqlGraphStores(session, record_observations=True)
    await engine.dispose()


@pytest.fixture
def adjacency() -> AdjacencyIndex:
    return AdjacencyIndex()


@pytest_asyncio.fixture
async def async_client(
    sql_stores: SqlGraphStores,
    adjacency: AdjacencyIndex,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing API endpoints."""

    async def override_get_stores():
        yield sql_stores

    app.dependency_overrides[get_stores] = override_get_stores
    app.dependency_overrides[get_adjacency] = lambda: adjacency
    app.dependency_overrides[get_graph_settings] = lambda: GraphSettings(backend="sql")

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_dependency() -> dict[str, Any]:
    """Sample dependency record as sent by a collector."""
    return {
        "localIp": "10.0.0.1",
        "localOS": "Linux",
        "remoteIp": "10.0.0.2",
        "module": "tcp",
        "localPort": 5000,
        "remotePort": 443,
        "description": "api call",
    }


@pytest.fixture
def sample_key(sample_dependency: dict[str, Any]) -> dict[str, Any]:
    """Deletion key matching the sample dependency."""
    return {
        k: sample_dependency[k]
        for k in ("localIp", "remoteIp", "module", "localPort", "remotePort")
    }
