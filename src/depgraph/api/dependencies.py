"""FastAPI dependency injection for API endpoints."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from depgraph.common.config import GraphSettings, get_settings
from depgraph.common.database import get_db
from depgraph.graph.adjacency import AdjacencyIndex
from depgraph.graph.engine import GraphIngestionEngine
from depgraph.graph.reader import GraphReader
from depgraph.stores import build_stores
from depgraph.stores.base import GraphStores


def get_graph_settings() -> GraphSettings:
    """Graph settings for the current process."""
    return get_settings().graph


GraphConfig = Annotated[GraphSettings, Depends(get_graph_settings)]


async def get_stores(
    request: Request,
    settings: GraphConfig,
) -> AsyncGenerator[GraphStores, None]:
    """Get the graph stores for a request.

    The sql backend gets a fresh session per request; the memory backend
    shares one set of stores held on the application.

    Yields:
        Graph stores.
    """
    if settings.backend == "memory":
        yield build_stores(settings, memory=request.app.state.memory_stores)
        return

    async for session in get_db():
        yield build_stores(settings, session=session)


Stores = Annotated[GraphStores, Depends(get_stores)]


def get_adjacency(request: Request, settings: GraphConfig) -> AdjacencyIndex | None:
    """Process-wide adjacency index, or None when disabled.

    The index lives in one worker process. With the sql backend and more
    than one API worker it would miss writes made by the other workers,
    so it is bypassed and neighbor reads go to the relationship store.
    """
    if not settings.adjacency_enabled:
        return None
    if settings.backend == "sql" and get_settings().api.workers > 1:
        return None
    return request.app.state.adjacency


Adjacency = Annotated[AdjacencyIndex | None, Depends(get_adjacency)]


def get_ingestion_engine(
    stores: Stores,
    settings: GraphConfig,
    adjacency: Adjacency,
) -> GraphIngestionEngine:
    return GraphIngestionEngine.from_settings(stores, settings, adjacency=adjacency)


IngestionEngine = Annotated[GraphIngestionEngine, Depends(get_ingestion_engine)]


def get_reader(stores: Stores) -> GraphReader:
    return GraphReader(stores)


Reader = Annotated[GraphReader, Depends(get_reader)]
