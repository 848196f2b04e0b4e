"""Graph store backends.

Two interchangeable backends implement the contracts in
depgraph.stores.base: in-process dictionaries and async SQLAlchemy.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from depgraph.common.config import GraphSettings
from depgraph.common.exceptions import ConfigurationError
from depgraph.stores.base import (
    ConnectionStore,
    GraphStores,
    LinkResult,
    NodeStore,
    RelationshipStore,
)
from depgraph.stores.memory import MemoryGraphStores
from depgraph.stores.sql import SqlGraphStores


def build_stores(
    settings: GraphSettings,
    session: AsyncSession | None = None,
    memory: MemoryGraphStores | None = None,
) -> GraphStores:
    """Pick the backend named in settings.

    Args:
        settings: Graph settings.
        session: Session for the sql backend.
        memory: Shared in-process stores for the memory backend; a fresh
            set is created when omitted.

    Raises:
        ConfigurationError: If the sql backend is selected without a session.
    """
    if settings.backend == "memory":
        return memory or MemoryGraphStores.create(cascade_unlink=settings.cascade_unlink)

    if session is None:
        raise ConfigurationError(
            message="SQL graph backend requires a database session",
            details={"backend": settings.backend},
        )
    return SqlGraphStores(
        session,
        cascade_unlink=settings.cascade_unlink,
        record_observations=settings.record_observations,
    )


__all__ = [
    "build_stores",
    "GraphStores",
    "NodeStore",
    "ConnectionStore",
    "RelationshipStore",
    "LinkResult",
    "MemoryGraphStores",
    "SqlGraphStores",
]
