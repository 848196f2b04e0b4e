"""In-process adjacency index.

Maps a node id to the set of distinct remote ids it talks to. Derived
from the relationship store and rebuildable at any time; never the
source of truth.
"""

import asyncio
from typing import TYPE_CHECKING

from depgraph.common.logging import get_logger

if TYPE_CHECKING:
    from depgraph.stores.base import RelationshipStore

logger = get_logger(__name__)

SENTINEL_ADDRESS = "0.0.0.0"


class AdjacencyIndex:
    """Neighbor sets behind a single asyncio lock.

    The raw mapping is never handed out; readers get copies.
    """

    def __init__(self) -> None:
        self._neighbors: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    async def add(self, local_id: str, remote_id: str) -> bool:
        """Record local -> remote. Returns True if the pair was new."""
        if remote_id == SENTINEL_ADDRESS:
            return False
        async with self._lock:
            neighbors = self._neighbors.setdefault(local_id, set())
            if remote_id in neighbors:
                return False
            neighbors.add(remote_id)
            return True

    async def discard(self, local_id: str, remote_id: str) -> None:
        async with self._lock:
            neighbors = self._neighbors.get(local_id)
            if neighbors is None:
                return
            neighbors.discard(remote_id)
            if not neighbors:
                del self._neighbors[local_id]

    async def neighbors(self, node_id: str) -> set[str]:
        async with self._lock:
            return set(self._neighbors.get(node_id, ()))

    async def is_connected(self, local_id: str, remote_id: str) -> bool:
        async with self._lock:
            return remote_id in self._neighbors.get(local_id, ())

    async def rebuild(self, relationships: "RelationshipStore") -> int:
        """Replace the index with the pairs found in the relationship store.

        Returns:
            Number of distinct (local, remote) pairs indexed.
        """
        edges = await relationships.list_all()

        fresh: dict[str, set[str]] = {}
        for edge in edges:
            if edge.target_node_id == SENTINEL_ADDRESS:
                continue
            fresh.setdefault(edge.source_node_id, set()).add(edge.target_node_id)

        async with self._lock:
            self._neighbors = fresh

        pairs = sum(len(v) for v in fresh.values())
        logger.info("Adjacency index rebuilt", nodes=len(fresh), pairs=pairs)
        return pairs

    async def size(self) -> int:
        async with self._lock:
            return sum(len(v) for v in self._neighbors.values())
