"""In-memory graph stores.

Suitable for single-instance deployments and tests. Each store guards its
state with an asyncio lock; cross-store reads during link happen under
the relationship lock. The bundle keeps a copy of all three stores at each
checkpoint and rollback restores it.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from depgraph.common.exceptions import (
    ConnectionNotFoundError,
    EdgeNotFoundError,
    NodeConflictError,
    NodeNotFoundError,
)
from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode, NodeUpsert
from depgraph.models.node import NodeRole, OperatingSystem, merge_os
from depgraph.stores.base import (
    ConnectionStore,
    GraphStores,
    LinkResult,
    NodeStore,
    RelationshipStore,
)


class MemoryNodeStore(NodeStore):
    """Nodes kept in a dict keyed by id."""

    def __init__(self) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._lock = asyncio.Lock()
        self.writes = 0

    async def upsert(self, node_id: str, os: OperatingSystem, role: NodeRole) -> NodeUpsert:
        async with self._lock:
            current = self._nodes.get(node_id)

            if current is None:
                node = GraphNode(id=node_id, os=os, role=role)
                self._nodes[node_id] = node
                self.writes += 1
                return NodeUpsert(node=node, created=True, written=True)

            merged = GraphNode(id=node_id, os=merge_os(current.os, os), role=role)
            if merged == current:
                return NodeUpsert(node=current, created=False, written=False)

            self._nodes[node_id] = merged
            self.writes += 1
            return NodeUpsert(node=merged, created=False, written=True)

    async def create(self, node_id: str, os: OperatingSystem, role: NodeRole) -> GraphNode:
        async with self._lock:
            if node_id in self._nodes:
                raise NodeConflictError(details={"node_id": node_id})
            node = GraphNode(id=node_id, os=os, role=role)
            self._nodes[node_id] = node
            self.writes += 1
            return node

    async def get(self, node_id: str) -> GraphNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(details={"node_id": node_id})
        return node

    async def list_all(self) -> list[GraphNode]:
        return list(self._nodes.values())

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes


class MemoryConnectionStore(ConnectionStore):
    """Connections kept in a dict keyed by derived id."""

    def __init__(self) -> None:
        self._connections: dict[str, GraphConnection] = {}
        self._lock = asyncio.Lock()
        # Set by MemoryRelationshipStore so deletes drop incident edges
        self._on_delete: list[Callable[[str], Awaitable[None]]] = []

    async def upsert(
        self,
        connection_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
        description: str,
    ) -> GraphConnection:
        connection = GraphConnection(
            id=connection_id,
            protocol=protocol,
            source_port=source_port,
            target_port=target_port,
            description=description,
        )
        async with self._lock:
            self._connections[connection_id] = connection
        return connection

    async def get(self, connection_id: str) -> GraphConnection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise ConnectionNotFoundError(details={"connection_id": connection_id})
        return connection

    async def list_all(self) -> list[GraphConnection]:
        return list(self._connections.values())

    async def delete(self, connection_id: str) -> None:
        async with self._lock:
            if self._connections.pop(connection_id, None) is None:
                raise ConnectionNotFoundError(details={"connection_id": connection_id})
        for callback in self._on_delete:
            await callback(connection_id)

    def _discard(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections


class MemoryRelationshipStore(RelationshipStore):
    """Edges kept as a set of triples."""

    def __init__(
        self,
        nodes: MemoryNodeStore,
        connections: MemoryConnectionStore,
        cascade_unlink: bool = True,
    ) -> None:
        self._nodes = nodes
        self._connections = connections
        self._cascade_unlink = cascade_unlink
        self._edges: set[GraphEdge] = set()
        self._lock = asyncio.Lock()
        connections._on_delete.append(self._drop_connection_edges)

    async def link(self, source_node_id: str, connection_id: str, target_node_id: str) -> LinkResult:
        async with self._lock:
            for node_id in (source_node_id, target_node_id):
                if node_id not in self._nodes:
                    raise NodeNotFoundError(details={"node_id": node_id})
            if connection_id not in self._connections:
                raise ConnectionNotFoundError(details={"connection_id": connection_id})

            edge = GraphEdge(source_node_id, connection_id, target_node_id)
            if edge in self._edges:
                return LinkResult(edge=edge, created=False)
            self._edges.add(edge)
            return LinkResult(edge=edge, created=True)

    async def unlink(
        self,
        source_node_id: str,
        connection_id: str,
        target_node_id: str,
        cascade: bool | None = None,
    ) -> None:
        if cascade is None:
            cascade = self._cascade_unlink

        edge = GraphEdge(source_node_id, connection_id, target_node_id)
        async with self._lock:
            if edge not in self._edges:
                raise EdgeNotFoundError(details={
                    "source": source_node_id,
                    "connection": connection_id,
                    "target": target_node_id,
                })
            self._edges.discard(edge)

            if cascade and not any(e.connection_id == connection_id for e in self._edges):
                self._connections._discard(connection_id)

    async def delete_dependency(
        self,
        source_node_id: str,
        target_node_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
    ) -> list[GraphEdge]:
        async with self._lock:
            matched = []
            for edge in self._edges:
                if edge.source_node_id != source_node_id or edge.target_node_id != target_node_id:
                    continue
                connection = self._connections._connections.get(edge.connection_id)
                if (
                    connection is not None
                    and connection.protocol == protocol
                    and connection.source_port == source_port
                    and connection.target_port == target_port
                ):
                    matched.append(edge)

            connection_ids = {e.connection_id for e in matched}
            removed = [e for e in self._edges if e.connection_id in connection_ids]
            self._edges.difference_update(removed)
            for connection_id in connection_ids:
                self._connections._discard(connection_id)
            return removed

    async def list_all(self) -> list[GraphEdge]:
        return list(self._edges)

    async def list_for_node(self, node_id: str) -> list[GraphEdge]:
        return [
            e for e in self._edges
            if e.source_node_id == node_id or e.target_node_id == node_id
        ]

    async def _drop_connection_edges(self, connection_id: str) -> None:
        async with self._lock:
            self._edges = {e for e in self._edges if e.connection_id != connection_id}


class MemoryGraphStores(GraphStores):
    """In-process backend with checkpoint/rollback by snapshot.

    Rollback restores the state of the last checkpoint on the shared
    bundle, so uncheckpointed writes of a concurrent batch are discarded
    along with the failed record.
    """

    backend = "memory"

    def __init__(
        self,
        nodes: MemoryNodeStore,
        connections: MemoryConnectionStore,
        relationships: MemoryRelationshipStore,
    ) -> None:
        super().__init__(nodes, connections, relationships)
        self._snapshot = self._copy_state()

    def _copy_state(
        self,
    ) -> tuple[dict[str, GraphNode], dict[str, GraphConnection], set[GraphEdge]]:
        # Values are frozen dataclasses, shallow copies suffice
        return (
            dict(self.nodes._nodes),
            dict(self.connections._connections),
            set(self.relationships._edges),
        )

    @asynccontextmanager
    async def _locked(self) -> AsyncIterator[None]:
        async with self.nodes._lock, self.connections._lock, self.relationships._lock:
            yield

    async def checkpoint(self) -> None:
        """Remember the current state as the rollback target."""
        async with self._locked():
            self._snapshot = self._copy_state()

    async def rollback(self) -> None:
        """Restore nodes, connections and edges to the last checkpoint."""
        nodes, connections, edges = self._snapshot
        async with self._locked():
            self.nodes._nodes = dict(nodes)
            self.connections._connections = dict(connections)
            self.relationships._edges = set(edges)

    @classmethod
    def create(cls, cascade_unlink: bool = True) -> "MemoryGraphStores":
        nodes = MemoryNodeStore()
        connections = MemoryConnectionStore()
        relationships = MemoryRelationshipStore(nodes, connections, cascade_unlink=cascade_unlink)
        return cls(nodes, connections, relationships)
