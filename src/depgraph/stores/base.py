"""Store contracts shared by all graph backends.

Every mutation goes through these methods. Implementations guarantee that
the read-decide-write of a single key is atomic, so concurrent upserts of
the same id never lose an update.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode, NodeUpsert
from depgraph.models.node import NodeRole, OperatingSystem

if TYPE_CHECKING:
    from depgraph.schemas.dependency import DependencyRecord


@dataclass(frozen=True)
class LinkResult:
    """Result of a link call; created is False when the edge already existed."""

    edge: GraphEdge
    created: bool


class NodeStore(ABC):
    """Durable store of nodes keyed by host address."""

    @abstractmethod
    async def upsert(self, node_id: str, os: OperatingSystem, role: NodeRole) -> NodeUpsert:
        """Create the node, or merge OS and update role on an existing one.

        Writes only when something changed.
        """
        ...

    @abstractmethod
    async def create(self, node_id: str, os: OperatingSystem, role: NodeRole) -> GraphNode:
        """Insert-only creation.

        Raises:
            NodeConflictError: If the id already exists.
        """
        ...

    @abstractmethod
    async def get(self, node_id: str) -> GraphNode:
        """Get a node.

        Raises:
            NodeNotFoundError: If absent.
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[GraphNode]:
        """All nodes, unordered."""
        ...


class ConnectionStore(ABC):
    """Durable store of connections keyed by their derived id."""

    @abstractmethod
    async def upsert(
        self,
        connection_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
        description: str,
    ) -> GraphConnection:
        """Create the connection or overwrite all its fields (last write wins)."""
        ...

    @abstractmethod
    async def get(self, connection_id: str) -> GraphConnection:
        """Get a connection.

        Raises:
            ConnectionNotFoundError: If absent.
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[GraphConnection]:
        ...

    @abstractmethod
    async def delete(self, connection_id: str) -> None:
        """Delete a connection and every edge through it.

        Raises:
            ConnectionNotFoundError: If absent.
        """
        ...


class RelationshipStore(ABC):
    """Durable store of directed (source, connection, target) triples."""

    @abstractmethod
    async def link(self, source_node_id: str, connection_id: str, target_node_id: str) -> LinkResult:
        """Create the edge if absent.

        Raises:
            NodeNotFoundError: If either endpoint is missing.
            ConnectionNotFoundError: If the connection is missing.
        """
        ...

    @abstractmethod
    async def unlink(
        self,
        source_node_id: str,
        connection_id: str,
        target_node_id: str,
        cascade: bool | None = None,
    ) -> None:
        """Remove an edge; with cascade, drop the connection once unreferenced.

        Raises:
            EdgeNotFoundError: If the edge does not exist.
        """
        ...

    @abstractmethod
    async def delete_dependency(
        self,
        source_node_id: str,
        target_node_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
    ) -> list[GraphEdge]:
        """Remove every connection between two nodes matching protocol and ports.

        The connections go together with their edges in one operation;
        nodes stay. Returns the removed edges (empty when nothing matched).
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[GraphEdge]:
        ...

    @abstractmethod
    async def list_for_node(self, node_id: str) -> list[GraphEdge]:
        """Edges where the node is source or target."""
        ...


class GraphStores:
    """The three stores of one backend plus its unit-of-work hooks."""

    backend: str = "abstract"

    def __init__(
        self,
        nodes: NodeStore,
        connections: ConnectionStore,
        relationships: RelationshipStore,
    ) -> None:
        self.nodes = nodes
        self.connections = connections
        self.relationships = relationships

    async def checkpoint(self) -> None:
        """Make everything written so far durable."""

    async def rollback(self) -> None:
        """Discard writes since the last checkpoint, where the backend can."""

    async def record_observation(self, record: "DependencyRecord", connection_id: str) -> None:
        """Append a record to the observation audit log, where supported."""
