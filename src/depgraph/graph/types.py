"""Backend-independent graph records returned by the stores."""

from dataclasses import dataclass, field

from depgraph.models.node import NodeRole, OperatingSystem


@dataclass(frozen=True)
class GraphNode:
    """A host."""

    id: str
    os: OperatingSystem
    role: NodeRole


@dataclass(frozen=True)
class GraphConnection:
    """A distinct protocol/port pattern between two hosts."""

    id: str
    protocol: str
    source_port: int
    target_port: int
    description: str = ""


@dataclass(frozen=True)
class GraphEdge:
    """Directed link source node -> connection -> target node."""

    source_node_id: str
    connection_id: str
    target_node_id: str


@dataclass(frozen=True)
class NodeUpsert:
    """Result of a node upsert.

    created is set when the node did not exist; written when any row
    was inserted or changed.
    """

    node: GraphNode
    created: bool
    written: bool


@dataclass
class IngestSummary:
    """Counters for one ingestion call."""

    applied: int = 0
    nodes_created: int = 0
    nodes_updated: int = 0
    connections_upserted: int = 0
    edges_created: int = 0


@dataclass
class DeleteSummary:
    """Counters for one deletion call."""

    deleted: int = 0
    edges_removed: int = 0


@dataclass
class GraphSnapshot:
    """Three independently read sequences; no isolation between them."""

    nodes: list[GraphNode] = field(default_factory=list)
    connections: list[GraphConnection] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def resolved_edges(self) -> list[GraphEdge]:
        """Edges whose endpoints and connection are all present."""
        node_ids = {n.id for n in self.nodes}
        connection_ids = {c.id for c in self.connections}
        return [
            e for e in self.edges
            if e.source_node_id in node_ids
            and e.target_node_id in node_ids
            and e.connection_id in connection_ids
        ]
