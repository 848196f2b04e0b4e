"""Pydantic schemas for the graph read endpoints."""

from pydantic import BaseModel, Field

from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode, GraphSnapshot


class NodeOut(BaseModel):
    id: str
    os: str
    type: str

    @classmethod
    def from_node(cls, node: GraphNode) -> "NodeOut":
        return cls(id=node.id, os=node.os.value, type=node.role.value)


class ConnectionOut(BaseModel):
    id: str
    protocol: str
    source_port: int = Field(..., serialization_alias="sourcePort")
    target_port: int = Field(..., serialization_alias="targetPort")
    description: str

    @classmethod
    def from_connection(cls, connection: GraphConnection) -> "ConnectionOut":
        return cls(
            id=connection.id,
            protocol=connection.protocol,
            source_port=connection.source_port,
            target_port=connection.target_port,
            description=connection.description,
        )


class EdgeOut(BaseModel):
    source: str
    connection: str
    target: str

    @classmethod
    def from_edge(cls, edge: GraphEdge) -> "EdgeOut":
        return cls(
            source=edge.source_node_id,
            connection=edge.connection_id,
            target=edge.target_node_id,
        )


class GraphResponse(BaseModel):
    """Full graph as three independent lists.

    Edges are passed through as stored; renderers skip edges whose
    endpoints are missing.
    """

    nodes: list[NodeOut]
    connections: list[ConnectionOut]
    edges: list[EdgeOut]

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "GraphResponse":
        return cls(
            nodes=[NodeOut.from_node(n) for n in snapshot.nodes],
            connections=[ConnectionOut.from_connection(c) for c in snapshot.connections],
            edges=[EdgeOut.from_edge(e) for e in snapshot.edges],
        )


class NeighborsResponse(BaseModel):
    node_id: str = Field(..., serialization_alias="nodeId")
    neighbors: list[str]
