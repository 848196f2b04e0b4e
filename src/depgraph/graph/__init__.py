"""Dependency graph core - identity, ingestion, reading and adjacency.

Storage-agnostic: everything here talks to the store contracts in
depgraph.stores.base, never to a database directly.
"""

from depgraph.graph.adjacency import SENTINEL_ADDRESS, AdjacencyIndex
from depgraph.graph.dedup import DedupGuard
from depgraph.graph.engine import GraphIngestionEngine
from depgraph.graph.identity import IdentityResolver, connection_id, node_signature
from depgraph.graph.reader import GraphReader
from depgraph.graph.types import (
    DeleteSummary,
    GraphConnection,
    GraphEdge,
    GraphNode,
    GraphSnapshot,
    IngestSummary,
    NodeUpsert,
)

__all__ = [
    # Engine
    "GraphIngestionEngine",
    "GraphReader",
    "AdjacencyIndex",
    "SENTINEL_ADDRESS",
    "DedupGuard",
    # Identity
    "IdentityResolver",
    "connection_id",
    "node_signature",
    # Types
    "GraphNode",
    "GraphConnection",
    "GraphEdge",
    "GraphSnapshot",
    "IngestSummary",
    "DeleteSummary",
    "NodeUpsert",
]
