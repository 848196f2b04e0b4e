"""SQLAlchemy database models."""

from depgraph.models.base import Base
from depgraph.models.connection import Connection, Edge
from depgraph.models.node import Node, NodeRole, OperatingSystem, merge_os
from depgraph.models.observation import DependencyObservation

__all__ = [
    "Base",
    "Connection",
    "DependencyObservation",
    "Edge",
    "Node",
    "NodeRole",
    "OperatingSystem",
    "merge_os",
]
