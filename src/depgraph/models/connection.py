"""Connection and Edge models.

A Connection is one distinct (protocol, source port, target port) pattern
between two hosts. Edges are directed triples linking the source node,
the connection and the target node.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from depgraph.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from depgraph.models.node import Node


class Connection(Base, TimestampMixin):
    """Connection between two hosts (deterministically identified)."""

    __tablename__ = "connections"

    # Supplied by the identity resolver, never generated here
    id: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
    )

    protocol: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )

    source_port: Mapped[int] = mapped_column(
        nullable=False,
    )

    target_port: Mapped[int] = mapped_column(
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    edges: Mapped[list["Edge"]] = relationship(
        "Edge",
        back_populates="connection",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("source_port >= 0 AND source_port <= 65535"),
        CheckConstraint("target_port >= 0 AND target_port <= 65535"),
    )

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.protocol} {self.source_port}->{self.target_port}>"


class Edge(Base):
    """Directed relationship source node -> connection -> target node."""

    __tablename__ = "edges"

    source_node_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("nodes.id", ondelete="CASCADE"),
        primary_key=True,
    )

    connection_id: Mapped[str] = mapped_column(
        String(512),
        ForeignKey("connections.id", ondelete="CASCADE"),
        primary_key=True,
    )

    target_node_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("nodes.id", ondelete="CASCADE"),
        primary_key=True,
    )

    connection: Mapped[Connection] = relationship(
        Connection,
        back_populates="edges",
    )

    source_node: Mapped["Node"] = relationship(
        "Node",
        foreign_keys=[source_node_id],
    )

    target_node: Mapped["Node"] = relationship(
        "Node",
        foreign_keys=[target_node_id],
    )

    __table_args__ = (
        Index("ix_edges_connection_id", "connection_id"),
        Index("ix_edges_source_target", "source_node_id", "target_node_id"),
        Index("ix_edges_target_node_id", "target_node_id"),
    )

    def __repr__(self) -> str:
        return f"<Edge {self.source_node_id} -[{self.connection_id}]-> {self.target_node_id}>"
