"""Initial schema - nodes, connections, edges, dependency observations

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Nodes table
    op.create_table(
        "nodes",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("os", sa.String(20), nullable=False, server_default="Unknown"),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("os IN ('Linux', 'Windows', 'Mac', 'Unknown')", name="ck_nodes_os"),
        sa.CheckConstraint("role IN ('Local', 'Remote')", name="ck_nodes_role"),
    )

    # Connections table
    op.create_table(
        "connections",
        sa.Column("id", sa.String(512), nullable=False),
        sa.Column("protocol", sa.String(50), nullable=False),
        sa.Column("source_port", sa.Integer(), nullable=False),
        sa.Column("target_port", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("source_port >= 0 AND source_port <= 65535"),
        sa.CheckConstraint("target_port >= 0 AND target_port <= 65535"),
    )
    op.create_index("ix_connections_protocol", "connections", ["protocol"])

    # Edges table
    op.create_table(
        "edges",
        sa.Column("source_node_id", sa.String(255), nullable=False),
        sa.Column("connection_id", sa.String(512), nullable=False),
        sa.Column("target_node_id", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("source_node_id", "connection_id", "target_node_id"),
        sa.ForeignKeyConstraint(["source_node_id"], ["nodes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["connection_id"], ["connections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_node_id"], ["nodes.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_edges_connection_id", "edges", ["connection_id"])
    op.create_index("ix_edges_source_target", "edges", ["source_node_id", "target_node_id"])
    op.create_index("ix_edges_target_node_id", "edges", ["target_node_id"])

    # Dependency observations (audit log)
    op.create_table(
        "dependency_observations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("connection_id", sa.String(512), nullable=False),
        sa.Column("local_ip", sa.String(255), nullable=False),
        sa.Column("local_os", sa.String(20), nullable=False),
        sa.Column("remote_ip", sa.String(255), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("local_port", sa.Integer(), nullable=False),
        sa.Column("remote_port", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_observations_connection_observed",
        "dependency_observations",
        ["connection_id", "observed_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_observations_connection_observed", table_name="dependency_observations")
    op.drop_table("dependency_observations")

    op.drop_index("ix_edges_target_node_id", table_name="edges")
    op.drop_index("ix_edges_source_target", table_name="edges")
    op.drop_index("ix_edges_connection_id", table_name="edges")
    op.drop_table("edges")

    op.drop_index("ix_connections_protocol", table_name="connections")
    op.drop_table("connections")

    op.drop_table("nodes")
