"""Relational graph stores on async SQLAlchemy.

Nodes, connections and edges live in their own tables with explicit
foreign keys. Per-key atomicity comes from single conditional statements
(INSERT .. ON CONFLICT, UPDATE .. WHERE) rather than read-then-write in
application code. Works on PostgreSQL (asyncpg) and SQLite (aiosqlite).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, exists, func, insert, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from depgraph.common.exceptions import (
    ConnectionNotFoundError,
    EdgeNotFoundError,
    NodeConflictError,
    NodeNotFoundError,
    NotFoundError,
    StoreUnavailableError,
)
from depgraph.common.logging import get_logger
from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode, NodeUpsert
from depgraph.models.connection import Connection, Edge
from depgraph.models.node import Node, NodeRole, OperatingSystem
from depgraph.models.observation import DependencyObservation
from depgraph.stores.base import (
    ConnectionStore,
    GraphStores,
    LinkResult,
    NodeStore,
    RelationshipStore,
)

if TYPE_CHECKING:
    from depgraph.schemas.dependency import DependencyRecord

logger = get_logger(__name__)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Turn backend transport failures into StoreUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error("Graph store call failed", operation=operation, error=str(e))
        raise StoreUnavailableError(
            details={"operation": operation},
            cause=e,
        ) from e


def _upsert_insert(session: AsyncSession, model: Any) -> Any:
    """Dialect-specific INSERT supporting ON CONFLICT clauses."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)


def _to_node(row: Any) -> GraphNode:
    return GraphNode(
        id=row.id,
        os=OperatingSystem.parse(row.os),
        role=NodeRole(row.role),
    )


def _to_connection(row: Any) -> GraphConnection:
    return GraphConnection(
        id=row.id,
        protocol=row.protocol,
        source_port=row.source_port,
        target_port=row.target_port,
        description=row.description,
    )


def _to_edge(row: Any) -> GraphEdge:
    return GraphEdge(
        source_node_id=row.source_node_id,
        connection_id=row.connection_id,
        target_node_id=row.target_node_id,
    )


class SqlNodeStore(NodeStore):
    """Nodes in the ``nodes`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, node_id: str, os: OperatingSystem, role: NodeRole) -> NodeUpsert:
        with translate_errors("node.upsert"):
            inserted = await self._session.execute(
                _upsert_insert(self._session, Node)
                .values(id=node_id, os=os.value, role=role.value)
                .on_conflict_do_nothing(index_elements=["id"])
                .returning(Node.id)
            )
            if inserted.first() is not None:
                return NodeUpsert(
                    node=GraphNode(id=node_id, os=os, role=role),
                    created=True,
                    written=True,
                )

            # Merge in one conditional UPDATE, no read-modify-write
            if os.is_known:
                stmt = (
                    update(Node)
                    .execution_options(synchronize_session=False)
                    .where(Node.id == node_id)
                    .where(or_(Node.os != os.value, Node.role != role.value))
                    .values(os=os.value, role=role.value)
                )
            else:
                stmt = (
                    update(Node)
                    .execution_options(synchronize_session=False)
                    .where(Node.id == node_id, Node.role != role.value)
                    .values(role=role.value)
                )
            updated = await self._session.execute(stmt.returning(Node.id))
            written = updated.first() is not None

            node = await self._fetch(node_id)

        if node is None:
            # Deleted between statements
            raise NodeNotFoundError(details={"node_id": node_id})
        return NodeUpsert(node=node, created=False, written=written)

    async def create(self, node_id: str, os: OperatingSystem, role: NodeRole) -> GraphNode:
        with translate_errors("node.create"):
            inserted = await self._session.execute(
                _upsert_insert(self._session, Node)
                .values(id=node_id, os=os.value, role=role.value)
                .on_conflict_do_nothing(index_elements=["id"])
                .returning(Node.id)
            )
        if inserted.first() is None:
            raise NodeConflictError(details={"node_id": node_id})
        return GraphNode(id=node_id, os=os, role=role)

    async def get(self, node_id: str) -> GraphNode:
        with translate_errors("node.get"):
            node = await self._fetch(node_id)
        if node is None:
            raise NodeNotFoundError(details={"node_id": node_id})
        return node

    async def list_all(self) -> list[GraphNode]:
        with translate_errors("node.list_all"):
            result = await self._session.execute(select(Node.id, Node.os, Node.role))
            return [_to_node(row) for row in result]

    async def _fetch(self, node_id: str) -> GraphNode | None:
        result = await self._session.execute(
            select(Node.id, Node.os, Node.role).where(Node.id == node_id)
        )
        row = result.first()
        return _to_node(row) if row else None


class SqlConnectionStore(ConnectionStore):
    """Connections in the ``connections`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        connection_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
        description: str,
    ) -> GraphConnection:
        values = {
            "protocol": protocol,
            "source_port": source_port,
            "target_port": target_port,
            "description": description,
        }
        stmt = _upsert_insert(self._session, Connection).values(id=connection_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={**values, "updated_at": func.now()},
        )
        with translate_errors("connection.upsert"):
            await self._session.execute(stmt)

        return GraphConnection(id=connection_id, **values)

    async def get(self, connection_id: str) -> GraphConnection:
        with translate_errors("connection.get"):
            result = await self._session.execute(
                select(
                    Connection.id,
                    Connection.protocol,
                    Connection.source_port,
                    Connection.target_port,
                    Connection.description,
                ).where(Connection.id == connection_id)
            )
            row = result.first()
        if row is None:
            raise ConnectionNotFoundError(details={"connection_id": connection_id})
        return _to_connection(row)

    async def list_all(self) -> list[GraphConnection]:
        with translate_errors("connection.list_all"):
            result = await self._session.execute(
                select(
                    Connection.id,
                    Connection.protocol,
                    Connection.source_port,
                    Connection.target_port,
                    Connection.description,
                )
            )
            return [_to_connection(row) for row in result]

    async def delete(self, connection_id: str) -> None:
        with translate_errors("connection.delete"):
            await self._session.execute(
                delete(Edge)
                .execution_options(synchronize_session=False)
                .where(Edge.connection_id == connection_id)
            )
            result = await self._session.execute(
                delete(Connection)
                .execution_options(synchronize_session=False)
                .where(Connection.id == connection_id)
                .returning(Connection.id)
            )
            deleted = result.first()
        if deleted is None:
            raise ConnectionNotFoundError(details={"connection_id": connection_id})


class SqlRelationshipStore(RelationshipStore):
    """Edges in the ``edges`` table, one row per triple."""

    def __init__(self, session: AsyncSession, cascade_unlink: bool = True) -> None:
        self._session = session
        self._cascade_unlink = cascade_unlink

    async def link(self, source_node_id: str, connection_id: str, target_node_id: str) -> LinkResult:
        edge = GraphEdge(source_node_id, connection_id, target_node_id)

        with translate_errors("edge.link"):
            # SQLite does not enforce foreign keys without the pragma
            result = await self._session.execute(
                select(Node.id).where(Node.id.in_([source_node_id, target_node_id]))
            )
            found = set(result.scalars())
            for node_id in (source_node_id, target_node_id):
                if node_id not in found:
                    raise NodeNotFoundError(details={"node_id": node_id})

            has_connection = await self._session.scalar(
                select(exists().where(Connection.id == connection_id))
            )
            if not has_connection:
                raise ConnectionNotFoundError(details={"connection_id": connection_id})

            try:
                inserted = await self._session.execute(
                    _upsert_insert(self._session, Edge)
                    .values(
                        source_node_id=source_node_id,
                        connection_id=connection_id,
                        target_node_id=target_node_id,
                    )
                    .on_conflict_do_nothing(
                        index_elements=["source_node_id", "connection_id", "target_node_id"]
                    )
                    .returning(Edge.connection_id)
                )
            except IntegrityError as e:
                # A referenced row vanished between the check and the insert
                raise NotFoundError(
                    message="Edge references a missing node or connection",
                    details={
                        "source": source_node_id,
                        "connection": connection_id,
                        "target": target_node_id,
                    },
                    cause=e,
                ) from e

        return LinkResult(edge=edge, created=inserted.first() is not None)

    async def unlink(
        self,
        source_node_id: str,
        connection_id: str,
        target_node_id: str,
        cascade: bool | None = None,
    ) -> None:
        if cascade is None:
            cascade = self._cascade_unlink

        with translate_errors("edge.unlink"):
            result = await self._session.execute(
                delete(Edge)
                .execution_options(synchronize_session=False)
                .where(
                    Edge.source_node_id == source_node_id,
                    Edge.connection_id == connection_id,
                    Edge.target_node_id == target_node_id,
                )
                .returning(Edge.connection_id)
            )
            if result.first() is None:
                raise EdgeNotFoundError(details={
                    "source": source_node_id,
                    "connection": connection_id,
                    "target": target_node_id,
                })

            if cascade:
                await self._session.execute(
                    delete(Connection)
                    .execution_options(synchronize_session=False)
                    .where(
                        Connection.id == connection_id,
                        ~exists().where(Edge.connection_id == connection_id),
                    )
                )

    async def delete_dependency(
        self,
        source_node_id: str,
        target_node_id: str,
        protocol: str,
        source_port: int,
        target_port: int,
    ) -> list[GraphEdge]:
        with translate_errors("edge.delete_dependency"):
            result = await self._session.execute(
                select(Edge.connection_id)
                .join(Connection, Connection.id == Edge.connection_id)
                .where(
                    Edge.source_node_id == source_node_id,
                    Edge.target_node_id == target_node_id,
                    Connection.protocol == protocol,
                    Connection.source_port == source_port,
                    Connection.target_port == target_port,
                )
            )
            connection_ids = list(set(result.scalars()))
            if not connection_ids:
                return []

            removed = await self._session.execute(
                delete(Edge)
                .execution_options(synchronize_session=False)
                .where(Edge.connection_id.in_(connection_ids))
                .returning(Edge.source_node_id, Edge.connection_id, Edge.target_node_id)
            )
            edges = [_to_edge(row) for row in removed]

            await self._session.execute(
                delete(Connection)
                .execution_options(synchronize_session=False)
                .where(Connection.id.in_(connection_ids))
            )
        return edges

    async def list_all(self) -> list[GraphEdge]:
        with translate_errors("edge.list_all"):
            result = await self._session.execute(
                select(Edge.source_node_id, Edge.connection_id, Edge.target_node_id)
            )
            return [_to_edge(row) for row in result]

    async def list_for_node(self, node_id: str) -> list[GraphEdge]:
        with translate_errors("edge.list_for_node"):
            result = await self._session.execute(
                select(Edge.source_node_id, Edge.connection_id, Edge.target_node_id)
                .where(or_(Edge.source_node_id == node_id, Edge.target_node_id == node_id))
            )
            return [_to_edge(row) for row in result]


class SqlGraphStores(GraphStores):
    """Relational backend bound to one session.

    checkpoint commits, so every ingested record is durable on its own.
    """

    backend = "sql"

    def __init__(
        self,
        session: AsyncSession,
        cascade_unlink: bool = True,
        record_observations: bool = False,
    ) -> None:
        super().__init__(
            nodes=SqlNodeStore(session),
            connections=SqlConnectionStore(session),
            relationships=SqlRelationshipStore(session, cascade_unlink=cascade_unlink),
        )
        self._session = session
        self._record_observations = record_observations

    async def checkpoint(self) -> None:
        with translate_errors("commit"):
            await self._session.commit()

    async def rollback(self) -> None:
        with translate_errors("rollback"):
            await self._session.rollback()

    async def record_observation(self, record: "DependencyRecord", connection_id: str) -> None:
        if not self._record_observations:
            return
        with translate_errors("observation.record"):
            await self._session.execute(
                insert(DependencyObservation).values(
                    connection_id=connection_id,
                    local_ip=record.local_ip,
                    local_os=record.local_os.value,
                    remote_ip=record.remote_ip,
                    module=record.module,
                    local_port=record.local_port,
                    remote_port=record.remote_port,
                    description=record.description,
                )
            )
