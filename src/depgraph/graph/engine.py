"""Dependency graph ingestion engine.

Turns dependency records into nodes, connections and edges. Each record
is its own unit of work: the five steps either all land or the record is
rolled back, and records earlier in the batch stay applied.
"""

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Literal

from pydantic import ValidationError as PydanticValidationError

from depgraph.common.config import GraphSettings
from depgraph.common.exceptions import (
    BatchIngestError,
    DependencyNotFoundError,
    DepGraphError,
    ValidationError,
)
from depgraph.common.logging import get_logger
from depgraph.common.metrics import (
    CONNECTIONS_UPSERTED,
    EDGES_CREATED,
    EDGES_DELETED,
    INGEST_FAILURES,
    INGEST_LATENCY,
    NODES_CREATED,
    NODES_UPDATED,
    RECORDS_INGESTED,
)
from depgraph.graph.adjacency import AdjacencyIndex
from depgraph.graph.dedup import DedupGuard
from depgraph.graph.identity import IdentityResolver, node_signature
from depgraph.graph.types import DeleteSummary, GraphEdge, GraphNode, IngestSummary
from depgraph.models.node import NodeRole, OperatingSystem
from depgraph.schemas.dependency import DependencyKey, DependencyRecord

if TYPE_CHECKING:
    from depgraph.stores.base import GraphStores

logger = get_logger(__name__)

NodeDiscipline = Literal["upsert", "insert_only"]


class GraphIngestionEngine:
    """Applies dependency records to a set of graph stores.

    Two node disciplines are supported and one is chosen per engine:
    "upsert" merges repeated observations of a host, "insert_only"
    rejects any node that already exists.
    """

    def __init__(
        self,
        stores: "GraphStores",
        identity: IdentityResolver | None = None,
        discipline: NodeDiscipline = "upsert",
        adjacency: AdjacencyIndex | None = None,
        max_batch_size: int | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            stores: Node, connection and relationship stores of one backend.
            identity: Connection id scheme; composite keys by default.
            discipline: Node write discipline.
            adjacency: Index to keep in step with links and deletions.
            max_batch_size: Reject larger batches before touching the stores.
        """
        self._stores = stores
        self._identity = identity or IdentityResolver()
        self._discipline = discipline
        self._adjacency = adjacency
        self._max_batch_size = max_batch_size
        self._dedup = DedupGuard(stores.nodes)

    @classmethod
    def from_settings(
        cls,
        stores: "GraphStores",
        settings: GraphSettings,
        adjacency: AdjacencyIndex | None = None,
    ) -> "GraphIngestionEngine":
        return cls(
            stores,
            identity=IdentityResolver(settings.identity_scheme),
            discipline=settings.node_discipline,
            adjacency=adjacency if settings.adjacency_enabled else None,
            max_batch_size=settings.max_batch_size,
        )

    @property
    def discipline(self) -> NodeDiscipline:
        return self._discipline

    def validate(
        self,
        batch: Sequence[DependencyRecord | Mapping[str, Any]],
    ) -> list[DependencyRecord]:
        """Validate a whole batch without touching the stores.

        Raises:
            ValidationError: Naming the index of the first bad record.
        """
        if self._max_batch_size is not None and len(batch) > self._max_batch_size:
            raise ValidationError(
                message=f"Batch exceeds {self._max_batch_size} records",
                details={"size": len(batch), "max_batch_size": self._max_batch_size},
            )

        records = []
        for index, item in enumerate(batch):
            if isinstance(item, DependencyRecord):
                records.append(item)
                continue
            try:
                records.append(DependencyRecord.model_validate(item))
            except PydanticValidationError as e:
                raise ValidationError(
                    message=f"Record {index} is invalid",
                    details={
                        "index": index,
                        "errors": e.errors(include_url=False, include_context=False),
                    },
                    cause=e,
                ) from e
        return records

    async def ingest(
        self,
        batch: Sequence[DependencyRecord | Mapping[str, Any]],
    ) -> IngestSummary:
        """Ingest a batch of dependency records in array order.

        Not transactional across the batch. On the first failure the
        current record is rolled back and a BatchIngestError reports how
        many records were applied before it. Re-submitting the whole
        batch is safe.

        Raises:
            ValidationError: If any record is malformed (nothing applied).
            BatchIngestError: If a record fails while being applied.
        """
        records = self.validate(batch)
        summary = IngestSummary()
        start = time.perf_counter()

        for index, record in enumerate(records):
            step = IngestSummary()
            try:
                edge = await self._apply(record, step)
                await self._stores.checkpoint()
            except DepGraphError as e:
                await self._stores.rollback()
                INGEST_FAILURES.labels(error_code=e.error_code).inc()
                logger.warning(
                    "Dependency record failed",
                    index=index,
                    applied=summary.applied,
                    error_code=e.error_code,
                    error=e.message,
                )
                raise BatchIngestError(
                    index=index,
                    applied=summary.applied,
                    error=e,
                    record=record.model_dump(by_alias=True, mode="json"),
                ) from e
            except (Exception, asyncio.CancelledError):
                await self._stores.rollback()
                raise

            step.applied = 1
            self._accumulate(summary, step)
            if self._adjacency is not None:
                await self._adjacency.add(edge.source_node_id, edge.target_node_id)

        INGEST_LATENCY.observe(time.perf_counter() - start)
        logger.info(
            "Ingested dependency batch",
            applied=summary.applied,
            nodes_created=summary.nodes_created,
            nodes_updated=summary.nodes_updated,
            edges_created=summary.edges_created,
            backend=self._stores.backend,
        )
        return summary

    async def delete(self, key: DependencyKey | Mapping[str, Any]) -> list[GraphEdge]:
        """Delete the connections a dependency key matches, with their edges.

        Nodes are left in place.

        Raises:
            ValidationError: If the key is malformed.
            DependencyNotFoundError: If nothing matches.
        """
        key = self._validate_key(key)
        try:
            removed = await self._stores.relationships.delete_dependency(
                source_node_id=key.local_ip,
                target_node_id=key.remote_ip,
                protocol=key.module,
                source_port=key.local_port,
                target_port=key.remote_port,
            )
            if not removed:
                raise DependencyNotFoundError(
                    details=key.model_dump(by_alias=True, mode="json"),
                )
            await self._stores.checkpoint()
        except (Exception, asyncio.CancelledError):
            await self._stores.rollback()
            raise

        EDGES_DELETED.inc(len(removed))
        if self._adjacency is not None:
            await self._prune_adjacency(removed)

        logger.info(
            "Deleted dependency",
            local_ip=key.local_ip,
            remote_ip=key.remote_ip,
            module=key.module,
            edges_removed=len(removed),
        )
        return removed

    async def delete_batch(
        self,
        keys: Sequence[DependencyKey | Mapping[str, Any]],
    ) -> DeleteSummary:
        """Delete keys in order, stopping at the first failure.

        Raises:
            ValidationError: If any key is malformed (nothing deleted).
            BatchIngestError: Wrapping the first failing deletion.
        """
        validated = []
        for index, key in enumerate(keys):
            try:
                validated.append(self._validate_key(key))
            except ValidationError as e:
                e.details["index"] = index
                raise

        summary = DeleteSummary()
        for index, key in enumerate(validated):
            try:
                removed = await self.delete(key)
            except DepGraphError as e:
                raise BatchIngestError(
                    index=index,
                    applied=summary.deleted,
                    error=e,
                    record=key.model_dump(by_alias=True, mode="json"),
                ) from e
            summary.deleted += 1
            summary.edges_removed += len(removed)
        return summary

    async def _apply(self, record: DependencyRecord, step: IngestSummary) -> GraphEdge:
        await self._put_node(record.local_ip, record.local_os, NodeRole.LOCAL, step)
        # A local observation never tells us the peer's OS
        await self._put_node(record.remote_ip, OperatingSystem.UNKNOWN, NodeRole.REMOTE, step)

        connection_id = self._identity.connection_id(
            record.local_ip,
            record.remote_ip,
            record.module,
            record.local_port,
            record.remote_port,
        )
        await self._stores.connections.upsert(
            connection_id,
            protocol=record.module,
            source_port=record.local_port,
            target_port=record.remote_port,
            description=record.description,
        )
        step.connections_upserted += 1

        link = await self._stores.relationships.link(
            record.local_ip, connection_id, record.remote_ip
        )
        if link.created:
            step.edges_created += 1

        await self._stores.record_observation(record, connection_id)
        return link.edge

    async def _put_node(
        self,
        node_id: str,
        os: OperatingSystem,
        role: NodeRole,
        step: IngestSummary,
    ) -> None:
        if self._discipline == "insert_only":
            await self._dedup.reject(node_signature(GraphNode(node_id, os, role)))
            await self._stores.nodes.create(node_id, os, role)
            step.nodes_created += 1
            NODES_CREATED.labels(role=role.value).inc()
            return

        result = await self._stores.nodes.upsert(node_id, os, role)
        if result.created:
            step.nodes_created += 1
            NODES_CREATED.labels(role=role.value).inc()
        elif result.written:
            step.nodes_updated += 1

    def _validate_key(self, key: DependencyKey | Mapping[str, Any]) -> DependencyKey:
        if isinstance(key, DependencyKey):
            return key
        try:
            return DependencyKey.model_validate(key)
        except PydanticValidationError as e:
            raise ValidationError(
                message="Dependency key is invalid",
                details={"errors": e.errors(include_url=False, include_context=False)},
                cause=e,
            ) from e

    async def _prune_adjacency(self, removed: list[GraphEdge]) -> None:
        """Drop index pairs that no longer have any edge behind them."""
        for source, target in {(e.source_node_id, e.target_node_id) for e in removed}:
            remaining = await self._stores.relationships.list_for_node(source)
            if not any(e.source_node_id == source and e.target_node_id == target for e in remaining):
                await self._adjacency.discard(source, target)

    @staticmethod
    def _accumulate(summary: IngestSummary, step: IngestSummary) -> None:
        summary.applied += step.applied
        summary.nodes_created += step.nodes_created
        summary.nodes_updated += step.nodes_updated
        summary.connections_upserted += step.connections_upserted
        summary.edges_created += step.edges_created

        RECORDS_INGESTED.inc(step.applied)
        NODES_UPDATED.inc(step.nodes_updated)
        CONNECTIONS_UPSERTED.inc(step.connections_upserted)
        EDGES_CREATED.inc(step.edges_created)
