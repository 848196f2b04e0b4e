"""Unit tests for the graph ingestion engine."""

from typing import Any

import pytest

from depgraph.common.exceptions import (
    BatchIngestError,
    DependencyNotFoundError,
    ValidationError,
)
from depgraph.graph.adjacency import AdjacencyIndex
from depgraph.graph.engine import GraphIngestionEngine
from depgraph.graph.identity import IdentityResolver, connection_id
from depgraph.graph.reader import GraphReader
from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode
from depgraph.models.node import NodeRole, OperatingSystem
from depgraph.stores.base import GraphStores

CONNECTION_ID = "10.0.0.1-10.0.0.2-tcp-5000-443"


def _record(**overrides: Any) -> dict[str, Any]:
    record = {
        "localIp": "10.0.0.1",
        "localOS": "Linux",
        "remoteIp": "10.0.0.2",
        "module": "tcp",
        "localPort": 5000,
        "remotePort": 443,
        "description": "api call",
    }
    record.update(overrides)
    return record


@pytest.mark.unit
class TestIngest:
    """Test cases for GraphIngestionEngine.ingest."""

    async def test_end_to_end(self, stores: GraphStores, sample_dependency):
        """Test one record yields two nodes, one connection and one edge."""
        engine = GraphIngestionEngine(stores)

        summary = await engine.ingest([sample_dependency])
        snapshot = await GraphReader(stores).snapshot()

        assert summary.applied == 1
        assert summary.nodes_created == 2
        assert summary.edges_created == 1
        assert set(snapshot.nodes) == {
            GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.LOCAL),
            GraphNode("10.0.0.2", OperatingSystem.UNKNOWN, NodeRole.REMOTE),
        }
        assert snapshot.connections == [
            GraphConnection(CONNECTION_ID, "tcp", 5000, 443, "api call"),
        ]
        assert snapshot.edges == [GraphEdge("10.0.0.1", CONNECTION_ID, "10.0.0.2")]

    async def test_reingest_changes_nothing(self, stores: GraphStores, sample_dependency):
        engine = GraphIngestionEngine(stores)
        await engine.ingest([sample_dependency])
        before = await GraphReader(stores).snapshot()

        summary = await engine.ingest([sample_dependency])
        after = await GraphReader(stores).snapshot()

        assert summary.applied == 1
        assert summary.nodes_created == 0
        assert summary.nodes_updated == 0
        assert summary.edges_created == 0
        assert set(after.nodes) == set(before.nodes)
        assert after.connections == before.connections
        assert after.edges == before.edges

    async def test_reingest_overwrites_description_only(self, stores: GraphStores, sample_dependency):
        engine = GraphIngestionEngine(stores)
        await engine.ingest([sample_dependency])

        await engine.ingest([_record(description="renamed")])
        snapshot = await GraphReader(stores).snapshot()

        assert len(snapshot.connections) == 1
        assert snapshot.connections[0].id == CONNECTION_ID
        assert snapshot.connections[0].description == "renamed"
        assert len(snapshot.edges) == 1

    async def test_remote_os_never_known(self, stores: GraphStores):
        """Test the remote node of a record is always stored as Unknown."""
        engine = GraphIngestionEngine(stores)

        await engine.ingest([_record(localOS="Windows")])

        assert (await stores.nodes.get("10.0.0.2")).os is OperatingSystem.UNKNOWN

    async def test_remote_learns_os_when_seen_locally(self, stores: GraphStores):
        engine = GraphIngestionEngine(stores)

        await engine.ingest([
            _record(),
            _record(localIp="10.0.0.2", remoteIp="10.0.0.1", localOS="Windows", localPort=443, remotePort=5000),
            _record(localOS="unknown", localPort=5001),
        ])

        assert (await stores.nodes.get("10.0.0.2")).os is OperatingSystem.WINDOWS
        assert (await stores.nodes.get("10.0.0.1")).os is OperatingSystem.LINUX

    async def test_records_follow_array_order(self, stores: GraphStores):
        engine = GraphIngestionEngine(stores)

        summary = await engine.ingest([
            _record(localOS="Unknown"),
            _record(localOS="Linux", localPort=5001),
            _record(localOS="Unknown", localPort=5002),
            _record(localOS="Windows", localPort=5003),
        ])

        assert summary.applied == 4
        assert summary.connections_upserted == 4
        assert (await stores.nodes.get("10.0.0.1")).os is OperatingSystem.WINDOWS

    async def test_sha256_scheme(self, stores: GraphStores, sample_dependency):
        engine = GraphIngestionEngine(stores, identity=IdentityResolver("sha256"))

        await engine.ingest([sample_dependency])

        connections = await stores.connections.list_all()
        assert connections[0].id == connection_id(
            "10.0.0.1", "10.0.0.2", "tcp", 5000, 443, scheme="sha256"
        )

    async def test_validation_reports_index(self, stores: GraphStores):
        """Test a bad record fails the batch before any store access."""
        engine = GraphIngestionEngine(stores)

        with pytest.raises(ValidationError) as exc_info:
            await engine.ingest([_record(), _record(remotePort=70000)])

        assert exc_info.value.details["index"] == 1
        assert await stores.nodes.list_all() == []

    @pytest.mark.parametrize(
        "bad",
        [
            {"localIp": "not-an-ip"},
            {"module": ""},
            {"localPort": -1},
            {"remoteIp": None},
        ],
    )
    async def test_validation_rejects(self, stores: GraphStores, bad):
        engine = GraphIngestionEngine(stores)

        with pytest.raises(ValidationError):
            await engine.ingest([_record(**bad)])

    async def test_max_batch_size(self, stores: GraphStores):
        engine = GraphIngestionEngine(stores, max_batch_size=1)

        with pytest.raises(ValidationError):
            await engine.ingest([_record(), _record(localPort=5001)])

    async def test_unknown_os_string_accepted(self, stores: GraphStores):
        engine = GraphIngestionEngine(stores)

        await engine.ingest([_record(localOS="Plan9")])

        assert (await stores.nodes.get("10.0.0.1")).os is OperatingSystem.UNKNOWN

    async def test_adjacency_updated(self, stores: GraphStores):
        adjacency = AdjacencyIndex()
        engine = GraphIngestionEngine(stores, adjacency=adjacency)

        await engine.ingest([
            _record(),
            _record(localPort=5001),
            _record(remoteIp="0.0.0.0"),
        ])

        assert await adjacency.neighbors("10.0.0.1") == {"10.0.0.2"}


@pytest.mark.unit
class TestInsertOnly:
    """Test cases for the insert_only node discipline."""

    async def test_first_ingest(self, stores: GraphStores, sample_dependency):
        engine = GraphIngestionEngine(stores, discipline="insert_only")

        summary = await engine.ingest([sample_dependency])

        assert summary.nodes_created == 2

    async def test_duplicate_node_fails_batch(self, stores: GraphStores, sample_dependency):
        """Test a repeated host stops the batch and reports progress."""
        engine = GraphIngestionEngine(stores, discipline="insert_only")

        with pytest.raises(BatchIngestError) as exc_info:
            await engine.ingest([sample_dependency, _record(localPort=5001)])

        error = exc_info.value
        assert error.index == 1
        assert error.applied == 1
        assert error.status_code == 409
        assert error.error_code == "DUPLICATE_NODE"
        assert error.details["record"]["localPort"] == 5001

    async def test_conflicting_node_fails_batch(self, stores: GraphStores, sample_dependency):
        """Test same id with different attributes is a conflict, not a duplicate."""
        engine = GraphIngestionEngine(stores, discipline="insert_only")
        await engine.ingest([sample_dependency])

        with pytest.raises(BatchIngestError) as exc_info:
            await engine.ingest([_record(localOS="Windows", localPort=5001)])

        assert exc_info.value.error_code == "NODE_CONFLICT"
        assert exc_info.value.applied == 0
        assert (await stores.nodes.get("10.0.0.1")).os is OperatingSystem.LINUX


@pytest.mark.unit
class TestDelete:
    """Test cases for GraphIngestionEngine.delete and delete_batch."""

    async def test_delete_keeps_nodes(self, stores: GraphStores, sample_dependency, sample_key):
        engine = GraphIngestionEngine(stores)
        await engine.ingest([sample_dependency])

        removed = await engine.delete(sample_key)
        snapshot = await GraphReader(stores).snapshot()

        assert removed == [GraphEdge("10.0.0.1", CONNECTION_ID, "10.0.0.2")]
        assert snapshot.connections == []
        assert snapshot.edges == []
        assert {n.id for n in snapshot.nodes} == {"10.0.0.1", "10.0.0.2"}

    async def test_delete_missing(self, stores: GraphStores, sample_key):
        engine = GraphIngestionEngine(stores)

        with pytest.raises(DependencyNotFoundError):
            await engine.delete(sample_key)

    async def test_delete_invalid_key(self, stores: GraphStores, sample_key):
        engine = GraphIngestionEngine(stores)

        with pytest.raises(ValidationError):
            await engine.delete({**sample_key, "localPort": "abc"})

    async def test_delete_prunes_adjacency(self, stores: GraphStores, sample_dependency, sample_key):
        adjacency = AdjacencyIndex()
        engine = GraphIngestionEngine(stores, adjacency=adjacency)
        await engine.ingest([sample_dependency, _record(localPort=5001)])

        await engine.delete(sample_key)
        # Second connection between the same hosts still exists
        assert await adjacency.is_connected("10.0.0.1", "10.0.0.2") is True

        await engine.delete({**sample_key, "localPort": 5001})
        assert await adjacency.is_connected("10.0.0.1", "10.0.0.2") is False

    async def test_delete_batch(self, stores: GraphStores, sample_dependency, sample_key):
        engine = GraphIngestionEngine(stores)
        await engine.ingest([sample_dependency, _record(localPort=5001)])

        summary = await engine.delete_batch([sample_key, {**sample_key, "localPort": 5001}])

        assert summary.deleted == 2
        assert summary.edges_removed == 2
        assert await stores.connections.list_all() == []

    async def test_delete_batch_stops_at_first_missing(self, stores: GraphStores, sample_dependency, sample_key):
        engine = GraphIngestionEngine(stores)
        await engine.ingest([sample_dependency, _record(localPort=5001)])

        with pytest.raises(BatchIngestError) as exc_info:
            await engine.delete_batch([
                sample_key,
                {**sample_key, "localPort": 9999},
                {**sample_key, "localPort": 5001},
            ])

        assert exc_info.value.index == 1
        assert exc_info.value.applied == 1
        assert exc_info.value.status_code == 404
        assert len(await stores.connections.list_all()) == 1
