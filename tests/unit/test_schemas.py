"""Unit tests for dependency and graph schemas."""

import pytest
from pydantic import ValidationError

from depgraph.graph.types import GraphConnection, GraphEdge, GraphNode, GraphSnapshot
from depgraph.models.node import NodeRole, OperatingSystem
from depgraph.schemas.dependency import DependencyKey, DependencyRecord
from depgraph.schemas.graph import GraphResponse


@pytest.mark.unit
class TestDependencyRecord:
    """Test cases for DependencyRecord."""

    def test_parses_camel_case(self, sample_dependency):
        record = DependencyRecord.model_validate(sample_dependency)

        assert record.local_ip == "10.0.0.1"
        assert record.local_os is OperatingSystem.LINUX
        assert record.local_port == 5000

    def test_snake_case_accepted(self):
        record = DependencyRecord(
            local_ip="10.0.0.1",
            remote_ip="10.0.0.2",
            module="tcp",
            local_port=1,
            remote_port=2,
        )

        assert record.local_os is OperatingSystem.UNKNOWN
        assert record.description == ""

    def test_ipv6_normalized(self, sample_dependency):
        record = DependencyRecord.model_validate({**sample_dependency, "remoteIp": "2001:DB8:0:0::1"})

        assert record.remote_ip == "2001:db8::1"

    def test_null_description(self, sample_dependency):
        record = DependencyRecord.model_validate({**sample_dependency, "description": None})

        assert record.description == ""

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_port_range(self, sample_dependency, port):
        with pytest.raises(ValidationError):
            DependencyRecord.model_validate({**sample_dependency, "localPort": port})

    def test_missing_field(self, sample_dependency):
        data = dict(sample_dependency)
        del data["module"]

        with pytest.raises(ValidationError):
            DependencyRecord.model_validate(data)

    def test_key(self, sample_dependency, sample_key):
        key = DependencyRecord.model_validate(sample_dependency).key()

        assert key == DependencyKey.model_validate(sample_key)


@pytest.mark.unit
class TestGraphResponse:
    """Test cases for the graph wire shape."""

    def test_wire_shape(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.LOCAL)],
            connections=[GraphConnection("c1", "tcp", 5000, 443, "api call")],
            edges=[GraphEdge("10.0.0.1", "c1", "10.0.0.2")],
        )

        data = GraphResponse.from_snapshot(snapshot).model_dump(by_alias=True)

        assert data == {
            "nodes": [{"id": "10.0.0.1", "os": "Linux", "type": "Local"}],
            "connections": [{
                "id": "c1",
                "protocol": "tcp",
                "sourcePort": 5000,
                "targetPort": 443,
                "description": "api call",
            }],
            "edges": [{"source": "10.0.0.1", "connection": "c1", "target": "10.0.0.2"}],
        }
