"""Unit tests for connection identity and node signatures."""

import pytest

from depgraph.graph.identity import (
    IdentityResolver,
    composite_key,
    connection_id,
    node_signature,
)
from depgraph.graph.types import GraphNode
from depgraph.models.node import NodeRole, OperatingSystem

BASE = ("10.0.0.1", "10.0.0.2", "tcp", 5000, 443)


@pytest.mark.unit
class TestConnectionId:
    """Test cases for connection_id."""

    def test_composite_format(self):
        """Test composite ids join the fields in fixed order."""
        assert connection_id(*BASE) == "10.0.0.1-10.0.0.2-tcp-5000-443"

    @pytest.mark.parametrize("scheme", ["composite", "sha256"])
    def test_stable(self, scheme):
        """Test identical inputs give identical ids."""
        assert connection_id(*BASE, scheme=scheme) == connection_id(*BASE, scheme=scheme)

    @pytest.mark.parametrize("scheme", ["composite", "sha256"])
    @pytest.mark.parametrize(
        "changed",
        [
            ("10.0.0.9", "10.0.0.2", "tcp", 5000, 443),
            ("10.0.0.1", "10.0.0.9", "tcp", 5000, 443),
            ("10.0.0.1", "10.0.0.2", "udp", 5000, 443),
            ("10.0.0.1", "10.0.0.2", "tcp", 5001, 443),
            ("10.0.0.1", "10.0.0.2", "tcp", 5000, 8443),
        ],
    )
    def test_any_field_change_changes_id(self, scheme, changed):
        """Test changing any one field gives a different id."""
        assert connection_id(*changed, scheme=scheme) != connection_id(*BASE, scheme=scheme)

    def test_direction_matters(self):
        """Test swapping local and remote is a different connection."""
        swapped = ("10.0.0.2", "10.0.0.1", "tcp", 443, 5000)
        assert connection_id(*swapped) != connection_id(*BASE)

    def test_sha256_is_digest_of_composite(self):
        """Test sha256 ids are the hex digest of the composite key."""
        import hashlib

        expected = hashlib.sha256(composite_key(*BASE).encode("utf-8")).hexdigest()
        value = connection_id(*BASE, scheme="sha256")

        assert value == expected
        assert len(value) == 64
        assert value == value.lower()

    def test_resolver_binds_scheme(self):
        """Test the resolver applies its configured scheme."""
        assert IdentityResolver().connection_id(*BASE) == connection_id(*BASE)
        assert IdentityResolver("sha256").connection_id(*BASE) == connection_id(
            *BASE, scheme="sha256"
        )


@pytest.mark.unit
class TestNodeSignature:
    """Test cases for node_signature."""

    def test_identical_attributes_hash_identically(self):
        """Test two equal nodes have the same signature."""
        a = GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.LOCAL)
        b = GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.LOCAL)

        assert node_signature(a) == node_signature(b)

    @pytest.mark.parametrize(
        "other",
        [
            GraphNode("10.0.0.2", OperatingSystem.LINUX, NodeRole.LOCAL),
            GraphNode("10.0.0.1", OperatingSystem.WINDOWS, NodeRole.LOCAL),
            GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.REMOTE),
        ],
    )
    def test_any_attribute_changes_signature(self, other):
        """Test every attribute takes part in the signature."""
        node = GraphNode("10.0.0.1", OperatingSystem.LINUX, NodeRole.LOCAL)
        assert node_signature(other) != node_signature(node)
