"""Deterministic identifiers and content signatures.

Pure functions, no I/O. Connection ids are built from the endpoint and
protocol fields only; the description never takes part in identity.
"""

import hashlib
import json
from typing import Literal

from depgraph.graph.types import GraphNode

IdentityScheme = Literal["composite", "sha256"]

SEPARATOR = "-"


def composite_key(
    local_ip: str,
    remote_ip: str,
    module: str,
    local_port: int,
    remote_port: int,
) -> str:
    """Join the five identity fields in fixed order."""
    return SEPARATOR.join(
        (local_ip, remote_ip, module, str(local_port), str(remote_port))
    )


def connection_id(
    local_ip: str,
    remote_ip: str,
    module: str,
    local_port: int,
    remote_port: int,
    scheme: IdentityScheme = "composite",
) -> str:
    """Compute the identifier of a connection.

    Args:
        local_ip: Address of the observing host.
        remote_ip: Address of the peer.
        module: Protocol/module name (e.g. "tcp").
        local_port: Port on the observing host.
        remote_port: Port on the peer.
        scheme: "composite" for the readable joined key, "sha256" for a
            fixed-length hex digest of that same key.

    Returns:
        Identifier string, identical for identical inputs.
    """
    key = composite_key(local_ip, remote_ip, module, local_port, remote_port)
    if scheme == "sha256":
        return hashlib.sha256(key.encode("utf-8")).hexdigest()
    return key


def node_signature(node: GraphNode) -> str:
    """SHA-256 over a node's full attribute tuple."""
    content = json.dumps([node.id, node.os.value, node.role.value])
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class IdentityResolver:
    """Binds an identity scheme for the engine."""

    def __init__(self, scheme: IdentityScheme = "composite") -> None:
        self.scheme = scheme

    def connection_id(
        self,
        local_ip: str,
        remote_ip: str,
        module: str,
        local_port: int,
        remote_port: int,
    ) -> str:
        return connection_id(
            local_ip, remote_ip, module, local_port, remote_port, scheme=self.scheme
        )

    @staticmethod
    def node_signature(node: GraphNode) -> str:
        return node_signature(node)
