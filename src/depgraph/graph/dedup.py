"""Duplicate-submission guard for insert-only node creation."""

from typing import TYPE_CHECKING

from depgraph.common.exceptions import DuplicateNodeError
from depgraph.graph.identity import node_signature

if TYPE_CHECKING:
    from depgraph.stores.base import NodeStore


class DedupGuard:
    """Rejects a new node whose full attribute tuple already exists.

    Only used under the insert_only discipline. Scans every stored node,
    so cost grows with the graph.
    """

    def __init__(self, nodes: "NodeStore") -> None:
        self._nodes = nodes

    async def reject(self, signature: str) -> None:
        """Raise if any stored node hashes to the given signature.

        Raises:
            DuplicateNodeError: On a signature match.
        """
        for node in await self._nodes.list_all():
            if node_signature(node) == signature:
                raise DuplicateNodeError(details={
                    "node_id": node.id,
                    "signature": signature,
                })
