"""Read side of the dependency graph."""

from typing import TYPE_CHECKING

from depgraph.common.logging import get_logger
from depgraph.graph.adjacency import SENTINEL_ADDRESS
from depgraph.graph.types import GraphSnapshot
from depgraph.schemas.dependency import DependencyOut

if TYPE_CHECKING:
    from depgraph.graph.adjacency import AdjacencyIndex
    from depgraph.stores.base import GraphStores

logger = get_logger(__name__)


class GraphReader:
    """Assembles graph views from the three stores."""

    def __init__(self, stores: "GraphStores") -> None:
        self._stores = stores

    async def snapshot(self) -> GraphSnapshot:
        """Read nodes, connections and edges as three independent lists.

        The reads are not isolated from each other. An edge may refer to
        a node or connection written after that list was read; use
        GraphSnapshot.resolved_edges() to drop dangling references.
        """
        nodes = await self._stores.nodes.list_all()
        connections = await self._stores.connections.list_all()
        edges = await self._stores.relationships.list_all()

        logger.debug(
            "Graph snapshot read",
            nodes=len(nodes),
            connections=len(connections),
            edges=len(edges),
        )
        return GraphSnapshot(nodes=nodes, connections=connections, edges=edges)

    async def list_dependencies(self) -> list[DependencyOut]:
        """Rebuild flattened dependency records from the stored graph.

        One record per resolvable edge, sorted by endpoints and ports.
        """
        snapshot = await self.snapshot()
        nodes = {n.id: n for n in snapshot.nodes}
        connections = {c.id: c for c in snapshot.connections}

        records = []
        for edge in snapshot.resolved_edges():
            connection = connections[edge.connection_id]
            records.append(DependencyOut(
                local_ip=edge.source_node_id,
                local_os=nodes[edge.source_node_id].os.value,
                remote_ip=edge.target_node_id,
                module=connection.protocol,
                local_port=connection.source_port,
                remote_port=connection.target_port,
                description=connection.description,
            ))

        records.sort(key=lambda r: (r.local_ip, r.remote_ip, r.module, r.local_port, r.remote_port))
        return records

    async def neighbors(self, node_id: str, adjacency: "AdjacencyIndex | None" = None) -> set[str]:
        """Remote ids the node links to.

        Served from the adjacency index when one is given, otherwise read
        from the relationship store.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        await self._stores.nodes.get(node_id)
        if adjacency is not None:
            return await adjacency.neighbors(node_id)

        edges = await self._stores.relationships.list_for_node(node_id)
        return {
            e.target_node_id for e in edges
            if e.source_node_id == node_id and e.target_node_id != SENTINEL_ADDRESS
        }
