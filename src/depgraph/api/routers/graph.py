"""Graph API endpoints."""

from fastapi import APIRouter

from depgraph.api.dependencies import Adjacency, Reader
from depgraph.common.exceptions import ValidationError
from depgraph.schemas.dependency import normalize_ip
from depgraph.schemas.graph import GraphResponse, NeighborsResponse

router = APIRouter(prefix="/graph", tags=["graph"])


@router.get("", response_model=GraphResponse)
async def get_graph(reader: Reader) -> GraphResponse:
    """Get all nodes, connections and edges."""
    snapshot = await reader.snapshot()
    return GraphResponse.from_snapshot(snapshot)


@router.get("/nodes/{node_id}/neighbors", response_model=NeighborsResponse)
async def get_neighbors(
    node_id: str,
    reader: Reader,
    adjacency: Adjacency,
) -> NeighborsResponse:
    """Get the remote hosts a node talks to."""
    try:
        node_id = normalize_ip(node_id)
    except ValueError as e:
        raise ValidationError(
            message=f"Invalid node id: {e}",
            details={"node_id": node_id},
        ) from e

    neighbors = await reader.neighbors(node_id, adjacency=adjacency)
    return NeighborsResponse(node_id=node_id, neighbors=sorted(neighbors))
