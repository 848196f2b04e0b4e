"""Dependency API endpoints - ingest, list and delete observed dependencies."""

from typing import Any

from fastapi import APIRouter, Body

from depgraph.api.dependencies import IngestionEngine, Reader
from depgraph.schemas.dependency import DeleteResponse, DependencyOut, IngestResponse

router = APIRouter(prefix="/dependencies", tags=["dependencies"])


@router.post("", response_model=IngestResponse)
async def ingest_dependencies(
    engine: IngestionEngine,
    batch: list[dict[str, Any]] = Body(...),
) -> IngestResponse:
    """Ingest a batch of dependency records.

    Records are applied in order. On failure the response carries the
    failing index and how many records were applied before it; those
    stay applied and the whole batch can be re-sent.
    """
    summary = await engine.ingest(batch)
    return IngestResponse(
        applied=summary.applied,
        nodes_created=summary.nodes_created,
        nodes_updated=summary.nodes_updated,
        connections_upserted=summary.connections_upserted,
        edges_created=summary.edges_created,
    )


@router.get("", response_model=list[DependencyOut])
async def list_dependencies(reader: Reader) -> list[DependencyOut]:
    """List dependencies rebuilt from the stored graph."""
    return await reader.list_dependencies()


@router.delete("", response_model=DeleteResponse)
async def delete_dependencies(
    engine: IngestionEngine,
    keys: list[dict[str, Any]] = Body(...),
) -> DeleteResponse:
    """Delete the connections identified by each key, keeping the nodes."""
    summary = await engine.delete_batch(keys)
    return DeleteResponse(deleted=summary.deleted, edges_removed=summary.edges_removed)
