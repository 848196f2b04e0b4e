"""Admin API endpoints - health and metrics."""

from typing import Any

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from depgraph.common.health import HealthChecker, HealthStatus

router = APIRouter(tags=["admin"])


def _checker(request: Request) -> HealthChecker:
    return request.app.state.health_checker


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Health of the service and its database."""
    result = await _checker(request).readiness()
    return result.to_dict()


@router.get("/health/live")
async def liveness() -> dict[str, str]:
    """Returns 200 while the process is alive."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(request: Request) -> Any:
    """Returns 503 until the database is reachable."""
    result = await _checker(request).readiness()

    if result.status == HealthStatus.UNHEALTHY:
        return Response(
            content='{"status": "unhealthy"}',
            status_code=503,
            media_type="application/json",
        )

    return result.to_dict()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics in text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
