"""Integration tests for Graph and admin API endpoints."""

from typing import Any

import pytest
from httpx import AsyncClient


@pytest.mark.integration
class TestGraphAPI:
    """Test cases for Graph API endpoints."""

    @pytest.mark.asyncio
    async def test_graph_empty(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/graph")

        assert response.status_code == 200
        assert response.json() == {"nodes": [], "connections": [], "edges": []}

    @pytest.mark.asyncio
    async def test_graph_after_ingest(self, async_client: AsyncClient, sample_dependency: dict[str, Any]):
        await async_client.post("/api/v1/dependencies", json=[sample_dependency])

        response = await async_client.get("/api/v1/graph")
        assert response.status_code == 200

        data = response.json()
        assert sorted(data["nodes"], key=lambda n: n["id"]) == [
            {"id": "10.0.0.1", "os": "Linux", "type": "Local"},
            {"id": "10.0.0.2", "os": "Unknown", "type": "Remote"},
        ]
        assert data["connections"] == [{
            "id": "10.0.0.1-10.0.0.2-tcp-5000-443",
            "protocol": "tcp",
            "sourcePort": 5000,
            "targetPort": 443,
            "description": "api call",
        }]
        assert data["edges"] == [{
            "source": "10.0.0.1",
            "connection": "10.0.0.1-10.0.0.2-tcp-5000-443",
            "target": "10.0.0.2",
        }]

    @pytest.mark.asyncio
    async def test_neighbors(self, async_client: AsyncClient, sample_dependency: dict[str, Any]):
        await async_client.post("/api/v1/dependencies", json=[
            sample_dependency,
            {**sample_dependency, "remoteIp": "10.0.0.3"},
            {**sample_dependency, "remoteIp": "0.0.0.0"},
        ])

        response = await async_client.get("/api/v1/graph/nodes/10.0.0.1/neighbors")

        assert response.status_code == 200
        assert response.json() == {"nodeId": "10.0.0.1", "neighbors": ["10.0.0.2", "10.0.0.3"]}

    @pytest.mark.asyncio
    async def test_neighbors_unknown_node(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/graph/nodes/10.9.9.9/neighbors")

        assert response.status_code == 404
        assert response.json()["error"] == "NODE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_neighbors_normalizes_node_id(
        self, async_client: AsyncClient, sample_dependency: dict[str, Any]
    ):
        await async_client.post("/api/v1/dependencies", json=[
            {**sample_dependency, "localIp": "::1", "remoteIp": "fe80::0002"},
        ])

        response = await async_client.get("/api/v1/graph/nodes/::0001/neighbors")

        assert response.status_code == 200
        assert response.json() == {"nodeId": "::1", "neighbors": ["fe80::2"]}

    @pytest.mark.asyncio
    async def test_neighbors_invalid_node_id(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/graph/nodes/not-an-ip/neighbors")

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["details"] == {"node_id": "not-an-ip"}


@pytest.mark.integration
class TestAdminAPI:
    """Test cases for health and metrics endpoints."""

    @pytest.mark.asyncio
    async def test_liveness(self, async_client: AsyncClient):
        response = await async_client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_metrics(self, async_client: AsyncClient, sample_dependency: dict[str, Any]):
        await async_client.post("/api/v1/dependencies", json=[sample_dependency])

        response = await async_client.get("/metrics")

        assert response.status_code == 200
        assert "depgraph_records_ingested_total" in response.text
