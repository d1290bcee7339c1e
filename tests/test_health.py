"""
Tests for health check endpoints.
"""
import pytest
from httpx import AsyncClient
from fastapi import status


@pytest.mark.asyncio
async def test_health_check(test_client: AsyncClient):
    """Test basic health check endpoint."""
    response = await test_client.get("/health/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_liveness_probe(test_client: AsyncClient):
    """Test Kubernetes liveness probe."""
    response = await test_client.get("/health/live")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "alive"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_readiness_probe(test_client: AsyncClient):
    """Test Kubernetes readiness probe."""
    await test_client.post("/api/v1/servers/", json={"name": "web1", "cpus": 1, "memory_gb": 1, "disk_gb": 1})

    response = await test_client.get("/health/ready")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["servers"] == 1
    assert data["pending_transitions"] == 1


@pytest.mark.asyncio
async def test_readiness_probe_after_shutdown(test_client: AsyncClient, engine):
    """Test readiness probe once the lifecycle engine has stopped."""
    await engine.shutdown()

    response = await test_client.get("/health/ready")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["lifecycle_engine"] == "stopped"


@pytest.mark.asyncio
async def test_startup_probe(test_client: AsyncClient):
    """Test Kubernetes startup probe."""
    response = await test_client.get("/health/startup")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "started"
    assert "timestamp" in data
