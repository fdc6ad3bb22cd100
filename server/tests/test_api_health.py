"""Simple API health tests without overridden dependencies."""

import pytest
from httpx import AsyncClient

from conexus.main import create_app


@pytest.mark.asyncio
async def test_api_health_endpoints():
    """Test the health endpoints against the configured database."""
    app = create_app()

    # Use transport for testing FastAPI apps
    from httpx import ASGITransport
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        # Test basic health endpoint
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

        # Test ready endpoint
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] == "ok"
        assert "dispatch_reaper" in data["checks"]["workers"]

        # Test info endpoint
        response = await client.get("/info")
        assert response.status_code == 200
        data = response.json()
        assert "service" in data
        assert "version" in data
        assert data["settings"]["dispatch_pool_width"] == 3
        assert data["settings"]["attendance_dedup_window_seconds"] == 300


@pytest.mark.asyncio
async def test_metrics_endpoint():
    """Test the metrics endpoint."""
    app = create_app()

    from httpx import ASGITransport
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "registrations_submitted_total" in response.text
        assert "dispatch_runs_active" in response.text


@pytest.mark.asyncio
async def test_request_id_header():
    """Every response carries a request ID, echoing the caller's when given."""
    app = create_app()

    from httpx import ASGITransport
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

        response = await client.get("/health")
        assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_openapi_schema():
    """The OpenAPI schema lists the RPC routes."""
    app = create_app()

    from httpx import ASGITransport
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/v1/registration/submit" in paths
        assert "/v1/attendance/scan" in paths
        assert "/v1/dispatch/batch" in paths
