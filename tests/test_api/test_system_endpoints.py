from __future__ import annotations

import httpx
import pytest
import structlog

from experiment_tracker.api.app import create_app


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/api/v1/system/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["components"]["database"]["status"] == "up"
    assert body["request_id"].startswith("req_")
    assert response.headers["X-Request-Id"] == body["request_id"]


@pytest.mark.asyncio
async def test_dashboard_stats(client, make_resource, make_experiment):
    await make_resource()
    await make_experiment(status="in-progress", assignedResource="gpu-a100-1", startDate="2025-01-01", resourceUtilization=40)
    await make_experiment(status="completed")
    await make_experiment(status="failed")

    response = await client.get("/api/v1/system/stats")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data == {
        "totalExperiments": 3,
        "runningExperiments": 1,
        "completedToday": 1,
        "failedThisWeek": 1,
        "resourceUtilization": 40,
    }


@pytest.mark.asyncio
async def test_request_id_is_bound_for_handler_logs():
    seen = {}
    app = create_app()

    @app.get("/api/v1/system/_context")
    async def _context():
        seen.update(structlog.contextvars.get_contextvars())
        return {"ok": True}

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        response = await test_client.get("/api/v1/system/_context")

    assert response.status_code == 200
    assert seen["request_id"] == response.headers["X-Request-Id"]
    assert seen["path"] == "/api/v1/system/_context"
