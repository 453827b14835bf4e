from __future__ import annotations

from typing import Any

import httpx
import pytest

from experiment_tracker.api.app import create_app
from experiment_tracker.config.settings import settings
from experiment_tracker.db.database import create_schema


@pytest.fixture(autouse=True)
def _isolated_database(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "STATE_DB_PATH", str(tmp_path / "experiments.db"))
    monkeypatch.setattr(settings, "AUTH_ENABLED", False)
    monkeypatch.setattr(settings, "ADMIN_USERNAMES", "")
    monkeypatch.setattr(settings, "AUTH_PROXY_SECRET", "")
    monkeypatch.setattr(settings, "OAUTH_PROVIDER", "github")
    create_schema()


@pytest.fixture()
async def client() -> httpx.AsyncClient:
    app = create_app()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture()
def make_experiment(client):
    async def _create(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": "Grasping baseline", "researcher": "Ada Lovelace"}
        payload.update(overrides)
        response = await client.post("/api/v1/experiments", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture()
def make_resource(client):
    async def _create(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "resourceId": "gpu-a100-1",
            "name": "A100 node 1",
            "type": "GPU",
            "totalUnits": "8 GPUs",
        }
        payload.update(overrides)
        response = await client.post("/api/v1/resources", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
