from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_add_log_to_unknown_experiment_returns_404(client):
    response = await client.post("/api/v1/experiments/exp_missing/logs", json={"message": "hello"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "EXPERIMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_add_log_validates_level(client, make_experiment):
    created = await make_experiment()
    response = await client.post(
        f"/api/v1/experiments/{created['id']}/logs",
        json={"message": "hello", "level": "debug"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_experiment_logs_filter_by_level_and_paginate(client, make_experiment):
    created = await make_experiment(name="Navigation sweep")
    for level in ("info", "warning", "error", "info"):
        response = await client.post(
            f"/api/v1/experiments/{created['id']}/logs",
            json={"message": f"{level} event", "level": level, "metadata": {"step": 1}},
        )
        assert response.status_code == 201

    response = await client.get(f"/api/v1/experiments/{created['id']}/logs", params={"level": "info"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["experiment"] == {"id": created["id"], "name": "Navigation sweep"}
    assert len(data["logs"]) == 2
    assert all(log["level"] == "info" for log in data["logs"])
    assert data["logs"][0]["metadata"] == {"step": 1}

    page = await client.get(
        f"/api/v1/experiments/{created['id']}/logs",
        params={"limit": 3, "page": 2, "sortOrder": "asc"},
    )
    page_data = page.json()["data"]
    assert page_data["pagination"] == {"page": 2, "limit": 3, "total": 4, "pages": 2}
    assert [log["message"] for log in page_data["logs"]] == ["info event"]


@pytest.mark.asyncio
async def test_global_logs_carry_experiment_and_level_summary(client, make_experiment):
    first = await make_experiment(name="Arm calibration", status="in-progress")
    second = await make_experiment(name="Gripper test")
    await client.post(f"/api/v1/experiments/{first['id']}/logs", json={"message": "torque spike", "level": "warning"})
    await client.post(f"/api/v1/experiments/{first['id']}/logs", json={"message": "calibrated", "level": "success"})
    await client.post(f"/api/v1/experiments/{second['id']}/logs", json={"message": "gripper torque ok"})

    response = await client.get("/api/v1/logs")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["summary"]["totalLogs"] == 3
    assert data["summary"]["levelCounts"] == {"warning": 1, "success": 1, "info": 1}
    assert data["logs"][0]["experiment"]["name"] == "Gripper test"

    searched = await client.get("/api/v1/logs", params={"search": "torque"})
    assert searched.json()["data"]["pagination"]["total"] == 2

    scoped = await client.get("/api/v1/logs", params={"experimentId": first["id"], "level": "warning"})
    logs = scoped.json()["data"]["logs"]
    assert len(logs) == 1
    assert logs[0]["experiment"] == {
        "id": first["id"],
        "name": "Arm calibration",
        "researcher": "Ada Lovelace",
        "status": "in-progress",
    }
