from __future__ import annotations

import pytest


async def _create_researcher(client, **overrides):
    payload = {"name": "Ada Lovelace", "email": "ada@example.com", "department": "Robotics"}
    payload.update(overrides)
    response = await client.post("/api/v1/researchers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_researcher_and_reject_duplicate_name(client):
    created = await _create_researcher(client)
    assert created["id"].startswith("rsr_")

    duplicate = await client.post("/api/v1/researchers", json={"name": "Ada Lovelace"})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "RESEARCHER_EXISTS"


@pytest.mark.asyncio
async def test_list_includes_experiment_counts(client, make_experiment):
    await _create_researcher(client)
    await _create_researcher(client, name="Grace Hopper", email=None)
    await make_experiment(status="in-progress")
    await make_experiment(status="completed")

    response = await client.get("/api/v1/researchers", params={"sortBy": "name", "sortOrder": "asc"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    ada, grace = data["researchers"]
    assert (ada["name"], ada["totalExperiments"], ada["activeExperiments"]) == ("Ada Lovelace", 2, 1)
    assert (grace["name"], grace["totalExperiments"], grace["activeExperiments"]) == ("Grace Hopper", 0, 0)

    searched = await client.get("/api/v1/researchers", params={"search": "grace"})
    assert [row["name"] for row in searched.json()["data"]["researchers"]] == ["Grace Hopper"]


@pytest.mark.asyncio
async def test_unknown_researcher_returns_404(client):
    response = await client.get("/api/v1/researchers/rsr_missing")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "RESEARCHER_NOT_FOUND"


@pytest.mark.asyncio
async def test_rename_moves_experiments(client, make_experiment):
    researcher = await _create_researcher(client)
    experiment = await make_experiment()

    response = await client.put(f"/api/v1/researchers/{researcher['id']}", json={"name": "Ada King"})
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Ada King"

    moved = await client.get(f"/api/v1/experiments/{experiment['id']}")
    assert moved.json()["data"]["researcher"] == "Ada King"


@pytest.mark.asyncio
async def test_rename_onto_existing_name_conflicts(client):
    ada = await _create_researcher(client)
    await _create_researcher(client, name="Grace Hopper")
    response = await client.put(f"/api/v1/researchers/{ada['id']}", json={"name": "Grace Hopper"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_blocked_while_experiments_reference_researcher(client, make_experiment):
    researcher = await _create_researcher(client)
    await make_experiment(status="completed")

    response = await client.delete(f"/api/v1/researchers/{researcher['id']}")
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "RESEARCHER_HAS_EXPERIMENTS"
    assert detail["details"]["experimentCount"] == 1


@pytest.mark.asyncio
async def test_delete_unreferenced_researcher(client):
    researcher = await _create_researcher(client)
    response = await client.delete(f"/api/v1/researchers/{researcher['id']}")
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/researchers/{researcher['id']}")).status_code == 404
