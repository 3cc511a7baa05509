"""HTTP-level tests for the roadmap and node routes."""

import pytest
from httpx import AsyncClient


async def _create_roadmap(client: AsyncClient, **body) -> dict:
    resp = await client.post("/api/roadmaps", json={"title": "Data Science", **body})
    assert resp.status_code == 201
    return resp.json()


async def _create_node(client: AsyncClient, roadmap_id: int, **body) -> dict:
    resp = await client.post(f"/api/roadmaps/{roadmap_id}/nodes", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_roadmap_lifecycle(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client, description="pandas first")
    assert roadmap["daily_focus_time"] == 60
    assert roadmap["user_id"] == "test-user"

    resp = await client.get("/api/roadmaps")
    assert [r["id"] for r in resp.json()] == [roadmap["id"]]

    resp = await client.patch(f"/api/roadmaps/{roadmap['id']}", json={"title": "ML"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "ML"
    assert resp.json()["description"] == "pandas first"

    resp = await client.delete(f"/api/roadmaps/{roadmap['id']}")
    assert resp.status_code == 204

    resp = await client.get(f"/api/roadmaps/{roadmap['id']}")
    assert resp.status_code == 404
    assert resp.json()["message"] == f"Roadmap {roadmap['id']} not found"


@pytest.mark.asyncio
async def test_create_roadmap_validation(client: AsyncClient) -> None:
    resp = await client.post("/api/roadmaps", json={"title": ""})
    assert resp.status_code == 422
    body = resp.json()
    assert body["message"] == "Validation error"
    assert isinstance(body["details"], list)


@pytest.mark.asyncio
async def test_other_user_forbidden(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    resp = await client.get(
        f"/api/roadmaps/{roadmap['id']}", headers={"X-User-Id": "someone-else"}
    )
    assert resp.status_code == 403
    assert resp.json()["status"] == 403


@pytest.mark.asyncio
async def test_node_crud_and_completed_at(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    node = await _create_node(
        client, roadmap["id"], title="NumPy", type="course", time_estimate=90
    )
    assert node["completed_at"] is None

    resp = await client.patch(
        f"/api/nodes/{node['id']}",
        json={"status": "completed", "completed_at": None},
    )
    assert resp.status_code == 200
    assert resp.json()["completed_at"] is not None

    resp = await client.patch(
        f"/api/nodes/{node['id']}",
        json={"status": "not_started", "completed_at": "2024-01-01T00:00:00"},
    )
    assert resp.json()["completed_at"] is None

    resp = await client.delete(f"/api/nodes/{node['id']}")
    assert resp.status_code == 204
    resp = await client.get(f"/api/nodes/{node['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_node_rejects_bad_enum(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    resp = await client.post(
        f"/api/roadmaps/{roadmap['id']}/nodes", json={"title": "x", "type": "podcast"}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_node_rejects_negative_time(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    resp = await client.post(
        f"/api/roadmaps/{roadmap['id']}/nodes", json={"title": "x", "time_estimate": -1}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_tree_and_levels(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    parent = await _create_node(client, roadmap["id"], title="Stats", order=1)
    await _create_node(client, roadmap["id"], title="Regression", parent_id=parent["id"])

    resp = await client.get(f"/api/roadmaps/{roadmap['id']}/tree")
    assert resp.status_code == 200
    tree = resp.json()
    assert [t["title"] for t in tree] == ["Intro", "Stats"]
    assert [c["title"] for c in tree[1]["children"]] == ["Regression"]
    assert tree[1]["children"][0]["children"] == []

    resp = await client.get(f"/api/roadmaps/{roadmap['id']}/levels")
    levels = resp.json()
    assert [[n["title"] for n in level] for level in levels] == [["Intro", "Stats"], ["Regression"]]


@pytest.mark.asyncio
async def test_progress_endpoint(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client, daily_focus_time=30)
    await _create_node(client, roadmap["id"], title="A", time_estimate=30, status="completed")
    await _create_node(client, roadmap["id"], title="B", time_estimate=70)

    resp = await client.get(f"/api/roadmaps/{roadmap['id']}/progress")
    assert resp.status_code == 200
    body = resp.json()
    assert body["item_percent"] == 33
    assert body["total_minutes"] == 100
    assert body["completed_minutes"] == 30
    assert body["remaining_minutes"] == 70
    assert body["days_remaining"] == 3
    assert "projected_completion" in body


@pytest.mark.asyncio
async def test_reorder(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    one = await _create_node(client, roadmap["id"], title="One")
    two = await _create_node(client, roadmap["id"], title="Two")

    resp = await client.post(
        f"/api/roadmaps/{roadmap['id']}/reorder",
        json={
            "updates": [
                {"id": two["id"], "parent_id": one["id"], "order": 0},
                {"id": one["id"], "parent_id": None, "order": 3},
            ]
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [n["id"] for n in body] == [two["id"], one["id"]]
    assert body[0]["parent_id"] == one["id"]
    assert body[1]["order"] == 3


@pytest.mark.asyncio
async def test_reorder_failure_reports_item(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    one = await _create_node(client, roadmap["id"], title="One")

    resp = await client.post(
        f"/api/roadmaps/{roadmap['id']}/reorder",
        json={
            "updates": [
                {"id": one["id"], "parent_id": None, "order": 9},
                {"id": 123456, "parent_id": None, "order": 0},
            ]
        },
    )
    assert resp.status_code == 404
    details = resp.json()["details"]
    assert details["index"] == 1
    assert details["applied_ids"] == [one["id"]]

    resp = await client.get(f"/api/nodes/{one['id']}")
    assert resp.json()["order"] == 9


@pytest.mark.asyncio
async def test_batch_import_csv(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    csv_text = "title,type,time_estimate,parent_title\nBasics,video,30,\nDeep Dive,book,60,Basics\n"

    resp = await client.post(f"/api/roadmaps/{roadmap['id']}/nodes/batch", json={"csv": csv_text})
    assert resp.status_code == 201
    assert resp.json()["count"] == 2
    assert resp.json()["message"] == "Created 2 nodes"

    nodes = (await client.get(f"/api/roadmaps/{roadmap['id']}/nodes")).json()
    by_title = {n["title"]: n for n in nodes}
    assert by_title["Deep Dive"]["parent_id"] == by_title["Basics"]["id"]


@pytest.mark.asyncio
async def test_batch_import_records(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    resp = await client.post(
        f"/api/roadmaps/{roadmap['id']}/nodes/batch",
        json={"nodes": [{"title": "A"}, {"title": "B", "parent_title": "A"}]},
    )
    assert resp.status_code == 201
    assert resp.json()["linked"] == 1


@pytest.mark.asyncio
async def test_batch_import_requires_one_source(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    resp = await client.post(f"/api/roadmaps/{roadmap['id']}/nodes/batch", json={})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_import_template(client: AsyncClient) -> None:
    resp = await client.get("/api/roadmaps/import/template")
    assert resp.status_code == 200
    assert resp.text.startswith("title,type,timeEstimate")


@pytest.mark.asyncio
async def test_create_node_rejects_oversized_numbers(client: AsyncClient) -> None:
    roadmap = await _create_roadmap(client)
    for body in ({"title": "x", "time_estimate": 10**20}, {"title": "x", "order": 10**20}):
        resp = await client.post(f"/api/roadmaps/{roadmap['id']}/nodes", json=body)
        assert resp.status_code == 422
