from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from app.core.security import create_access_token
from app.database.session import get_db
from app.main import app


@pytest_asyncio.fixture
async def client(session_factory, seed):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def auth(agent_id):
    return {"Authorization": f"Bearer {create_access_token(agent_id)}"}


WORKFLOW = {
    "name": "Urgent to Carol",
    "trigger": "TICKET_CREATED",
    "conditions": [{"field": "priority", "operator": "equals", "value": "urgent"}],
    "actions": [{"action_type": "ASSIGN_AGENT", "payload": {"agentId": 3}}],
}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.text == "OK"


async def test_requires_a_token(client):
    assert (await client.get("/v1/workflows")).status_code == 401


async def test_expired_token_is_rejected(client, seed):
    token = create_access_token(seed.admin_id, expires_delta=timedelta(minutes=-5))
    response = await client.get("/v1/workflows", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


async def test_workflows_are_admin_only(client, seed):
    assert (await client.get("/v1/workflows", headers=auth(seed.agent_id))).status_code == 403


async def test_workflow_crud(client, seed):
    headers = auth(seed.admin_id)

    created = await client.post("/v1/workflows", json=WORKFLOW, headers=headers)
    assert created.status_code == 201
    workflow = created.json()
    assert workflow["workspace_id"] == seed.workspace_id
    assert workflow["actions"][0]["action_type"] == "ASSIGN_AGENT"

    listed = await client.get("/v1/workflows", headers=headers)
    assert [w["name"] for w in listed.json()] == ["Urgent to Carol"]

    toggled = await client.patch(f"/v1/workflows/{workflow['id']}", json={"is_active": False}, headers=headers)
    assert toggled.json()["is_active"] is False

    updated = await client.put(f"/v1/workflows/{workflow['id']}", json={**WORKFLOW, "name": "Renamed"}, headers=headers)
    assert updated.json()["name"] == "Renamed"

    assert (await client.delete(f"/v1/workflows/{workflow['id']}", headers=headers)).status_code == 200
    assert (await client.get(f"/v1/workflows/{workflow['id']}", headers=headers)).status_code == 404


async def test_invalid_workflow_is_422(client, seed):
    bad = {**WORKFLOW, "conditions": [{"field": "status", "operator": "regex", "value": "x"}]}
    response = await client.post("/v1/workflows", json=bad, headers=auth(seed.admin_id))
    assert response.status_code == 422


async def test_workflow_fields(client, seed):
    response = await client.get("/v1/workflows/fields", headers=auth(seed.admin_id))
    assert response.status_code == 200
    assert "status" in [f["key"] for f in response.json()]


async def test_self_service_leave_cycle(client, seed):
    headers = auth(seed.agent_id)

    response = await client.post(
        "/v1/agents/me/leave-status",
        json={"status": "ON_LEAVE", "from": "2025-03-01T09:00:00", "to": "2025-03-08T18:00:00"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ON_LEAVE"
    assert body["unassigned_count"] == 2
    assert body["message"] == "Set on leave. 2 tickets unassigned."

    status = await client.get("/v1/agents/me/leave-status", headers=headers)
    assert status.json()["status"] == "ON_LEAVE"

    back = await client.post("/v1/agents/me/leave-status", json={"status": "ACTIVE"}, headers=headers)
    assert back.json()["status"] == "ACTIVE"

    history = await client.get(f"/v1/agents/{seed.agent_id}/leave-history", headers=headers)
    records = history.json()["history"]
    assert len(records) == 1
    assert records[0]["status"] == "RETURNED"


async def test_leave_rejects_bad_input(client, seed):
    headers = auth(seed.agent_id)
    assert (await client.post("/v1/agents/me/leave-status", json={"status": "AWAY"}, headers=headers)).status_code == 422

    response = await client.post(
        "/v1/agents/me/leave-status",
        json={"status": "ON_LEAVE", "from": "2025-03-10T00:00:00", "to": "2025-03-01T00:00:00"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == '"from" date must be before "to" date'


async def test_admin_sets_another_agents_leave(client, seed):
    response = await client.post(
        "/v1/admin/agents/leave-status",
        json={"agentId": seed.agent_id, "status": "ON_LEAVE"},
        headers=auth(seed.admin_id),
    )
    assert response.status_code == 200
    assert response.json()["unassigned_count"] == 2

    forbidden = await client.post(
        "/v1/admin/agents/leave-status",
        json={"agentId": seed.other_id, "status": "ON_LEAVE"},
        headers=auth(seed.agent_id),
    )
    assert forbidden.status_code == 403


async def test_leave_history_of_others_needs_admin(client, seed):
    response = await client.get(f"/v1/agents/{seed.other_id}/leave-history", headers=auth(seed.agent_id))
    assert response.status_code == 403


async def test_create_ticket_runs_automation(client, seed):
    headers = auth(seed.admin_id)
    await client.post("/v1/workflows", json=WORKFLOW, headers=headers)

    response = await client.post(
        "/v1/tickets",
        json={"title": "Server down", "priority": "urgent", "workspace_id": seed.workspace_id},
        headers=headers,
    )

    assert response.status_code == 201
    assert response.json()["assignee_id"] == seed.other_id


async def test_sla_timers_endpoint(client, seed):
    response = await client.get("/v1/sla/timers", headers=auth(seed.agent_id))
    assert response.status_code == 200
    assert response.json() == []


async def test_ticket_activities_after_leave(client, seed):
    await client.post("/v1/agents/me/leave-status", json={"status": "ON_LEAVE"}, headers=auth(seed.agent_id))

    response = await client.get(f"/v1/tickets/{seed.ticket_ids[0]}/activities", headers=auth(seed.admin_id))

    assert response.status_code == 200
    entries = response.json()
    assert [e["activity_type"] for e in entries] == ["unassigned"]
    assert entries[0]["old_value"] == "Bob Agent"
    assert entries[0]["reason"] == "Agent marked on leave"
