from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from app.core.database import AsyncSessionLocal
from app.models.audit import AuditLog
from app.models.task import Task

HOUSEKEEPING = "dept_002"


async def _sensitive_actions():
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(AuditLog).where(AuditLog.table_name == "clock_sessions").order_by(AuditLog.created_at)
        )
        return [e.details.get("sensitive_action") for e in result.scalars().all()]


@pytest.mark.asyncio
async def test_clock_in_and_out(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    headers = auth_headers(user)

    res = await client.post("/api/clock-sessions/clock-in", json={"location": "Lobby"}, headers=headers)
    assert res.status_code == 201
    session_id = res.json()["id"]
    assert res.json()["department_id"] == HOUSEKEEPING

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=headers)
    assert res.status_code == 400

    res = await client.get("/api/clock-sessions/active", headers=headers)
    assert res.json()["id"] == session_id

    res = await client.post("/api/clock-sessions/clock-out", headers=headers)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "completed"
    assert body["total_seconds"] >= 0

    assert await _sensitive_actions() == ["clock_in", "clock_out"]

    res = await client.post("/api/clock-sessions/clock-out", headers=headers)
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_clock_in_against_someone_elses_task(client, make_user, db_session, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    other = await make_user("User", HOUSEKEEPING)
    task = Task(title="Polish brass", assigned_to=other.id, department_id=HOUSEKEEPING)
    db_session.add(task)
    await db_session.commit()

    res = await client.post("/api/clock-sessions/clock-in", json={"task_id": task.id}, headers=auth_headers(user))
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_creator_who_is_not_assignee_cannot_clock_in(client, make_user, db_session, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    other = await make_user("User", HOUSEKEEPING)
    task = Task(title="Polish brass", assigned_to=other.id, created_by=user.id, department_id=HOUSEKEEPING)
    db_session.add(task)
    await db_session.commit()

    res = await client.post("/api/clock-sessions/clock-in", json={"task_id": task.id}, headers=auth_headers(user))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_sessions_are_private_below_manager(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    peer = await make_user("User", HOUSEKEEPING)
    manager = await make_user("Manager", HOUSEKEEPING)

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=auth_headers(peer))
    session_id = res.json()["id"]

    res = await client.get(f"/api/clock-sessions/{session_id}", headers=auth_headers(user))
    assert res.status_code == 404

    res = await client.get("/api/clock-sessions/", params={"user_id": peer.id}, headers=auth_headers(manager))
    assert [r["id"] for r in res.json()] == [session_id]


@pytest.mark.asyncio
async def test_only_admins_cancel_sessions(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    admin = await make_user("Admin")

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=auth_headers(user))
    session_id = res.json()["id"]

    res = await client.delete(f"/api/clock-sessions/{session_id}", headers=auth_headers(user))
    assert res.status_code == 403

    res = await client.delete(f"/api/clock-sessions/{session_id}", headers=auth_headers(admin))
    assert res.status_code == 200

    res = await client.get(f"/api/clock-sessions/{session_id}", headers=auth_headers(user))
    assert res.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_owner_cannot_cancel_session_through_update(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    headers = auth_headers(user)

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=headers)
    session_id = res.json()["id"]

    res = await client.put(f"/api/clock-sessions/{session_id}", json={"status": "cancelled"}, headers=headers)
    assert res.status_code == 403

    res = await client.get(f"/api/clock-sessions/{session_id}", headers=headers)
    assert res.json()["status"] == "active"


@pytest.mark.asyncio
async def test_clock_out_time_is_stamped_by_server(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    headers = auth_headers(user)

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=headers)
    session_id = res.json()["id"]

    later = (datetime.now(timezone.utc) + timedelta(hours=10)).isoformat()
    res = await client.put(f"/api/clock-sessions/{session_id}", json={"clock_out": later}, headers=headers)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "completed"
    assert body["total_seconds"] < 60

    # once recorded, only an admin may move it
    res = await client.put(f"/api/clock-sessions/{session_id}", json={"clock_out": later}, headers=headers)
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_admin_may_set_clock_out_time(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    admin = await make_user("Admin")

    res = await client.post("/api/clock-sessions/clock-in", json={}, headers=auth_headers(user))
    session_id = res.json()["id"]

    later = (datetime.now(timezone.utc) + timedelta(hours=2)).isoformat()
    res = await client.put(
        f"/api/clock-sessions/{session_id}", json={"clock_out": later}, headers=auth_headers(admin)
    )
    assert res.status_code == 200
    assert res.json()["total_seconds"] >= 2 * 3600 - 60
