import pytest
from sqlmodel import select

from app.core.database import AsyncSessionLocal
from app.models.audit import AuditLog
from app.models.task import Task

HOUSEKEEPING = "dept_002"
OPERATIONS = "dept_005"


@pytest.fixture
def make_task(db_session):
    async def _make(**kw) -> Task:
        kw.setdefault("title", "Restock linen cart")
        row = Task(**kw)
        db_session.add(row)
        await db_session.commit()
        await db_session.refresh(row)
        return row

    return _make


async def _fetch_tasks(*ids):
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Task).where(Task.id.in_(ids)))
        return {t.id: t for t in result.scalars().all()}


async def _audit_entries(table_name="tasks"):
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(AuditLog).where(AuditLog.table_name == table_name))
        return list(result.scalars().all())


# -------------------------------------------------------------------
# AUTHENTICATION
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_requires_bearer_token(client):
    res = await client.get("/api/tasks/")
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_rejects_garbage_token(client):
    res = await client.get("/api/tasks/", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


# -------------------------------------------------------------------
# READ SCOPE
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_manager_department_filter_cannot_escape_scope(client, make_user, make_task, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    await make_task(department_id=HOUSEKEEPING)
    await make_task(department_id=HOUSEKEEPING)
    await make_task(department_id=OPERATIONS)

    res = await client.get(
        "/api/tasks/", params={"department_id": OPERATIONS}, headers=auth_headers(manager)
    )
    assert res.status_code == 200
    rows = res.json()
    assert len(rows) == 2
    assert {r["department_id"] for r in rows} == {HOUSEKEEPING}


@pytest.mark.asyncio
async def test_user_sees_only_own_tasks(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    other = await make_user("User", HOUSEKEEPING)
    mine = await make_task(assigned_to=user.id, department_id=HOUSEKEEPING)
    theirs = await make_task(assigned_to=other.id, department_id=HOUSEKEEPING)

    res = await client.get("/api/tasks/", headers=auth_headers(user))
    assert [r["id"] for r in res.json()] == [mine.id]

    res = await client.get(f"/api/tasks/{theirs.id}", headers=auth_headers(user))
    assert res.status_code == 404

    res = await client.get("/api/tasks/count", headers=auth_headers(user))
    assert res.json() == {"count": 1}


@pytest.mark.asyncio
async def test_invalid_status_filter(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    res = await client.get("/api/tasks/", params={"status": "done"}, headers=auth_headers(user))
    assert res.status_code == 400


# -------------------------------------------------------------------
# SINGLE-ROW MUTATIONS
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_guest_cannot_create_tasks(client, make_user, auth_headers):
    guest = await make_user("Guest", HOUSEKEEPING)
    res = await client.post("/api/tasks/", json={"title": "Sweep"}, headers=auth_headers(guest))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_user_creates_task_in_own_department(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    res = await client.post("/api/tasks/", json={"title": "Sweep"}, headers=auth_headers(user))
    assert res.status_code == 201
    body = res.json()
    assert body["created_by"] == user.id
    assert body["department_id"] == HOUSEKEEPING

    res = await client.post(
        "/api/tasks/", json={"title": "Sweep", "department_id": OPERATIONS}, headers=auth_headers(user)
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_manager_reassignment_writes_one_audit_entry(client, make_user, make_task, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    first = await make_user("User", HOUSEKEEPING)
    second = await make_user("User", HOUSEKEEPING)
    task = await make_task(assigned_to=first.id, department_id=HOUSEKEEPING)

    res = await client.put(
        f"/api/tasks/{task.id}", json={"assigned_to": second.id}, headers=auth_headers(manager)
    )
    assert res.status_code == 200
    assert res.json()["assigned_to"] == second.id

    entries = [e for e in await _audit_entries() if e.record_id == task.id]
    assert len(entries) == 1
    [entry] = entries
    assert entry.action == "UPDATE"
    assert entry.user_id == manager.id
    assert entry.old_values == {"assigned_to": first.id}
    assert entry.new_values == {"assigned_to": second.id}
    assert entry.details["sensitive_action"] == "task_assignment"


@pytest.mark.asyncio
async def test_manager_cannot_assign_outside_department(client, make_user, make_task, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    outsider = await make_user("User", OPERATIONS)
    task = await make_task(department_id=HOUSEKEEPING)

    res = await client.put(
        f"/api/tasks/{task.id}", json={"assigned_to": outsider.id}, headers=auth_headers(manager)
    )
    assert res.status_code == 403
    assert (await _fetch_tasks(task.id))[task.id].assigned_to is None
    assert await _audit_entries() == []


@pytest.mark.asyncio
async def test_user_cannot_reassign_own_task(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    peer = await make_user("User", HOUSEKEEPING)
    task = await make_task(assigned_to=user.id, department_id=HOUSEKEEPING)

    res = await client.put(f"/api/tasks/{task.id}", json={"assigned_to": peer.id}, headers=auth_headers(user))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_completion_sets_timestamp_and_audits(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    task = await make_task(assigned_to=user.id, department_id=HOUSEKEEPING)

    res = await client.put(f"/api/tasks/{task.id}", json={"status": "completed"}, headers=auth_headers(user))
    assert res.status_code == 200
    assert res.json()["completed_at"] is not None

    [entry] = await _audit_entries()
    assert entry.details["sensitive_action"] == "task_completion"
    assert entry.old_values == {"status": "pending"}


@pytest.mark.asyncio
async def test_delete_is_soft_and_creator_only(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    manager = await make_user("Manager", HOUSEKEEPING)
    assigned = await make_task(assigned_to=user.id, created_by=manager.id, department_id=HOUSEKEEPING)

    res = await client.delete(f"/api/tasks/{assigned.id}", headers=auth_headers(user))
    assert res.status_code == 403

    res = await client.delete(f"/api/tasks/{assigned.id}", headers=auth_headers(manager))
    assert res.status_code == 200
    assert (await _fetch_tasks(assigned.id))[assigned.id].status == "cancelled"

    [entry] = await _audit_entries()
    assert entry.action == "DELETE"


@pytest.mark.asyncio
async def test_assignee_cannot_cancel_through_update(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    creator = await make_user("User", HOUSEKEEPING)
    task = await make_task(assigned_to=user.id, created_by=creator.id, department_id=HOUSEKEEPING)

    res = await client.put(f"/api/tasks/{task.id}", json={"status": "cancelled"}, headers=auth_headers(user))
    assert res.status_code == 403
    assert (await _fetch_tasks(task.id))[task.id].status == "pending"

    # the assignee can still move the task along
    res = await client.put(f"/api/tasks/{task.id}", json={"status": "in_progress"}, headers=auth_headers(user))
    assert res.status_code == 200

    res = await client.put(f"/api/tasks/{task.id}", json={"status": "cancelled"}, headers=auth_headers(creator))
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"


# -------------------------------------------------------------------
# BULK
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_bulk_complete_rejects_already_completed(client, make_user, make_task, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    done = await make_task(department_id=HOUSEKEEPING, status="completed")
    open_ = await make_task(department_id=HOUSEKEEPING)

    res = await client.post(
        "/api/tasks/bulk-complete", json={"task_ids": [done.id, open_.id]}, headers=auth_headers(manager)
    )
    assert res.status_code == 409
    assert "1 task(s)" in res.json()["detail"]

    rows = await _fetch_tasks(done.id, open_.id)
    assert rows[open_.id].status == "pending"
    assert await _audit_entries() == []


@pytest.mark.asyncio
async def test_bulk_complete_is_idempotent(client, make_user, make_task, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    a = await make_task(department_id=HOUSEKEEPING)
    b = await make_task(department_id=HOUSEKEEPING, status="in_progress")
    payload = {"task_ids": [a.id, b.id]}

    res = await client.post("/api/tasks/bulk-complete", json=payload, headers=auth_headers(manager))
    assert res.status_code == 200
    body = res.json()
    assert body["updated_count"] == 2
    assert {t["status"] for t in body["tasks"]} == {"completed"}

    [entry] = await _audit_entries()
    assert entry.details["sensitive_action"] == "bulk_update"
    assert entry.details["metadata"]["count"] == 2
    assert entry.old_values == {"status": {a.id: "pending", b.id: "in_progress"}}

    res = await client.post("/api/tasks/bulk-complete", json=payload, headers=auth_headers(manager))
    assert res.status_code == 409
    assert "2 task(s)" in res.json()["detail"]
    assert len(await _audit_entries()) == 1


@pytest.mark.asyncio
async def test_bulk_delete_partial_authorization(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    manager = await make_user("Manager", HOUSEKEEPING)
    a = await make_task(created_by=user.id, department_id=HOUSEKEEPING)
    b = await make_task(assigned_to=user.id, created_by=manager.id, department_id=HOUSEKEEPING)
    c = await make_task(assigned_to=user.id, created_by=manager.id, department_id=HOUSEKEEPING)

    res = await client.post(
        "/api/tasks/bulk-delete", json={"task_ids": [a.id, b.id, c.id]}, headers=auth_headers(user)
    )
    assert res.status_code == 403
    detail = res.json()["detail"]
    assert "2 task(s)" in detail
    # the count is reported, never the ids
    assert b.id not in detail and c.id not in detail

    assert len(await _fetch_tasks(a.id, b.id, c.id)) == 3
    assert await _audit_entries() == []


@pytest.mark.asyncio
async def test_bulk_delete_with_inaccessible_id(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    mine = await make_task(created_by=user.id, department_id=HOUSEKEEPING)
    hidden = await make_task(department_id=OPERATIONS)

    res = await client.post(
        "/api/tasks/bulk-delete", json={"task_ids": [mine.id, hidden.id]}, headers=auth_headers(user)
    )
    assert res.status_code == 404
    assert len(await _fetch_tasks(mine.id, hidden.id)) == 2


@pytest.mark.asyncio
async def test_bulk_delete_success_writes_aggregate_entry(client, make_user, make_task, auth_headers):
    admin = await make_user("Admin")
    a = await make_task(department_id=HOUSEKEEPING)
    b = await make_task(department_id=OPERATIONS)

    res = await client.post(
        "/api/tasks/bulk-delete", json={"task_ids": [a.id, b.id]}, headers=auth_headers(admin)
    )
    assert res.status_code == 200
    assert res.json() == {"deleted_count": 2}
    assert await _fetch_tasks(a.id, b.id) == {}

    [entry] = await _audit_entries()
    assert entry.details["sensitive_action"] == "bulk_delete"
    assert sorted(entry.details["metadata"]["task_ids"]) == sorted([a.id, b.id])


@pytest.mark.asyncio
async def test_bulk_requires_ids(client, make_user, auth_headers):
    admin = await make_user("Admin")
    res = await client.post("/api/tasks/bulk-complete", json={"task_ids": []}, headers=auth_headers(admin))
    assert res.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["/api/tasks/bulk-complete", "/api/tasks/bulk-delete"])
async def test_bulk_rejects_duplicate_ids(client, make_user, make_task, auth_headers, endpoint):
    admin = await make_user("Admin")
    task = await make_task(department_id=HOUSEKEEPING)

    res = await client.post(endpoint, json={"task_ids": [task.id, task.id]}, headers=auth_headers(admin))
    assert res.status_code == 404
    assert res.json()["detail"] == "Some ids not found or inaccessible"

    rows = await _fetch_tasks(task.id)
    assert rows[task.id].status == "pending"
    assert await _audit_entries() == []
