import pytest
from sqlmodel import select

from app.core.database import AsyncSessionLocal
from app.models.audit import AuditLog
from app.models.task import Task

HOUSEKEEPING = "dept_002"
OPERATIONS = "dept_005"
WHEN = "2030-01-01T09:00:00+00:00"


@pytest.fixture
def make_task(db_session):
    async def _make(**kw) -> Task:
        row = Task(title="Replace filters", **kw)
        db_session.add(row)
        await db_session.commit()
        await db_session.refresh(row)
        return row

    return _make


# -------------------------------------------------------------------
# REMINDERS
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_reminder_on_own_task(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    task = await make_task(assigned_to=user.id, department_id=HOUSEKEEPING)

    res = await client.post(
        "/api/reminders/",
        json={"title": "Check filters", "task_id": task.id, "scheduled_for": WHEN},
        headers=auth_headers(user),
    )
    assert res.status_code == 201
    assert res.json()["user_id"] == user.id


@pytest.mark.asyncio
async def test_reminder_on_hidden_task(client, make_user, make_task, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    task = await make_task(department_id=OPERATIONS)

    res = await client.post(
        "/api/reminders/",
        json={"title": "Check filters", "task_id": task.id, "scheduled_for": WHEN},
        headers=auth_headers(user),
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_reminders_are_private(client, make_user, auth_headers):
    owner = await make_user("User", HOUSEKEEPING)
    peer = await make_user("User", HOUSEKEEPING)

    res = await client.post(
        "/api/reminders/", json={"title": "Stand-up", "scheduled_for": WHEN}, headers=auth_headers(owner)
    )
    reminder_id = res.json()["id"]

    res = await client.get(f"/api/reminders/{reminder_id}", headers=auth_headers(peer))
    assert res.status_code == 404
    res = await client.put(f"/api/reminders/{reminder_id}", json={"title": "Mine"}, headers=auth_headers(peer))
    assert res.status_code == 404

    res = await client.delete(f"/api/reminders/{reminder_id}", headers=auth_headers(owner))
    assert res.status_code == 200
    res = await client.get(f"/api/reminders/{reminder_id}", headers=auth_headers(owner))
    assert res.json()["status"] == "cancelled"


# -------------------------------------------------------------------
# FEEDBACK
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_feedback_lifecycle(client, make_user, auth_headers):
    author = await make_user("User", HOUSEKEEPING)
    subject = await make_user("User", HOUSEKEEPING)
    manager = await make_user("Manager", HOUSEKEEPING)

    res = await client.post(
        "/api/feedback/",
        json={"subject": "Great turnover", "content": "Rooms were spotless", "rating": 5,
              "target_user_id": subject.id},
        headers=auth_headers(author),
    )
    assert res.status_code == 201
    feedback_id = res.json()["id"]

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(AuditLog).where(AuditLog.record_id == feedback_id))
        [entry] = result.scalars().all()
    assert entry.details["sensitive_action"] == "feedback_creation"

    # the subject can read it but not rewrite it
    res = await client.get(f"/api/feedback/{feedback_id}", headers=auth_headers(subject))
    assert res.status_code == 200
    res = await client.put(f"/api/feedback/{feedback_id}", json={"rating": 1}, headers=auth_headers(subject))
    assert res.status_code == 403

    res = await client.get("/api/feedback/", headers=auth_headers(manager))
    assert [r["id"] for r in res.json()] == [feedback_id]

    res = await client.put(f"/api/feedback/{feedback_id}", json={"rating": 4}, headers=auth_headers(author))
    assert res.json()["rating"] == 4


@pytest.mark.asyncio
async def test_feedback_rating_bounds(client, make_user, auth_headers):
    author = await make_user("User", HOUSEKEEPING)
    res = await client.post(
        "/api/feedback/", json={"subject": "x", "content": "y", "rating": 9}, headers=auth_headers(author)
    )
    assert res.status_code == 422
