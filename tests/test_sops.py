import pytest
from sqlmodel import select

from app.core.database import AsyncSessionLocal
from app.models.audit import AuditLog
from app.models.sop import Sop

HOUSEKEEPING = "dept_002"
OPERATIONS = "dept_005"


@pytest.fixture
def make_sop(db_session):
    async def _make(**kw) -> Sop:
        kw.setdefault("title", "Room turnover checklist")
        kw.setdefault("content", "1. Strip beds\n2. Sanitize surfaces")
        row = Sop(**kw)
        db_session.add(row)
        await db_session.commit()
        await db_session.refresh(row)
        return row

    return _make


async def _audit_entries():
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(AuditLog).where(AuditLog.table_name == "sops"))
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_user_sees_shared_active_sops_only(client, make_user, make_sop, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    dept_active = await make_sop(status="active", department_id=HOUSEKEEPING)
    org_active = await make_sop(status="active", department_id=None)
    await make_sop(status="draft", department_id=HOUSEKEEPING)
    await make_sop(status="active", department_id=OPERATIONS)

    res = await client.get("/api/sops/", headers=auth_headers(user))
    assert res.status_code == 200
    assert {r["id"] for r in res.json()} == {dept_active.id, org_active.id}


@pytest.mark.asyncio
async def test_response_carries_department_name(client, make_user, make_sop, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    sop = await make_sop(status="active", department_id=HOUSEKEEPING)

    res = await client.get(f"/api/sops/{sop.id}", headers=auth_headers(manager))
    assert res.json()["department"] == "Housekeeping"


@pytest.mark.asyncio
async def test_admin_filters_by_department_name(client, make_user, make_sop, auth_headers):
    admin = await make_user("Admin")
    await make_sop(department_id=HOUSEKEEPING)
    ops = await make_sop(department_id=OPERATIONS)

    res = await client.get("/api/sops/", params={"department": "Operations"}, headers=auth_headers(admin))
    assert [r["id"] for r in res.json()] == [ops.id]


@pytest.mark.asyncio
async def test_user_cannot_create_sops(client, make_user, auth_headers):
    user = await make_user("User", HOUSEKEEPING)
    res = await client.post("/api/sops/", json={"title": "x", "content": "y"}, headers=auth_headers(user))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_manager_creates_sop_in_own_department(client, make_user, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)

    res = await client.post(
        "/api/sops/",
        json={"title": "Linen handling", "content": "Gloves on", "department": "Housekeeping"},
        headers=auth_headers(manager),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["department_id"] == HOUSEKEEPING
    assert body["version"] == 1

    [entry] = await _audit_entries()
    assert entry.details["sensitive_action"] == "sop_creation"
    assert entry.user_id == manager.id

    res = await client.post(
        "/api/sops/",
        json={"title": "x", "content": "y", "department": "Operations"},
        headers=auth_headers(manager),
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_content_change_bumps_version(client, make_user, make_sop, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    sop = await make_sop(department_id=None)

    res = await client.put(
        f"/api/sops/{sop.id}", json={"content": "Revised steps"}, headers=auth_headers(manager)
    )
    assert res.status_code == 200
    assert res.json()["version"] == 2

    [entry] = await _audit_entries()
    assert entry.details["sensitive_action"] == "sop_update"
    assert entry.details["metadata"] == {"version_changed": True, "status_changed": False}

    res = await client.put(f"/api/sops/{sop.id}", json={"title": "Renamed"}, headers=auth_headers(manager))
    assert res.json()["version"] == 2


@pytest.mark.asyncio
async def test_only_admins_archive(client, make_user, make_sop, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    admin = await make_user("Admin")
    sop = await make_sop(status="active", department_id=HOUSEKEEPING)

    res = await client.delete(f"/api/sops/{sop.id}", headers=auth_headers(manager))
    assert res.status_code == 403

    res = await client.delete(f"/api/sops/{sop.id}", headers=auth_headers(admin))
    assert res.status_code == 200

    res = await client.get(f"/api/sops/{sop.id}", headers=auth_headers(admin))
    assert res.json()["status"] == "archived"


@pytest.mark.asyncio
async def test_manager_cannot_archive_through_update(client, make_user, make_sop, auth_headers):
    manager = await make_user("Manager", HOUSEKEEPING)
    sop = await make_sop(status="active", department_id=HOUSEKEEPING)

    res = await client.put(f"/api/sops/{sop.id}", json={"status": "archived"}, headers=auth_headers(manager))
    assert res.status_code == 403

    res = await client.get(f"/api/sops/{sop.id}", headers=auth_headers(manager))
    assert res.json()["status"] == "active"
    assert await _audit_entries() == []
