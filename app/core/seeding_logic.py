# app/core/seeding_logic.py

from loguru import logger
from sqlmodel import select

from app.core.config import settings
from app.core.constants import DEPARTMENT_ID_MAP
from app.core.database import AsyncSessionLocal
from app.core.roles import Role
from app.models.department import Department
from app.models.user import User
from app.services.audit_service import audit_logger
from app.services.user_service import get_user_by_email


# ----------------------------------------------------------------
# SEEDING FUNCTIONS
# ----------------------------------------------------------------
async def seed_all():
    """Master function to run all seeding logic."""
    async with AsyncSessionLocal() as session:
        try:
            await seed_departments(session)
            created_admin = await seed_admin_user(session)
            await session.commit()
            logger.success("Seeding complete.")
        except Exception as e:
            logger.error(f"Seeding failed: {e}")
            await session.rollback()
            return

    if created_admin:
        # no interactive caller exists yet, so the bootstrap is attributed to "system"
        await audit_logger.record_system(
            "bootstrap_admin_created",
            table_name="users",
            record_id=created_admin.id,
            metadata={"role": created_admin.role},
        )


async def seed_departments(session):
    for name, dept_id in DEPARTMENT_ID_MAP.items():
        existing = await session.get(Department, dept_id)
        if not existing:
            logger.info(f"Creating Department: {name} ({dept_id})")
            session.add(Department(id=dept_id, name=name))
        elif existing.name != name:
            logger.warning(f"Renaming department {dept_id}: {existing.name} -> {name}")
            existing.name = name
            session.add(existing)
    await session.flush()


async def seed_admin_user(session) -> User | None:
    if not settings.SUPER_ADMIN_EMAIL:
        logger.warning("SUPER_ADMIN_EMAIL not set; skipping bootstrap user.")
        return None

    if await get_user_by_email(session, settings.SUPER_ADMIN_EMAIL):
        logger.info("Super Admin already exists. Skipping.")
        return None

    user = User(
        full_name=settings.SUPER_ADMIN_NAME or "Super Admin",
        email=settings.SUPER_ADMIN_EMAIL,
        role=Role.God.value,
    )
    session.add(user)
    await session.flush()
    logger.success(f"Super Admin created: {user.email}")
    return user
