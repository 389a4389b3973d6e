# app/core/database.py

import ssl
from dotenv import load_dotenv
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text

from app.core.config import settings

# ----------------------------------------------------
# Load environment
# ----------------------------------------------------
load_dotenv()
DATABASE_URL = settings.DATABASE_URL

# Render/Heroku hand out postgres:// but the async driver needs its own scheme
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+asyncpg://", 1)


# ----------------------------------------------------
# SSL for the Supabase pooler
# ----------------------------------------------------
def make_ssl() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if not settings.DB_SSL_VERIFY:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


# ----------------------------------------------------
# Engine
# ----------------------------------------------------
if DATABASE_URL.startswith("sqlite"):
    logger.info("Configuring Database (SQLite)")
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        # in-memory databases only live as long as their single connection
        poolclass=StaticPool if ":memory:" in DATABASE_URL else NullPool,
    )
else:
    logger.info("Configuring Database (Pooler Mode)")
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        future=True,
        connect_args={
            "ssl": make_ssl(),
            "statement_cache_size": 0,           # disable prepared statements
            "prepared_statement_name_func": None # prevent SQLAlchemy from naming statements
        },
        pool_pre_ping=True,
        poolclass=NullPool,       # the Supabase pooler does the pooling
    )


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
async def init_db():
    # make sure every table is registered on the metadata
    from app.models import audit, clock_session, department, feedback, reminder, sop, task, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


# ----------------------------------------------------
# Test Connection
# ----------------------------------------------------
async def test_connection():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        logger.debug("DB Connection OK")
