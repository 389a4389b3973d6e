# app/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
import sys

from app.core.config import settings
from app.core.database import test_connection, init_db
from app.core.errors import AccessError, access_error_handler
from app.core.performance import track_performance
from app.core.seeding_logic import seed_all

# Routers
from app.api.endpoints import (
    tasks as tasks_router,
    sops as sops_router,
    clock_sessions as clock_sessions_router,
    reminders as reminders_router,
    feedback as feedback_router,
    users as users_router,
    logs as logs_router,
    metrics as metrics_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    level=settings.LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="Task Hub Backend",
    version="1.0.0",
    description="Role-scoped task, SOP and time-tracking API with an audit trail.",
)

# ------------------------------------------------------------
# ERROR HANDLING
# ------------------------------------------------------------
app.add_exception_handler(AccessError, access_error_handler)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.opt(exception=exc).error(f"Storage failure on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------
app.middleware("http")(track_performance)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "*"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(tasks_router.router)
app.include_router(sops_router.router)
app.include_router(clock_sessions_router.router)
app.include_router(reminders_router.router)
app.include_router(feedback_router.router)
app.include_router(users_router.router)
app.include_router(logs_router.router)
app.include_router(metrics_router.router)


# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    logger.info("Starting Task Hub Backend...")

    try:
        await test_connection()
        logger.success("Database connection established.")
    except Exception:
        logger.exception("Startup aborted: Database connection failed.")
        return

    try:
        await init_db()
        logger.success("Database tables ready.")
    except Exception as e:
        logger.warning(f"Table initialization encountered an issue: {e}")
        return

    await seed_all()
    logger.success("Backend startup completed successfully.")


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "Task Hub Backend",
        "version": app.version,
    }
