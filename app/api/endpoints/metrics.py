# app/api/endpoints/metrics.py

import time

import psutil
from fastapi import APIRouter, Depends, Query, Response
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.core.database import test_connection
from app.core.performance import performance_buffer
from app.core.principal import Principal
from app.core.rbac import require_admin

router = APIRouter(prefix="/api/metrics", tags=["System & Metrics"])

# Track when the module is loaded for uptime calculation
START_TIME = time.time()


# ===================================================================
# 1. GENERAL SYSTEM HEALTH (public)
# ===================================================================
@router.get("/health")
async def system_health():
    db_start = time.time()
    try:
        await test_connection()
        db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except Exception:
        logger.exception("Health check: database unreachable")
        db_status = "Error"
        db_latency = 0

    return {
        "status": "Online",
        "uptime_seconds": int(time.time() - START_TIME),
        "database": db_status,
        "db_latency": db_latency,
    }


# ===================================================================
# 2. HOST + REQUEST PERFORMANCE (Admin only)
# ===================================================================
@router.get("/performance")
async def performance_stats(
    limit: int = Query(100, ge=1, le=1000),
    endpoint: str | None = Query(None),
    _: Principal = Depends(require_admin),
):
    try:
        disk_usage = psutil.disk_usage("/").percent
    except OSError:
        disk_usage = 0

    return {
        "cpu": psutil.cpu_percent(interval=None),
        "ram": psutil.virtual_memory().percent,
        "disk": disk_usage,
        "requests": {
            "buffered": len(performance_buffer),
            "capacity": performance_buffer.capacity,
            "average_ms": round(performance_buffer.average_ms(endpoint), 2),
            "recent": performance_buffer.recent(limit),
        },
    }


# ===================================================================
# 3. PROMETHEUS SCRAPE (Admin only)
# ===================================================================
@router.get("/prometheus")
async def prometheus_metrics(_: Principal = Depends(require_admin)):
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
