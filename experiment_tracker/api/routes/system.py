from __future__ import annotations

import sqlite3

from fastapi import APIRouter, Depends

from experiment_tracker.api.dependencies import get_request_id
from experiment_tracker.config.settings import settings
from experiment_tracker.core.experiments import dashboard_stats
from experiment_tracker.core.logger import get_logger
from experiment_tracker.db.database import get_connection
from experiment_tracker.schemas.response_schemas import response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/system/health")
async def get_health(request_id: str = Depends(get_request_id)):
    logger.info("api.system.health", request_id=request_id)
    db_status = "up"
    db_size_mb = 0.0
    try:
        conn = get_connection()
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
        db_path = settings.state_db_path
        if db_path.exists():
            db_size_mb = round(db_path.stat().st_size / 1e6, 2)
    except (sqlite3.Error, OSError):
        logger.exception("system.health.database_down", request_id=request_id)
        db_status = "down"

    data = {
        "status": "healthy" if db_status == "up" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
        "components": {
            "api": {"status": "up"},
            "database": {"status": db_status, "type": "sqlite", "size_mb": db_size_mb},
            "auth": {"enabled": settings.AUTH_ENABLED, "provider": settings.oauth_provider_normalized},
        },
    }
    return response_envelope(True, data=data, request_id=request_id)


@router.get("/system/stats")
async def get_stats(request_id: str = Depends(get_request_id)):
    logger.info("api.system.stats", request_id=request_id)
    data = await dashboard_stats()
    return response_envelope(True, data=data, request_id=request_id)
