from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from experiment_tracker.api.dependencies import get_request_id
from experiment_tracker.config.settings import settings
from experiment_tracker.core.constants import LogLevel
from experiment_tracker.core.logger import get_logger
from experiment_tracker.db.repository import ExperimentLogRepository
from experiment_tracker.schemas.response_schemas import pagination, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/logs")
async def get_logs(
    experiment_id: str | None = Query(default=None, alias="experimentId"),
    level: LogLevel | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=settings.MAX_PAGE_LIMIT),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.logs.list", request_id=request_id, experiment_id=experiment_id, log_level=level, page=page)
    logs, total, level_counts = await ExperimentLogRepository.search(
        experiment_id=experiment_id,
        level=level.value if level else None,
        search=search,
        sort_order=sort_order,
        limit=limit,
        offset=(page - 1) * limit,
    )
    data = {
        "logs": logs,
        "pagination": pagination(page, limit, total),
        "summary": {"totalLogs": total, "levelCounts": level_counts},
    }
    return response_envelope(True, data=data, request_id=request_id)
