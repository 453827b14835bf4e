from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from experiment_tracker.api.dependencies import get_request_id, split_csv
from experiment_tracker.config.settings import settings
from experiment_tracker.core.constants import ExperimentStatus, LogLevel
from experiment_tracker.core.errors import NotFoundError, PreconditionFailed
from experiment_tracker.core.experiments import (
    add_log,
    check_schedule_conflicts,
    create_experiment,
    delete_experiment,
    get_experiment_or_404,
    get_schedule,
    list_experiment_logs,
    list_experiments,
    update_experiment,
)
from experiment_tracker.core.logger import get_logger
from experiment_tracker.schemas.request_schemas import (
    ConflictCheckRequest,
    CreateExperimentRequest,
    CreateLogRequest,
    UpdateExperimentRequest,
)
from experiment_tracker.schemas.response_schemas import error_payload, pagination, response_envelope

router = APIRouter()
logger = get_logger(__name__)

ExperimentSortField = Literal[
    "createdAt", "updatedAt", "name", "status", "researcher", "priority", "startDate", "endDate", "assignedResource"
]


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=error_payload(exc.code, exc.message))


@router.get("/experiments/schedule")
async def get_experiment_schedule(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    view: Literal["week", "month"] = Query(default="week"),
    resource: str | None = Query(default=None),
    tags: str | None = Query(default=None),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.schedule.get", request_id=request_id, start=str(start_date), end=str(end_date), resource=resource)
    try:
        data = await get_schedule(start_date, end_date, resource=resource, tags=split_csv(tags))
    except PreconditionFailed as exc:
        raise HTTPException(status_code=400, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    data["view"] = view
    data["range"] = {
        "startDate": start_date.isoformat() if start_date else None,
        "endDate": end_date.isoformat() if end_date else None,
    }
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/experiments/schedule/conflicts")
async def post_schedule_conflicts(request: ConflictCheckRequest, request_id: str = Depends(get_request_id)):
    logger.info(
        "api.schedule.conflicts",
        request_id=request_id,
        resource=request.assigned_resource,
        utilization=request.resource_utilization,
        exclude=request.exclude_experiment_id,
    )
    report = await check_schedule_conflicts(request)
    return response_envelope(True, data=report.to_payload(), request_id=request_id)


@router.get("/experiments")
async def get_experiments(
    search: str | None = Query(default=None, max_length=200),
    status: ExperimentStatus | None = Query(default=None),
    resource: str | None = Query(default=None),
    researcher: str | None = Query(default=None),
    tags: str | None = Query(default=None),
    sort_by: ExperimentSortField = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.experiments.list", request_id=request_id, search=search, status=status, page=page, limit=limit)
    rows, total = await list_experiments(
        search=search,
        status=status.value if status else None,
        resource=resource,
        researcher=researcher,
        tags=split_csv(tags),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    data = {"experiments": rows, "pagination": pagination(page, limit, total)}
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/experiments", status_code=201)
async def post_experiment(request: CreateExperimentRequest, request_id: str = Depends(get_request_id)):
    logger.info(
        "api.experiments.create",
        request_id=request_id,
        researcher=request.researcher,
        assigned_resource=request.assigned_resource,
    )
    experiment = await create_experiment(request)
    return response_envelope(True, data=experiment, request_id=request_id)


@router.get("/experiments/{experiment_id}")
async def get_experiment(experiment_id: str, request_id: str = Depends(get_request_id)):
    logger.info("api.experiments.get", request_id=request_id, experiment_id=experiment_id)
    try:
        experiment = await get_experiment_or_404(experiment_id, log_limit=settings.EXPERIMENT_DETAIL_LOG_PREVIEW)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return response_envelope(True, data=experiment, request_id=request_id)


@router.put("/experiments/{experiment_id}")
async def put_experiment(experiment_id: str, request: UpdateExperimentRequest, request_id: str = Depends(get_request_id)):
    logger.info(
        "api.experiments.update",
        request_id=request_id,
        experiment_id=experiment_id,
        fields=sorted(request.model_fields_set),
    )
    try:
        experiment = await update_experiment(experiment_id, request)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    except PreconditionFailed as exc:
        raise HTTPException(status_code=400, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=experiment, request_id=request_id)


@router.delete("/experiments/{experiment_id}")
async def remove_experiment(experiment_id: str, request_id: str = Depends(get_request_id)):
    logger.warning("api.experiments.delete", request_id=request_id, experiment_id=experiment_id)
    try:
        await delete_experiment(experiment_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    data = {"experimentId": experiment_id, "message": "Experiment deleted successfully"}
    return response_envelope(True, data=data, request_id=request_id)


@router.get("/experiments/{experiment_id}/logs")
async def get_experiment_logs(
    experiment_id: str,
    level: LogLevel | None = Query(default=None),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=settings.MAX_PAGE_LIMIT),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.experiments.logs", request_id=request_id, experiment_id=experiment_id, log_level=level, page=page)
    try:
        experiment, logs, total = await list_experiment_logs(
            experiment_id,
            level=level.value if level else None,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    data = {"logs": logs, "experiment": experiment, "pagination": pagination(page, limit, total)}
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/experiments/{experiment_id}/logs", status_code=201)
async def post_experiment_log(experiment_id: str, request: CreateLogRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.experiments.log_add", request_id=request_id, experiment_id=experiment_id, log_level=request.level)
    try:
        log = await add_log(experiment_id, request)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return response_envelope(True, data=log, request_id=request_id)
