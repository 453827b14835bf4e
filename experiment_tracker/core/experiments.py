from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from experiment_tracker.config.settings import settings
from experiment_tracker.core.constants import ExperimentStatus
from experiment_tracker.core.errors import NotFoundError, PreconditionFailed
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.resources import list_resources
from experiment_tracker.core.scheduling import (
    ConflictReport,
    build_schedule,
    check_conflicts,
    parse_day,
)
from experiment_tracker.db.repository import ExperimentLogRepository, ExperimentRepository
from experiment_tracker.schemas.request_schemas import (
    ConflictCheckRequest,
    CreateExperimentRequest,
    CreateLogRequest,
    UpdateExperimentRequest,
)

logger = get_logger(__name__)


def _not_found(experiment_id: str) -> NotFoundError:
    return NotFoundError(f"Experiment {experiment_id} does not exist", code="EXPERIMENT_NOT_FOUND")


async def get_experiment_or_404(experiment_id: str, log_limit: int = 0) -> dict[str, Any]:
    experiment = await ExperimentRepository.get(experiment_id)
    if experiment is None:
        raise _not_found(experiment_id)
    if log_limit:
        experiment["logs"] = await ExperimentLogRepository.latest(experiment_id, log_limit)
    return experiment


async def create_experiment(request: CreateExperimentRequest) -> dict[str, Any]:
    experiment = await ExperimentRepository.create(request.storage_values())
    experiment["logs"] = []
    return experiment


async def update_experiment(experiment_id: str, request: UpdateExperimentRequest) -> dict[str, Any]:
    current = await ExperimentRepository.get(experiment_id)
    if current is None:
        raise _not_found(experiment_id)

    values = request.storage_values(exclude_unset=True)
    start = values["start_date"] if "start_date" in values else parse_day(current.get("startDate"))
    end = values["end_date"] if "end_date" in values else parse_day(current.get("endDate"))
    if start is not None and end is not None and start > end:
        raise PreconditionFailed(
            "endDate must be on or after startDate",
            code="VALIDATION_FAILED",
            details={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
    if values:
        updated = await ExperimentRepository.update(experiment_id, values)
        if updated is None:
            raise _not_found(experiment_id)
    return await get_experiment_or_404(experiment_id, log_limit=settings.EXPERIMENT_DETAIL_LOG_PREVIEW)


async def delete_experiment(experiment_id: str) -> None:
    if not await ExperimentRepository.delete(experiment_id):
        raise _not_found(experiment_id)


async def list_experiments(
    search: str | None = None,
    status: str | None = None,
    resource: str | None = None,
    researcher: str | None = None,
    tags: list[str] | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 50,
) -> tuple[list[dict[str, Any]], int]:
    rows, total = await ExperimentRepository.list(
        search=search,
        status=status,
        resource=resource,
        researcher=researcher,
        tags=tags,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=(page - 1) * limit,
    )
    for row in rows:
        row["logs"] = await ExperimentLogRepository.latest(row["id"], settings.EXPERIMENT_LIST_LOG_PREVIEW)
    return rows, total


async def add_log(experiment_id: str, request: CreateLogRequest) -> dict[str, Any]:
    await get_experiment_or_404(experiment_id)
    return await ExperimentLogRepository.add(
        experiment_id,
        message=request.message,
        level=request.level.value,
        metadata=request.metadata,
    )


async def list_experiment_logs(
    experiment_id: str,
    level: str | None = None,
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 100,
) -> tuple[dict[str, Any], list[dict[str, Any]], int]:
    experiment = await get_experiment_or_404(experiment_id)
    logs, total, _ = await ExperimentLogRepository.search(
        experiment_id=experiment_id,
        level=level,
        sort_order=sort_order,
        limit=limit,
        offset=(page - 1) * limit,
    )
    for log in logs:
        log.pop("experiment", None)
    return {"id": experiment["id"], "name": experiment["name"]}, logs, total


async def check_schedule_conflicts(request: ConflictCheckRequest) -> ConflictReport:
    candidates = await ExperimentRepository.list_scheduled(resource=request.assigned_resource)
    report = check_conflicts(
        request.start_date,
        request.end_date,
        request.resource_utilization,
        candidates,
        exclude_experiment_id=request.exclude_experiment_id,
        limit=settings.UTILIZATION_LIMIT,
    )
    logger.info(
        "schedule.conflicts.checked",
        resource=request.assigned_resource,
        conflicts=len(report.conflicts),
        total_utilization=report.total_utilization,
        over_limit=report.utilization_over_limit,
    )
    return report


async def get_schedule(
    start: date | None = None,
    end: date | None = None,
    resource: str | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    if (start is None) != (end is None):
        raise PreconditionFailed(
            "startDate and endDate must be provided together",
            code="VALIDATION_FAILED",
        )
    if start is not None and end is not None and start > end:
        raise PreconditionFailed(
            "endDate must be on or after startDate",
            code="VALIDATION_FAILED",
            details={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
    experiments = await ExperimentRepository.list_scheduled(resource=resource, tags=tags)
    return build_schedule(experiments, start, end)


async def dashboard_stats() -> dict[str, Any]:
    availability = await list_resources(include_availability=True)
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)
    return {
        "totalExperiments": await ExperimentRepository.count(),
        "runningExperiments": await ExperimentRepository.count(statuses=(ExperimentStatus.IN_PROGRESS.value,)),
        "completedToday": await ExperimentRepository.count(
            statuses=(ExperimentStatus.COMPLETED.value,),
            updated_since=start_of_day.isoformat(),
        ),
        "failedThisWeek": await ExperimentRepository.count(
            statuses=(ExperimentStatus.FAILED.value,),
            updated_since=week_ago.isoformat(),
        ),
        "resourceUtilization": _mean_usage(availability["resources"]),
    }


def _mean_usage(resources: list[dict[str, Any]]) -> int:
    if not resources:
        return 0
    return round(sum(row["calculatedUsage"] for row in resources) / len(resources))
