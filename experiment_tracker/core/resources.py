from __future__ import annotations

from typing import Any

from experiment_tracker.config.settings import settings
from experiment_tracker.core.constants import ACTIVE_STATUSES
from experiment_tracker.core.errors import DuplicateError, NotFoundError, PreconditionFailed
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.scheduling import summarize_resource_availability
from experiment_tracker.db.repository import ExperimentRepository, ResourceRepository
from experiment_tracker.schemas.request_schemas import CreateResourceRequest, UpdateResourceRequest

logger = get_logger(__name__)


def _not_found(row_id: str) -> NotFoundError:
    return NotFoundError(f"Resource {row_id} does not exist", code="RESOURCE_NOT_FOUND")


def _duplicate(resource_id: str) -> DuplicateError:
    return DuplicateError(
        "Resource with this ID already exists",
        code="RESOURCE_EXISTS",
        details={"resourceId": resource_id},
    )


async def get_resource_or_404(row_id: str) -> dict[str, Any]:
    resource = await ResourceRepository.get(row_id)
    if resource is None:
        raise _not_found(row_id)
    return resource


async def list_resources(include_availability: bool = False) -> dict[str, Any]:
    resources = await ResourceRepository.list()
    if not include_availability:
        return {"resources": resources}
    experiments = await ExperimentRepository.list_active(ACTIVE_STATUSES)
    return summarize_resource_availability(resources, experiments, limit=settings.UTILIZATION_LIMIT)


async def create_resource(request: CreateResourceRequest) -> dict[str, Any]:
    if await ResourceRepository.get_by_resource_id(request.resource_id):
        raise _duplicate(request.resource_id)
    return await ResourceRepository.create(
        resource_id=request.resource_id,
        name=request.name,
        type=request.type,
        total_units=request.total_units,
        status=request.status.value,
        description=request.description,
    )


async def update_resource(row_id: str, request: UpdateResourceRequest) -> dict[str, Any]:
    current = await get_resource_or_404(row_id)
    values = request.model_dump(exclude_unset=True)
    new_key = values.get("resource_id")
    if new_key and new_key != current["resourceId"]:
        if await ResourceRepository.get_by_resource_id(new_key):
            raise _duplicate(new_key)
    if not values:
        return current
    updated = await ResourceRepository.update(row_id, values)
    if updated is None:
        raise _not_found(row_id)
    if new_key and new_key != current["resourceId"]:
        logger.info("resource.rekeyed", id=row_id, old=current["resourceId"], new=new_key)
    return updated


async def delete_resource(row_id: str) -> dict[str, Any]:
    resource = await get_resource_or_404(row_id)
    active = await ExperimentRepository.count(resource=resource["resourceId"], statuses=ACTIVE_STATUSES)
    if active > 0:
        raise PreconditionFailed(
            "Cannot delete resource with active experiments",
            code="RESOURCE_IN_USE",
            details={
                "activeExperimentCount": active,
                "message": "Complete or cancel active experiments before deleting this resource",
            },
        )
    total = await ExperimentRepository.count(resource=resource["resourceId"])
    if not await ResourceRepository.delete(row_id):
        raise _not_found(row_id)
    return {"deletedResource": resource["name"], "totalExperimentsUsingResource": total}
