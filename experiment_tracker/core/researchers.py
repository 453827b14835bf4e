from __future__ import annotations

from typing import Any

from experiment_tracker.core.constants import ACTIVE_STATUSES
from experiment_tracker.core.errors import DuplicateError, NotFoundError, PreconditionFailed
from experiment_tracker.core.logger import get_logger
from experiment_tracker.db.repository import ExperimentRepository, ResearcherRepository
from experiment_tracker.schemas.request_schemas import CreateResearcherRequest, UpdateResearcherRequest

logger = get_logger(__name__)


def _not_found(row_id: str) -> NotFoundError:
    return NotFoundError(f"Researcher {row_id} does not exist", code="RESEARCHER_NOT_FOUND")


def _duplicate(name: str) -> DuplicateError:
    return DuplicateError("Researcher with this name already exists", code="RESEARCHER_EXISTS", details={"name": name})


async def get_researcher_or_404(row_id: str) -> dict[str, Any]:
    researcher = await ResearcherRepository.get(row_id)
    if researcher is None:
        raise _not_found(row_id)
    return researcher


async def list_researchers(search: str | None = None, sort_by: str = "name", sort_order: str = "asc") -> list[dict[str, Any]]:
    return await ResearcherRepository.list(
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        active_statuses=ACTIVE_STATUSES,
    )


async def create_researcher(request: CreateResearcherRequest) -> dict[str, Any]:
    if await ResearcherRepository.get_by_name(request.name):
        raise _duplicate(request.name)
    return await ResearcherRepository.create(request.name, email=request.email, department=request.department)


async def update_researcher(row_id: str, request: UpdateResearcherRequest) -> dict[str, Any]:
    current = await get_researcher_or_404(row_id)
    values = request.model_dump(exclude_unset=True)
    new_name = values.get("name")
    renamed = bool(new_name) and new_name != current["name"]
    if renamed and await ResearcherRepository.get_by_name(new_name):
        raise _duplicate(new_name)
    if not values:
        return current
    updated = await ResearcherRepository.update(row_id, values)
    if updated is None:
        raise _not_found(row_id)
    if renamed:
        logger.info("researcher.renamed", id=row_id, old=current["name"], new=new_name)
    return updated


async def delete_researcher(row_id: str) -> None:
    researcher = await get_researcher_or_404(row_id)
    count = await ExperimentRepository.count(researcher=researcher["name"])
    if count > 0:
        raise PreconditionFailed(
            "Cannot delete researcher with existing experiments",
            code="RESEARCHER_HAS_EXPERIMENTS",
            details={"experimentCount": count},
        )
    if not await ResearcherRepository.delete(row_id):
        raise _not_found(row_id)
