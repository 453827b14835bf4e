from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from experiment_tracker.api.dependencies import get_request_id
from experiment_tracker.core.errors import DuplicateError, NotFoundError, PreconditionFailed
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.researchers import (
    create_researcher,
    delete_researcher,
    get_researcher_or_404,
    list_researchers,
    update_researcher,
)
from experiment_tracker.schemas.request_schemas import CreateResearcherRequest, UpdateResearcherRequest
from experiment_tracker.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/researchers")
async def get_researchers(
    search: str | None = Query(default=None, max_length=200),
    sort_by: Literal["name", "email", "department", "createdAt"] = Query(default="name", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.researchers.list", request_id=request_id, search=search)
    researchers = await list_researchers(search=search, sort_by=sort_by, sort_order=sort_order)
    return response_envelope(True, data={"researchers": researchers, "total": len(researchers)}, request_id=request_id)


@router.post("/researchers", status_code=201)
async def post_researcher(request: CreateResearcherRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.researchers.create", request_id=request_id, name=request.name)
    try:
        researcher = await create_researcher(request)
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=researcher, request_id=request_id)


@router.get("/researchers/{researcher_id}")
async def get_researcher(researcher_id: str, request_id: str = Depends(get_request_id)):
    logger.info("api.researchers.get", request_id=request_id, researcher_id=researcher_id)
    try:
        researcher = await get_researcher_or_404(researcher_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    return response_envelope(True, data=researcher, request_id=request_id)


@router.put("/researchers/{researcher_id}")
async def put_researcher(researcher_id: str, request: UpdateResearcherRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.researchers.update", request_id=request_id, researcher_id=researcher_id)
    try:
        researcher = await update_researcher(researcher_id, request)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=researcher, request_id=request_id)


@router.delete("/researchers/{researcher_id}")
async def remove_researcher(researcher_id: str, request_id: str = Depends(get_request_id)):
    logger.warning("api.researchers.delete", request_id=request_id, researcher_id=researcher_id)
    try:
        await delete_researcher(researcher_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    except PreconditionFailed as exc:
        raise HTTPException(status_code=400, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    data = {"researcherId": researcher_id, "message": "Researcher deleted successfully"}
    return response_envelope(True, data=data, request_id=request_id)
