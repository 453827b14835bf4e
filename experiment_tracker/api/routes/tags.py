from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from experiment_tracker.api.dependencies import get_request_id
from experiment_tracker.core.constants import TagCategory
from experiment_tracker.core.errors import DuplicateError
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.tags import create_tag, list_tags
from experiment_tracker.schemas.request_schemas import CreateTagRequest
from experiment_tracker.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/tags")
async def get_tags(category: TagCategory | None = Query(default=None), request_id: str = Depends(get_request_id)):
    logger.info("api.tags.list", request_id=request_id, category=category)
    data = await list_tags(category.value if category else None)
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/tags", status_code=201)
async def post_tag(request: CreateTagRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.tags.create", request_id=request_id, name=request.name, category=request.category)
    try:
        tag = await create_tag(request)
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=tag, request_id=request_id)
