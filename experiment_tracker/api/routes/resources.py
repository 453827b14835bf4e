from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from experiment_tracker.api.dependencies import get_request_id
from experiment_tracker.core.errors import DuplicateError, NotFoundError, PreconditionFailed
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.resources import (
    create_resource,
    delete_resource,
    get_resource_or_404,
    list_resources,
    update_resource,
)
from experiment_tracker.schemas.request_schemas import CreateResourceRequest, UpdateResourceRequest
from experiment_tracker.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/resources")
async def get_resources(
    include_availability: bool = Query(default=False, alias="includeAvailability"),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.resources.list", request_id=request_id, include_availability=include_availability)
    data = await list_resources(include_availability=include_availability)
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/resources", status_code=201)
async def post_resource(request: CreateResourceRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.resources.create", request_id=request_id, resource_id=request.resource_id)
    try:
        resource = await create_resource(request)
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=resource, request_id=request_id)


@router.get("/resources/{resource_id}")
async def get_resource(resource_id: str, request_id: str = Depends(get_request_id)):
    logger.info("api.resources.get", request_id=request_id, resource_id=resource_id)
    try:
        resource = await get_resource_or_404(resource_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    return response_envelope(True, data=resource, request_id=request_id)


@router.put("/resources/{resource_id}")
async def put_resource(resource_id: str, request: UpdateResourceRequest, request_id: str = Depends(get_request_id)):
    logger.info("api.resources.update", request_id=request_id, resource_id=resource_id)
    try:
        resource = await update_resource(resource_id, request)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    return response_envelope(True, data=resource, request_id=request_id)


@router.delete("/resources/{resource_id}")
async def remove_resource(resource_id: str, request_id: str = Depends(get_request_id)):
    logger.warning("api.resources.delete", request_id=request_id, resource_id=resource_id)
    try:
        details = await delete_resource(resource_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=error_payload(exc.code, exc.message)) from exc
    except PreconditionFailed as exc:
        raise HTTPException(status_code=400, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    data = {"message": "Resource deleted successfully", "details": details}
    return response_envelope(True, data=data, request_id=request_id)
