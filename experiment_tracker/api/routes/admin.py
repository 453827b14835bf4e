from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from experiment_tracker.api.dependencies import get_request_id, require_admin
from experiment_tracker.core.access_gate import access_gate
from experiment_tracker.core.errors import DuplicateError
from experiment_tracker.core.logger import get_logger
from experiment_tracker.db.repository import UserRepository
from experiment_tracker.schemas.request_schemas import AuthorizeUserRequest
from experiment_tracker.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/admin/users")
async def get_users(
    request_id: str = Depends(get_request_id),
    admin: dict[str, Any] | None = Depends(require_admin),
):
    logger.info("api.admin.users.list", request_id=request_id, admin=(admin or {}).get("githubUsername"))
    users = await UserRepository.list()
    return response_envelope(True, data={"users": users, "total": len(users)}, request_id=request_id)


@router.post("/admin/users")
async def post_user_authorization(
    request: AuthorizeUserRequest,
    request_id: str = Depends(get_request_id),
    admin: dict[str, Any] | None = Depends(require_admin),
):
    logger.info(
        "api.admin.users.authorize",
        request_id=request_id,
        admin=(admin or {}).get("githubUsername"),
        github_username=request.github_username,
        email=request.email,
        authorize=request.authorize,
    )
    try:
        user = await access_gate.set_authorization(request.github_username, request.email, request.authorize)
    except DuplicateError as exc:
        raise HTTPException(status_code=409, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    action = "authorized" if request.authorize else "unauthorized"
    data = {"message": f"User {action} successfully", "user": user}
    return response_envelope(True, data=data, request_id=request_id)
