from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from experiment_tracker.config.settings import settings
from experiment_tracker.core.access_gate import AccessGate
from experiment_tracker.schemas.response_schemas import error_payload


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", "")
    return rid or "req_local"


def get_current_user(request: Request) -> dict[str, Any] | None:
    return getattr(request.state, "current_user", None)


def require_admin(request: Request) -> dict[str, Any] | None:
    user = get_current_user(request)
    if not settings.AUTH_ENABLED:
        return user
    if user is None or not AccessGate.is_admin(user):
        raise HTTPException(
            status_code=403,
            detail=error_payload("FORBIDDEN", "Administrator access is required"),
        )
    return user


def split_csv(value: str | None) -> list[str]:
    return [item.strip() for item in str(value or "").split(",") if item.strip()]
