from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from experiment_tracker.api.dependencies import get_current_user, get_request_id
from experiment_tracker.config.settings import settings
from experiment_tracker.core.access_gate import AccessGate, access_gate
from experiment_tracker.core.errors import AccessDenied
from experiment_tracker.core.logger import get_logger
from experiment_tracker.schemas.request_schemas import OAuthCallbackRequest
from experiment_tracker.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


def _check_proxy_secret(value: str | None) -> None:
    expected = settings.auth_proxy_secret
    if not expected:
        return
    if not value or not hmac.compare_digest(value, expected):
        raise HTTPException(
            status_code=401,
            detail=error_payload("UNAUTHENTICATED", "Callback did not come from the trusted auth proxy"),
        )


@router.post("/auth/callback")
async def post_auth_callback(
    request: OAuthCallbackRequest,
    request_id: str = Depends(get_request_id),
    proxy_secret: str | None = Header(default=None, alias="X-Auth-Proxy-Secret"),
):
    logger.info("api.auth.callback", request_id=request_id, provider=request.provider, login=request.login)
    _check_proxy_secret(proxy_secret)
    try:
        user, token = await access_gate.sign_in(request.provider, request.login, name=request.name, email=request.email)
    except AccessDenied as exc:
        raise HTTPException(status_code=403, detail=error_payload(exc.code, exc.message, exc.details)) from exc
    data = {
        "accessToken": token,
        "tokenType": "bearer",
        "expiresIn": settings.ACCESS_TOKEN_TTL_MINUTES * 60,
        "user": user,
    }
    return response_envelope(True, data=data, request_id=request_id)


@router.get("/auth/session")
async def get_session(request: Request, request_id: str = Depends(get_request_id)):
    user = get_current_user(request)
    logger.info("api.auth.session", request_id=request_id, user_id=(user or {}).get("id"))
    data = {
        "authEnabled": settings.AUTH_ENABLED,
        "user": user,
        "isAdmin": bool(user) and AccessGate.is_admin(user),
    }
    return response_envelope(True, data=data, request_id=request_id)
