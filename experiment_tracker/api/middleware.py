from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from experiment_tracker.config.settings import settings
from experiment_tracker.core.access_gate import access_gate
from experiment_tracker.core.errors import AccessDenied, AuthenticationRequired
from experiment_tracker.core.logger import get_logger
from experiment_tracker.schemas.response_schemas import error_payload

logger = get_logger(__name__)

API_PREFIX = "/api/v1"
SIGN_IN_PATH = f"{API_PREFIX}/auth/callback"


def auth_exempt_path(path: str) -> bool:
    if not path.startswith(API_PREFIX):
        return True
    if path.startswith(f"{API_PREFIX}/auth/callback"):
        return True
    return path == f"{API_PREFIX}/system/health"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log event emitted while serving a request with its id."""

    async def dispatch(self, request: Request, call_next):
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)
        start = time.perf_counter()
        logger.info("http.request.start", query=str(request.url.query))
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("http.request.error", duration_ms=round((time.perf_counter() - start) * 1000, 2))
            raise
        duration = time.perf_counter() - start
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Process-Time"] = f"{duration:.4f}"
        logger.info("http.request.end", status_code=response.status_code, duration_ms=round(duration * 1000, 2))
        structlog.contextvars.clear_contextvars()
        return response


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not settings.AUTH_ENABLED or request.method == "OPTIONS" or auth_exempt_path(path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        token = None
        if auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1].strip()
        try:
            request.state.current_user = await access_gate.resolve_session(token)
        except AuthenticationRequired as exc:
            logger.info("auth.request.unauthenticated", path=path, reason=exc.message)
            return JSONResponse(
                {"detail": error_payload(exc.code, exc.message, {"sign_in_url": SIGN_IN_PATH})},
                status_code=401,
            )
        except AccessDenied as exc:
            logger.warning("auth.request.denied", path=path, reason=exc.message)
            return JSONResponse({"detail": error_payload(exc.code, exc.message, exc.details)}, status_code=403)
        return await call_next(request)


def register_middleware(app: FastAPI) -> None:
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestContextMiddleware)
