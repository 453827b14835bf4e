from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from experiment_tracker.api.middleware import register_middleware
from experiment_tracker.api.router import api_router
from experiment_tracker.config.settings import settings
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.logging import configure_logging
from experiment_tracker.db.database import init_db
from experiment_tracker.schemas.response_schemas import error_payload

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("app.startup", env=settings.APP_ENV, version=settings.APP_VERSION, auth_enabled=settings.AUTH_ENABLED)
    await init_db()
    logger.info("app.startup.db_ready", path=str(settings.state_db_path))
    yield
    logger.info("app.shutdown")


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for item in exc.errors():
        errors.append(
            {
                "loc": [str(part) for part in item.get("loc", ())],
                "msg": str(item.get("msg", "")),
                "type": str(item.get("type", "")),
            }
        )
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _field_errors(exc)
    logger.info("http.request.invalid", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=400,
        content={"detail": error_payload("VALIDATION_FAILED", "Validation failed", {"errors": errors})},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "http.request.unhandled",
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": error_payload("INTERNAL_ERROR", "An unexpected error occurred")},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Research Experiment Tracker",
        version=settings.APP_VERSION,
        description="Experiment records, resource scheduling and progress logs for AI and robotics research",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middleware(app)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
