from fastapi import APIRouter

from experiment_tracker.api.routes.admin import router as admin_router
from experiment_tracker.api.routes.auth import router as auth_router
from experiment_tracker.api.routes.experiments import router as experiments_router
from experiment_tracker.api.routes.logs import router as logs_router
from experiment_tracker.api.routes.researchers import router as researchers_router
from experiment_tracker.api.routes.resources import router as resources_router
from experiment_tracker.api.routes.system import router as system_router
from experiment_tracker.api.routes.tags import router as tags_router

api_router = APIRouter()
api_router.include_router(experiments_router, tags=["experiments"])
api_router.include_router(logs_router, tags=["logs"])
api_router.include_router(researchers_router, tags=["researchers"])
api_router.include_router(resources_router, tags=["resources"])
api_router.include_router(tags_router, tags=["tags"])
api_router.include_router(admin_router, tags=["admin"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(system_router, tags=["system"])
