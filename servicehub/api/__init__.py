"""
API package for the Service Hub backend.

This package aggregates all API routers to be included in the FastAPI
application. The API is versioned under ``/api/v1``.
"""

from fastapi import APIRouter, Depends
from .v1.auth import router as auth_router
from .v1.admin import router as admin_router
from .v1.vehicles import router as vehicles_router
from .v1.service_requests import router as service_requests_router
from .v1.directory import router as directory_router
from .v1.health import router as health_router
from ..core.auth import get_current_user

api_router = APIRouter()
protected = [Depends(get_current_user)]
api_router.include_router(auth_router)
api_router.include_router(admin_router, dependencies=protected)
api_router.include_router(vehicles_router, dependencies=protected)
api_router.include_router(service_requests_router, dependencies=protected)
api_router.include_router(directory_router, dependencies=protected)
api_router.include_router(health_router)
