"""
API package for the device-matching service.

This package aggregates all API routers to be included in the FastAPI
application. The API is versioned under ``/api/v1``.
"""

from fastapi import APIRouter
from .v1.health import router as health_router
from .v1.matching import router as matching_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(matching_router)
