"""
Health endpoint for the device-matching service.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from ...core.config import get_app_env, settings


router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("")
def health() -> dict:
    return {
        "status": "ok",
        "env": get_app_env(),
        "portal_base_url": settings.portal_base_url,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }
