"""
Entry point for the device-matching service.

This script creates the FastAPI application and includes all API
routers. Run with:

    uvicorn device_matching.main:app --reload

"""

from __future__ import annotations

import logging
from fastapi import FastAPI

from .api import api_router
from .core.config import settings, get_app_env, validate_runtime_settings
from .core.logging_config import setup_logging


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file)
    validate_runtime_settings()
    app = FastAPI(title="Device Matching Service", version="0.1.0")
    # Include API routers
    app.include_router(api_router)

    @app.on_event("startup")
    def _log_startup() -> None:
        logger = logging.getLogger("startup")
        logger.info(
            "Device matching service starting env=%s portal=%s%s",
            get_app_env(),
            settings.portal_base_url,
            settings.portal_api_prefix,
        )

    return app


app = create_app()
