"""
Configuration for the device-matching service.

Settings cover the portal collaborators (template, policy, device search
and resource-pool services), cache lifetimes and logging. They are loaded
from environment variables or a `.env` file; defaults suit local
development against a portal running on localhost.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from pathlib import Path
from dotenv import load_dotenv
import logging
import os

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(ENV_PATH, override=False)

DEFAULT_PORTAL_BASE_URL = "http://localhost:8081"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Portal that owns templates, policies and the device search endpoint
    portal_base_url: str = DEFAULT_PORTAL_BASE_URL
    portal_api_prefix: str = "/fe-v1"
    portal_api_token: str | None = None
    portal_timeout_sec: float = 10.0
    template_cache_ttl_sec: float = 300.0
    filter_options_cache_ttl_sec: float = 300.0
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()


def get_app_env() -> str:
    raw = os.getenv("MATCHING_ENV") or os.getenv("APP_ENV") or "dev"
    env = raw.strip().lower()
    if env not in {"dev", "prod"}:
        logging.getLogger("config").warning("Unknown MATCHING_ENV=%s; defaulting to dev", raw)
        env = "dev"
    return env


def validate_runtime_settings(current: Settings | None = None) -> None:
    env = get_app_env()
    logger = logging.getLogger("config")
    current = current or settings

    base_url = (current.portal_base_url or "").strip()
    if env == "prod":
        if not base_url or base_url == DEFAULT_PORTAL_BASE_URL:
            raise RuntimeError("PORTAL_BASE_URL must point at the portal in prod.")
        if not (current.portal_api_token or "").strip():
            logger.warning("PORTAL_API_TOKEN is not set; portal calls will be unauthenticated.")
    elif base_url == DEFAULT_PORTAL_BASE_URL:
        logger.warning("PORTAL_BASE_URL not set; using %s", DEFAULT_PORTAL_BASE_URL)

    if current.portal_timeout_sec <= 0:
        logger.error("PORTAL_TIMEOUT_SEC=%s is not positive; falling back to 10s.", current.portal_timeout_sec)
        current.portal_timeout_sec = 10.0
    if current.template_cache_ttl_sec < 0:
        logger.error("TEMPLATE_CACHE_TTL_SEC=%s is negative; caching disabled.", current.template_cache_ttl_sec)
        current.template_cache_ttl_sec = 0.0
    if current.filter_options_cache_ttl_sec < 0:
        logger.error(
            "FILTER_OPTIONS_CACHE_TTL_SEC=%s is negative; caching disabled.", current.filter_options_cache_ttl_sec
        )
        current.filter_options_cache_ttl_sec = 0.0
