import logging

import pytest

from device_matching.core.config import DEFAULT_PORTAL_BASE_URL, Settings, get_app_env, validate_runtime_settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PORTAL_BASE_URL", "http://portal.example")
    monkeypatch.setenv("PORTAL_TIMEOUT_SEC", "3.5")
    monkeypatch.setenv("TEMPLATE_CACHE_TTL_SEC", "60")
    current = Settings()
    assert current.portal_base_url == "http://portal.example"
    assert current.portal_timeout_sec == 3.5
    assert current.template_cache_ttl_sec == 60.0
    assert current.portal_api_prefix == "/fe-v1"


def test_app_env_defaults_to_dev(monkeypatch, caplog):
    monkeypatch.delenv("MATCHING_ENV", raising=False)
    monkeypatch.setenv("APP_ENV", "staging")
    caplog.set_level(logging.WARNING)
    assert get_app_env() == "dev"
    assert any("Unknown MATCHING_ENV" in rec.message for rec in caplog.records)


def test_prod_requires_portal_url(monkeypatch):
    monkeypatch.setenv("MATCHING_ENV", "prod")
    with pytest.raises(RuntimeError):
        validate_runtime_settings(Settings(portal_base_url=DEFAULT_PORTAL_BASE_URL))
    validate_runtime_settings(Settings(portal_base_url="http://portal.example", portal_api_token="t"))


def test_dev_fixes_bad_values(monkeypatch, caplog):
    monkeypatch.setenv("MATCHING_ENV", "dev")
    caplog.set_level(logging.WARNING)
    current = Settings(portal_base_url=DEFAULT_PORTAL_BASE_URL, portal_timeout_sec=0, template_cache_ttl_sec=-1)
    validate_runtime_settings(current)
    assert current.portal_timeout_sec == 10.0
    assert current.template_cache_ttl_sec == 0.0
    assert any("PORTAL_BASE_URL not set" in rec.message for rec in caplog.records)
