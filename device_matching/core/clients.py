"""
Process-wide portal clients for FastAPI dependency injection.

Tests replace these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from ..integrations.portal_client import (
    DeviceSearchClient,
    MatchingPolicyClient,
    QueryTemplateClient,
    ResourcePoolClient,
)


@lru_cache(maxsize=1)
def get_template_client() -> QueryTemplateClient:
    return QueryTemplateClient()


@lru_cache(maxsize=1)
def get_policy_client() -> MatchingPolicyClient:
    return MatchingPolicyClient()


@lru_cache(maxsize=1)
def get_search_client() -> DeviceSearchClient:
    return DeviceSearchClient()


@lru_cache(maxsize=1)
def get_resource_pool_client() -> ResourcePoolClient:
    return ResourcePoolClient()
