"""
API endpoints for composing device-matching filter groups.

All endpoints are stateless: each request carries the full composition
input and gets the full result back.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ...core.clients import get_policy_client, get_resource_pool_client, get_search_client
from ...core.errors import PolicyValidationError, PortalServiceError
from ...core.pagination import clamp_page, clamp_page_size
from ...integrations.portal_client import DeviceSearchClient, MatchingPolicyClient, ResourcePoolClient
from ...schemas.matching import (
    ComposeRequest,
    ComposeResponse,
    LabelsRequest,
    LabelsResponse,
    ResolveRequest,
    ResolveResponse,
)
from ...schemas.policy import ActionType, MatchingPolicy
from ...schemas.query import DeviceQueryRequest, DeviceSearchPage
from ...services.composer import compose
from ...services.labels import format_label, generate_query_summary, render_chips
from ...services.policy_resolver import default_location_checks, resolve_policy, validate_policy
from ...services.vocabulary import addition_cond_label


router = APIRouter(prefix="/api/v1/device-matching", tags=["device-matching"])

logger = logging.getLogger("api.matching")


def _bad_gateway(exc: PortalServiceError) -> HTTPException:
    logger.warning("Collaborator call failed: %s", exc)
    return HTTPException(status_code=502, detail=f"{exc.service} unavailable: {exc.detail}")


@router.post("/compose", response_model=ComposeResponse, response_model_exclude_none=True)
def compose_groups(payload: ComposeRequest) -> ComposeResponse:
    groups = compose(
        payload.policy,
        payload.cluster,
        payload.action_type,
        payload.checks,
        payload.field_labels,
    )
    return ComposeResponse(
        groups=groups,
        chips=render_chips(groups, payload.action_type, payload.field_labels),
        summary=generate_query_summary(groups),
    )


@router.post("/labels", response_model=LabelsResponse)
def preview_labels(payload: LabelsRequest) -> LabelsResponse:
    labels = [
        [format_label(block, payload.action_type, payload.field_labels) for block in group.blocks]
        for group in payload.groups
    ]
    return LabelsResponse(labels=labels)


@router.post("/policies/resolve", response_model=ResolveResponse, response_model_exclude_none=True)
def resolve_matching_policy(
    payload: ResolveRequest,
    client: MatchingPolicyClient = Depends(get_policy_client),
) -> ResolveResponse:
    policies = payload.policies
    if policies is None:
        try:
            policies = client.list_by_type(payload.resource_pool_type, payload.action_type)
        except PortalServiceError as exc:
            raise _bad_gateway(exc)
    policy = resolve_policy(payload.resource_pool_type, payload.action_type, policies)
    checks = default_location_checks(policy, payload.action_type)
    addition_labels = []
    if policy is not None and payload.action_type == ActionType.POOL_ENTRY:
        addition_labels = [addition_cond_label(cond) for cond in policy.addition_conds or []]
    return ResolveResponse(policy=policy, checks=checks, addition_labels=addition_labels)


@router.post("/policies/validate")
def validate_matching_policy(policy: MatchingPolicy) -> dict:
    try:
        validate_policy(policy)
    except PolicyValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return {"valid": True}


@router.post("/search", response_model=DeviceSearchPage, response_model_exclude_none=True)
def search_devices(
    payload: DeviceQueryRequest,
    client: DeviceSearchClient = Depends(get_search_client),
) -> DeviceSearchPage:
    try:
        return client.search(payload.groups, clamp_page(payload.page), clamp_page_size(payload.size))
    except PortalServiceError as exc:
        raise _bad_gateway(exc)


@router.get("/filter-options")
def filter_options(client: DeviceSearchClient = Depends(get_search_client)) -> dict:
    try:
        return {"fieldLabels": client.filter_options()}
    except PortalServiceError as exc:
        raise _bad_gateway(exc)


@router.get("/resource-pool-types")
def resource_pool_types(client: ResourcePoolClient = Depends(get_resource_pool_client)) -> List[str]:
    try:
        return client.list_types()
    except PortalServiceError as exc:
        raise _bad_gateway(exc)
