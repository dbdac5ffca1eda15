"""
Request and response bodies for the device-matching HTTP API.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from .policy import ActionType, ClusterContext, LocationChecks, MatchingPolicy
from .query import FilterGroup, WireModel


class ComposeRequest(WireModel):
    policy: Optional[MatchingPolicy] = None
    cluster: Optional[ClusterContext] = None
    action_type: Optional[ActionType] = None
    checks: Optional[LocationChecks] = None
    field_labels: Optional[Dict[str, str]] = None


class ComposeResponse(WireModel):
    groups: List[FilterGroup] = Field(default_factory=list)
    chips: List[List[str]] = Field(default_factory=list)
    summary: str = ""


class LabelsRequest(WireModel):
    groups: List[FilterGroup] = Field(default_factory=list)
    action_type: Optional[ActionType] = None
    field_labels: Optional[Dict[str, str]] = None


class LabelsResponse(WireModel):
    labels: List[List[str]] = Field(default_factory=list)


class ResolveRequest(WireModel):
    resource_pool_type: str
    action_type: ActionType
    policies: Optional[List[MatchingPolicy]] = None


class ResolveResponse(WireModel):
    policy: Optional[MatchingPolicy] = None
    checks: LocationChecks = Field(default_factory=LocationChecks)
    addition_labels: List[str] = Field(default_factory=list)
