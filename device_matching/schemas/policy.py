"""
Pydantic schemas for resource-pool device-matching policies and the
runtime context (target cluster, location checkboxes) they are composed
against.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasChoices, Field

from .query import FilterGroup, QueryTemplate, WireModel


class ActionType(str, Enum):
    POOL_ENTRY = "pool_entry"
    POOL_EXIT = "pool_exit"


class PolicyStatus(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


LOCATION_KEYS = ("idc", "zone", "room")

# Both spellings appear in stored policies: the admin form writes the bare
# key, older records carry the ``same_`` prefix.
ADDITION_CONDS = {key: {key, f"same_{key}"} for key in LOCATION_KEYS}


class MatchingPolicy(WireModel):
    id: Optional[int] = None
    name: str = ""
    description: str = ""
    resource_pool_type: str = ""
    action_type: Optional[ActionType] = None
    query_template_id: Optional[int] = None
    query_groups: Optional[List[FilterGroup]] = None
    query_template: Optional[QueryTemplate] = None
    addition_conds: Optional[List[str]] = None
    status: PolicyStatus = PolicyStatus.ENABLED
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def template_groups(self) -> List[FilterGroup]:
        """Groups embedded in the policy payload, if the portal sent any."""
        if self.query_groups:
            return self.query_groups
        if self.query_template and self.query_template.groups:
            return self.query_template.groups
        return []


class PolicyPage(WireModel):
    items: List[MatchingPolicy] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = 10


class ClusterContext(WireModel):
    """Attributes of the target cluster that synthesized predicates read."""

    id: Optional[Union[int, str]] = None
    name: str = Field("", validation_alias=AliasChoices("name", "clusterName", "cluster_name"))
    idc: Optional[str] = None
    zone: Optional[str] = None
    room: Optional[str] = None

    def location(self, key: str) -> str:
        """Location attribute value; a missing room falls back to the IDC."""
        value = (getattr(self, key, None) or "").strip()
        if not value and key == "room":
            value = (self.idc or "").strip()
        return value


class LocationChecks(WireModel):
    """Same-IDC / same-zone / same-room checkbox state (pool entry only)."""

    idc: bool = False
    zone: bool = False
    room: bool = False

    def is_checked(self, key: str) -> bool:
        return bool(getattr(self, key, False))
