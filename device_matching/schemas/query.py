"""
Pydantic schemas for device filter predicates, groups and query templates.

Field names are snake_case in Python and camelCase on the wire, matching
the portal's JSON. The predicate kind travels as ``type`` and the
combinator as ``operator``.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FilterType(str, Enum):
    DEVICE = "device"
    NODE_LABEL = "nodeLabel"
    TAINT = "taint"
    # Declared by the portal frontend; has no formatter rule of its own
    NODE_INFO = "nodeInfo"


class ConditionType(str, Enum):
    EQUAL = "equal"
    NOT_EQUAL = "notEqual"
    CONTAINS = "contains"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    IN = "in"
    NOT_IN = "notIn"
    # Accepted by the portal search backend
    NOT_CONTAINS = "notContains"
    EXISTS = "exists"
    NOT_EXISTS = "notExists"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


FilterValue = Union[str, bool, int, float, List[str]]


def new_id() -> str:
    return str(uuid.uuid4())


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FilterBlock(WireModel):
    """One atomic condition over a device attribute, node label or taint."""

    id: str = Field(default_factory=new_id)
    kind: FilterType = Field(FilterType.DEVICE, alias="type")
    field: Optional[str] = None
    key: Optional[str] = None
    condition_type: ConditionType = ConditionType.EQUAL
    value: Optional[FilterValue] = None
    combinator: LogicalOperator = Field(LogicalOperator.AND, alias="operator")
    label: Optional[str] = None

    @property
    def attribute(self) -> str:
        """Attribute under test: ``field`` for devices, ``key`` otherwise."""
        if self.kind == FilterType.DEVICE:
            return self.field or self.key or ""
        return self.key or self.field or ""


class FilterGroup(WireModel):
    id: str = Field(default_factory=new_id)
    blocks: List[FilterBlock] = Field(default_factory=list)
    combinator: LogicalOperator = Field(LogicalOperator.AND, alias="operator")


class QueryTemplate(WireModel):
    id: Optional[int] = None
    name: str
    description: str = ""
    groups: List[FilterGroup] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TemplatePage(WireModel):
    items: List[QueryTemplate] = Field(default_factory=list)
    total: int = 0


class FilterOption(WireModel):
    id: str = ""
    label: str = ""
    value: str = ""


class Device(WireModel):
    """A device row as returned by the search service; unknown columns are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[int] = None
    ci_code: Optional[str] = None
    ip: Optional[str] = None
    cluster: Optional[str] = None
    cluster_id: Optional[int] = None
    idc: Optional[str] = None
    zone: Optional[str] = None
    room: Optional[str] = None
    role: Optional[str] = None
    arch_type: Optional[str] = None


class DeviceQueryRequest(WireModel):
    groups: List[FilterGroup] = Field(default_factory=list)
    page: int = Field(1, ge=1)
    size: int = Field(10, ge=1)


class DeviceSearchPage(WireModel):
    items: List[Device] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = 10
