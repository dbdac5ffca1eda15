"""
In-memory evaluation of filter groups against a single device.

The search service folds groups left to right with no precedence: the
first group seeds the result and each later group joins it using the
combinator of the group *before* it. Blocks inside a group fold the same
way. This module mirrors that reading so composed groups can be checked
locally against sample devices.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from ..schemas.query import ConditionType, FilterBlock, FilterGroup, FilterType, LogicalOperator

DeviceLike = Union[Mapping[str, Any], BaseModel]

_MISSING = object()


def _as_mapping(device: DeviceLike) -> Mapping[str, Any]:
    if isinstance(device, BaseModel):
        return device.model_dump(by_alias=True)
    return device


def _lookup(source: Mapping[str, Any], name: str):
    if name in source:
        return source[name]
    snake = to_snake(name)
    if snake in source:
        return source[snake]
    return _MISSING


def _is_blank(value) -> bool:
    return value is _MISSING or value is None or (isinstance(value, str) and not value.strip())


def _split_values(value) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value]
    if value is None:
        return []
    return [v.strip() for v in str(value).split(",") if v.strip()]


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _compare(condition: ConditionType, actual, expected) -> bool:
    if condition in (ConditionType.IS_EMPTY, ConditionType.NOT_EXISTS):
        return _is_blank(actual)
    if condition in (ConditionType.IS_NOT_EMPTY, ConditionType.EXISTS):
        return not _is_blank(actual)
    if actual is _MISSING or actual is None:
        return False
    text = str(actual)
    if condition == ConditionType.EQUAL:
        return text == str(expected if expected is not None else "")
    if condition == ConditionType.NOT_EQUAL:
        return text != str(expected if expected is not None else "")
    if condition == ConditionType.CONTAINS:
        return str(expected or "") in text
    if condition == ConditionType.NOT_CONTAINS:
        return str(expected or "") not in text
    if condition == ConditionType.IN:
        return text in _split_values(expected)
    if condition == ConditionType.NOT_IN:
        return text not in _split_values(expected)
    if condition in (ConditionType.GREATER_THAN, ConditionType.LESS_THAN):
        left, right = _to_float(actual), _to_float(expected)
        if left is None or right is None:
            return False
        return left > right if condition == ConditionType.GREATER_THAN else left < right
    return False


def evaluate_block(block: FilterBlock, device: DeviceLike) -> bool:
    source = _as_mapping(device)
    if block.kind == FilterType.NODE_LABEL:
        source = source.get("labels") or {}
    elif block.kind == FilterType.TAINT:
        source = source.get("taints") or {}
    elif block.kind != FilterType.DEVICE:
        return False
    actual = _lookup(source, block.attribute)
    return _compare(block.condition_type, actual, block.value)


def _fold(items: Sequence, evaluate) -> bool:
    result = evaluate(items[0])
    for prev, item in zip(items, items[1:]):
        if prev.combinator == LogicalOperator.OR:
            result = result or evaluate(item)
        else:
            result = result and evaluate(item)
    return result


def evaluate_group(group: FilterGroup, device: DeviceLike) -> bool:
    if not group.blocks:
        return True
    return _fold(group.blocks, lambda block: evaluate_block(block, device))


def evaluate_groups(groups: Sequence[FilterGroup], device: DeviceLike) -> bool:
    """Left-fold truth value of ``groups`` for ``device``; no groups match everything."""
    effective = [group for group in groups or [] if group.blocks]
    if not effective:
        return True
    return _fold(effective, lambda group: evaluate_group(group, device))


def filter_devices(groups: Sequence[FilterGroup], devices: Sequence[DeviceLike]) -> list:
    return [device for device in devices if evaluate_groups(groups, device)]
