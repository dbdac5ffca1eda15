"""
Human-readable labels for filter predicates.

``format_label`` is the single formatter behind both the condition chips
shown while composing an order and the preview shown to template
authors. ``generate_query_summary`` renders a whole group list as one
line for tables and tooltips.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from ..core.errors import guarded_call
from ..schemas.policy import LOCATION_KEYS, ActionType
from ..schemas.query import ConditionType, FilterBlock, FilterGroup, FilterOption, FilterType
from .vocabulary import (
    CLUSTER_FIELD,
    KIND_PREFIXES,
    NO_CONDITIONS,
    POOLED_LABEL,
    UNPOOLED_LABEL,
    condition_symbol,
    condition_word,
    operator_text,
)

logger = logging.getLogger("labels")

FieldLabels = Optional[Mapping[str, str]]


def normalize_action(action_type: Union[ActionType, str, None]) -> Optional[ActionType]:
    if action_type is None or isinstance(action_type, ActionType):
        return action_type
    try:
        return ActionType(str(action_type).strip())
    except ValueError:
        return None


def field_labels_from_options(options: Iterable[FilterOption]) -> dict[str, str]:
    """Build the field -> display-name lookup from portal ``deviceFields`` options."""
    return {opt.value: opt.label for opt in options if opt.value and opt.label}


def value_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(value_text(v) for v in value)
    return str(value)


def _placeholder(block: FilterBlock) -> str:
    kind = block.kind.value if isinstance(block.kind, FilterType) else str(block.kind or "")
    return f"{kind or '未知'}条件"


def _device_label(block: FilterBlock, action: Optional[ActionType], field_labels: FieldLabels) -> str:
    field = block.attribute
    condition = block.condition_type
    if field == CLUSTER_FIELD:
        if condition == ConditionType.IS_EMPTY and action == ActionType.POOL_ENTRY:
            return UNPOOLED_LABEL
        if condition == ConditionType.EQUAL and action == ActionType.POOL_EXIT:
            return POOLED_LABEL
    if field in LOCATION_KEYS and condition == ConditionType.EQUAL:
        return f"{field} = {value_text(block.value)}"
    display = (field_labels or {}).get(field) or field
    return f"{display} {condition_word(condition)} {value_text(block.value)}".rstrip()


def _format(block: FilterBlock, action: Optional[ActionType], field_labels: FieldLabels) -> str:
    if block.label and block.kind != FilterType.DEVICE:
        return block.label
    if block.kind == FilterType.DEVICE:
        return _device_label(block, action, field_labels)
    prefix = KIND_PREFIXES.get(block.kind)
    if prefix:
        return f"{prefix} {block.attribute} {block.condition_type.value} {value_text(block.value)}".rstrip()
    return _placeholder(block)


def format_label(
    block: FilterBlock,
    action_type: Union[ActionType, str, None] = None,
    field_labels: FieldLabels = None,
) -> str:
    """Display text for one predicate. Never raises."""
    action = normalize_action(action_type)
    return guarded_call(
        "format_label",
        lambda: _format(block, action, field_labels),
        fallback=_placeholder(block),
        logger=logger,
        context={"block_id": block.id},
    )


def chip_text(
    block: FilterBlock,
    action_type: Union[ActionType, str, None] = None,
    field_labels: FieldLabels = None,
) -> str:
    """Chip shown for a predicate: its own label when set, else the derived one."""
    if block.label:
        return block.label
    return format_label(block, action_type, field_labels)


def render_chips(
    groups: Sequence[FilterGroup],
    action_type: Union[ActionType, str, None] = None,
    field_labels: FieldLabels = None,
) -> List[List[str]]:
    return [[chip_text(block, action_type, field_labels) for block in group.blocks] for group in groups]


def _summary_name(block: FilterBlock) -> str:
    name = block.attribute
    prefix = KIND_PREFIXES.get(block.kind)
    if prefix:
        return f"{prefix}[{name}]"
    return name


def _summary_value(value) -> str:
    if isinstance(value, (list, tuple)):
        shown = ", ".join(value_text(v) for v in value[:2])
        return f"[{shown}...]" if len(value) > 2 else f"[{shown}]"
    return value_text(value)


def block_summary(block: FilterBlock) -> str:
    name = _summary_name(block)
    if block.condition_type == ConditionType.EXISTS:
        return f"{name}存在"
    if block.condition_type == ConditionType.NOT_EXISTS:
        return f"{name}不存在"
    return f"{name}{condition_symbol(block.condition_type)}{_summary_value(block.value)}"


def _join_blocks(blocks: Sequence[FilterBlock]) -> str:
    text = ""
    for idx, block in enumerate(blocks):
        if idx:
            text += f" {operator_text(blocks[idx - 1].combinator)} "
        text += block_summary(block)
    return text


def generate_query_summary(groups: Sequence[FilterGroup], max_length: int = 100) -> str:
    """One-line summary such as ``(idc=sh AND cluster为空) OR (标签[gpu]=true)``.

    Joins follow the left-fold reading used by the search service: each
    element's combinator links it to the element after it.
    """
    groups = [group for group in groups or [] if group.blocks]
    if not groups:
        return NO_CONDITIONS
    parts: list[str] = []
    for idx, group in enumerate(groups):
        text = f"({_join_blocks(group.blocks)})"
        if idx < len(groups) - 1:
            text = f"{text} {operator_text(group.combinator)}"
        parts.append(text)
    summary = " ".join(parts)
    if len(summary) > max_length:
        summary = summary[: max(max_length - 3, 0)] + "..."
    return summary
