"""
Display vocabulary for predicate operators and synthesized conditions.
"""

from __future__ import annotations

from ..schemas.query import ConditionType, FilterType, LogicalOperator

# Words used in chips; operators not listed here render as their wire value.
CONDITION_WORDS = {
    ConditionType.EQUAL: "等于",
    ConditionType.NOT_EQUAL: "不等于",
    ConditionType.CONTAINS: "包含",
    ConditionType.IS_EMPTY: "为空",
    ConditionType.IS_NOT_EMPTY: "不为空",
}

# Compact symbols used by the one-line query summary.
CONDITION_SYMBOLS = {
    ConditionType.EQUAL: "=",
    ConditionType.NOT_EQUAL: "≠",
    ConditionType.CONTAINS: "包含",
    ConditionType.NOT_CONTAINS: "不包含",
    ConditionType.IN: "∈",
    ConditionType.NOT_IN: "∉",
    ConditionType.IS_EMPTY: "为空",
    ConditionType.IS_NOT_EMPTY: "不为空",
    ConditionType.GREATER_THAN: ">",
    ConditionType.LESS_THAN: "<",
}

KIND_PREFIXES = {
    FilterType.NODE_LABEL: "标签",
    FilterType.TAINT: "污点",
}

CLUSTER_FIELD = "cluster"
UNPOOLED_LABEL = "未入池设备"
POOLED_LABEL = "已入池设备"
SAME_CLUSTER_LABEL = "同集群"
NO_CONDITIONS = "无查询条件"

# Shown next to a policy's additionConds in the order form.
ADDITION_COND_LABELS = {
    "idc": "与目标集群同IDC",
    "zone": "与目标集群同安全域",
    "room": "与目标集群同机房",
}


def condition_word(condition: ConditionType) -> str:
    return CONDITION_WORDS.get(condition, condition.value)


def condition_symbol(condition: ConditionType) -> str:
    return CONDITION_SYMBOLS.get(condition, "")


def operator_text(operator: LogicalOperator | None) -> str:
    return "OR" if operator == LogicalOperator.OR else "AND"


def addition_cond_label(cond: str) -> str:
    key = cond[len("same_"):] if cond.startswith("same_") else cond
    return ADDITION_COND_LABELS.get(key, cond)
