"""
Composition of device-matching filter groups.

``compose`` turns a matching policy's template groups plus the runtime
context of an order (target cluster, pool entry or exit, location
checkboxes) into the group list sent to device search. It keeps no state
between calls and is recomputed in full on every input change.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from ..core.errors import log_exception
from ..schemas.policy import LOCATION_KEYS, ActionType, ClusterContext, LocationChecks, MatchingPolicy
from ..schemas.query import ConditionType, FilterBlock, FilterGroup, FilterType, LogicalOperator
from .labels import FieldLabels, format_label, normalize_action
from .vocabulary import CLUSTER_FIELD, SAME_CLUSTER_LABEL, UNPOOLED_LABEL

logger = logging.getLogger("composer")


def _device_block(field: str, condition: ConditionType, value=None, *, label: str) -> FilterBlock:
    # The search service reads ``key``; the portal UI reads ``field``.
    return FilterBlock(
        kind=FilterType.DEVICE,
        field=field,
        key=field,
        condition_type=condition,
        value=value,
        combinator=LogicalOperator.AND,
        label=label,
    )


def _single_block_group(block: FilterBlock) -> FilterGroup:
    return FilterGroup(blocks=[block], combinator=LogicalOperator.AND)


def has_equivalent_group(groups: List[FilterGroup], probe: FilterBlock) -> bool:
    """True when some group already asserts ``probe`` (same field, condition and label)."""
    for group in groups:
        for block in group.blocks:
            if (
                block.kind == FilterType.DEVICE
                and block.attribute == probe.attribute
                and block.condition_type == probe.condition_type
                and block.label == probe.label
            ):
                return True
    return False


def seed_groups(policy: Optional[MatchingPolicy]) -> List[FilterGroup]:
    """Deep copy of the policy's template groups, without empty groups."""
    if policy is None:
        return []
    return [group.model_copy(deep=True) for group in policy.template_groups() if group.blocks]


def derive_labels(groups: List[FilterGroup], action: ActionType, field_labels: FieldLabels) -> None:
    for group in groups:
        for block in group.blocks:
            if not block.label:
                block.label = format_label(block, action, field_labels)


def location_group(cluster: ClusterContext, checks: LocationChecks) -> Optional[FilterGroup]:
    blocks: list[FilterBlock] = []
    for key in LOCATION_KEYS:
        if not checks.is_checked(key):
            continue
        value = cluster.location(key)
        if not value:
            continue
        blocks.append(_device_block(key, ConditionType.EQUAL, value, label=f"{key} = {value}"))
    if not blocks:
        return None
    return FilterGroup(blocks=blocks, combinator=LogicalOperator.AND)


def _compose(
    policy: Optional[MatchingPolicy],
    cluster: ClusterContext,
    action: ActionType,
    checks: LocationChecks,
    field_labels: FieldLabels,
) -> List[FilterGroup]:
    result = seed_groups(policy)
    derive_labels(result, action, field_labels)

    if action == ActionType.POOL_EXIT:
        block = _device_block(CLUSTER_FIELD, ConditionType.EQUAL, cluster.name, label=SAME_CLUSTER_LABEL)
        if not has_equivalent_group(result, block):
            result.append(_single_block_group(block))
        return result

    block = _device_block(CLUSTER_FIELD, ConditionType.IS_EMPTY, label=UNPOOLED_LABEL)
    if not has_equivalent_group(result, block):
        result.insert(0, _single_block_group(block))
    extra = location_group(cluster, checks)
    if extra is not None:
        result.append(extra)
    return result


def compose(
    policy: Optional[MatchingPolicy],
    cluster: Optional[ClusterContext],
    action_type: Union[ActionType, str, None],
    checks: Optional[LocationChecks] = None,
    field_labels: FieldLabels = None,
) -> List[FilterGroup]:
    """Build the filter groups for one (policy, cluster, action, checks) tuple.

    Returns ``[]`` when the cluster or action type is missing, or when a
    pool exit targets a cluster without a name. Never raises:
    if composing with the policy's groups fails, the policy is dropped and
    only the synthesized groups are returned.
    """
    action = normalize_action(action_type)
    if cluster is None or action is None:
        return []
    if action == ActionType.POOL_EXIT and not (cluster.name or "").strip():
        # An empty name would select clusterless (unpooled) devices.
        logger.warning("Pool exit needs a cluster name; cluster_id=%s", cluster.id)
        return []
    checks = checks or LocationChecks()
    try:
        return _compose(policy, cluster, action, checks, field_labels)
    except Exception as exc:
        log_exception(
            logger,
            "Compose with policy groups failed; using synthesized groups only",
            extra={"policy_id": getattr(policy, "id", None), "action": action.value},
            exc=exc,
        )
    try:
        return _compose(None, cluster, action, checks, field_labels)
    except Exception as exc:
        log_exception(logger, "Compose failed", extra={"action": action.value}, exc=exc)
        return []
