"""
Matching policy selection and validation helpers.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from ..core.errors import PolicyValidationError
from ..schemas.policy import ADDITION_CONDS, LOCATION_KEYS, ActionType, LocationChecks, MatchingPolicy, PolicyStatus
from .labels import normalize_action


def resolve_policy(
    resource_pool_type: Optional[str],
    action_type: Union[ActionType, str, None],
    policies: Iterable[MatchingPolicy],
) -> Optional[MatchingPolicy]:
    """First enabled policy for the (pool type, action) pair, in list order."""
    action = normalize_action(action_type)
    if not resource_pool_type or action is None:
        return None
    for policy in policies or []:
        if (
            policy.status == PolicyStatus.ENABLED
            and policy.resource_pool_type == resource_pool_type
            and policy.action_type == action
        ):
            return policy
    return None


def default_location_checks(
    policy: Optional[MatchingPolicy],
    action_type: Union[ActionType, str, None],
) -> LocationChecks:
    """Checkbox defaults for a newly selected policy.

    Only pool entry uses location conditions; every other case resets all
    three boxes to unchecked.
    """
    if policy is None or normalize_action(action_type) != ActionType.POOL_ENTRY:
        return LocationChecks()
    conds = {c.strip() for c in policy.addition_conds or [] if c}
    return LocationChecks(**{key: bool(conds & ADDITION_CONDS[key]) for key in LOCATION_KEYS})


def validate_policy(policy: Optional[MatchingPolicy]) -> MatchingPolicy:
    if policy is None:
        raise PolicyValidationError("policy cannot be empty")
    if not policy.name.strip():
        raise PolicyValidationError("policy name is required")
    if not policy.resource_pool_type.strip():
        raise PolicyValidationError("resource pool type is required")
    if policy.action_type is None:
        raise PolicyValidationError("action type is required")
    if not policy.query_template_id or policy.query_template_id <= 0:
        raise PolicyValidationError("query template ID is required")
    conds = policy.addition_conds or []
    if conds and policy.action_type != ActionType.POOL_ENTRY:
        raise PolicyValidationError("addition conditions are only valid for pool_entry")
    known = set().union(*ADDITION_CONDS.values())
    unknown = sorted({c for c in conds if c not in known})
    if unknown:
        raise PolicyValidationError(f"unknown addition conditions: {', '.join(unknown)}")
    return policy
