"""
Service layer for the device-matching service.

This package contains the composition engine, the label formatter, policy
resolution and the stateful selection session used by the order form.
"""

from .composer import compose
from .labels import format_label, generate_query_summary
from .policy_resolver import resolve_policy

__all__ = ["compose", "format_label", "generate_query_summary", "resolve_policy"]
