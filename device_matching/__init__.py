"""
Device-matching query composition for resource-pool orders.

Turns matching policies and order context into the filter groups sent to
device search, and renders them as human-readable chips and summaries.
"""

__version__ = "0.1.0"
