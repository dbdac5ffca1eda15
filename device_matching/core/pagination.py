"""Pagination helpers with hard caps."""

from __future__ import annotations

import os


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_PAGE_SIZE = 200


def get_max_page_size() -> int:
    raw = os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    try:
        val = int(raw)
    except Exception:
        val = DEFAULT_MAX_PAGE_SIZE
    if val < 1:
        return DEFAULT_MAX_PAGE_SIZE
    return val


def clamp_page(page: int) -> int:
    if page < 1:
        return DEFAULT_PAGE
    return page


def clamp_page_size(page_size: int) -> int:
    max_size = get_max_page_size()
    if page_size < 1:
        return 1
    return min(page_size, max_size)
