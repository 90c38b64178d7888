"""Pagination helpers with hard caps."""

from __future__ import annotations

import math
import os


DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_PAGE_SIZE = 100


def get_max_page_size() -> int:
    raw = os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    try:
        val = int(raw)
    except Exception:
        val = DEFAULT_MAX_PAGE_SIZE
    if val < 1:
        return DEFAULT_MAX_PAGE_SIZE
    return val


def clamp_page_size(page_size: int) -> int:
    max_size = get_max_page_size()
    if page_size < 1:
        return 1
    return min(page_size, max_size)


def pagination_block(*, page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_count": total,
        "has_next": page < total_pages,
        "has_prev": page > 1,
        "limit": limit,
    }
