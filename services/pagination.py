"""Pagination helpers shared by listing and report endpoints."""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

MAX_PAGE = 1_000_000
MAX_PAGE_LIMIT = 1000


def normalize_page(value: Optional[int], default: int = 1) -> int:
    """Return ``value`` when it is a positive integer, otherwise ``default``."""
    if value is None:
        return default
    return value if value > 0 else default


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        raise ValueError("limit must be >= 1")
    return math.ceil(max(int(total), 0) / limit)


def page_meta(*, page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages(total, limit),
    }
