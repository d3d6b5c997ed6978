"""Pagination metadata for listing responses."""

from __future__ import annotations

import math
from dataclasses import dataclass

from core.catalog.query import Window


@dataclass(frozen=True)
class PageMeta:
    """``count`` items on this page out of ``total``; ``pages`` = ceil(total / limit)."""

    count: int
    total: int
    page: int
    pages: int


def page_count(total: int, limit: int) -> int:
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    return math.ceil(total / limit) if total > 0 else 0


def page_meta(count: int, total: int, window: Window) -> PageMeta:
    return PageMeta(
        count=count,
        total=total,
        page=window.page,
        pages=page_count(total, window.limit),
    )
