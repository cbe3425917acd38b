"""Page/page-size normalization shared by list endpoints."""
from __future__ import annotations

import math

from ..config import settings


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    page = page if page and page >= 1 else 1
    size = page_size if page_size and page_size >= 1 else settings.DEFAULT_PAGE_SIZE
    size = min(size, settings.MAX_PAGE_SIZE)
    return page, size


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / page_size)
