# backend/clinic_core/common/pagination.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from clinic_core.common import errors

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def normalize_paging(page: int | None, page_size: int | None, *, default_size: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    page = 1 if page is None else int(page)
    page_size = default_size if page_size is None else int(page_size)

    if page < 1:
        raise errors.ValidationError("page must be >= 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise errors.ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    return page, page_size


def paginate_sequence(items: Sequence[T], *, total: int, page: int, page_size: int) -> Page[T]:
    """
    Offset pagination over an already-ordered sequence (list or QuerySet).
    """
    start = (page - 1) * page_size
    return Page(items=list(items[start:start + page_size]), total=total, page=page, page_size=page_size)
