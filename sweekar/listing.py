"""Name search and pagination over a published resource list."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

from . import config
from .places_client import PlaceDetail

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    page: int
    total_pages: int
    total_items: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def filter_by_name(resources: Sequence[PlaceDetail], term: str) -> List[PlaceDetail]:
    needle = (term or "").strip().casefold()
    if not needle:
        return list(resources)
    return [r for r in resources if needle in (r.name or "").casefold()]


def paginate(items: Sequence[T], page: int = 1, per_page: int = config.ITEMS_PER_PAGE) -> Page[T]:
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(1, int(page)), total_pages)
    start = (page - 1) * per_page
    return Page(
        items=list(items[start : start + per_page]),
        page=page,
        total_pages=total_pages,
        total_items=len(items),
    )
