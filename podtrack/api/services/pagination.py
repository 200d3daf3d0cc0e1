"""Pagination and ordering for pod searches."""

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import UnaryExpression, case

from podtrack.api.config import config
from podtrack.api.models.pod import NO_PRIORITY, Pod
from podtrack.api.services.visibility import Partition

T = TypeVar("T")


def _positive_int(raw: Any, default: int) -> int:
    """int(raw) if it is a positive integer, else default. Accepts query-string values."""
    if raw is None or isinstance(raw, bool):
        return default
    try:
        val = int(str(raw).strip())
    except ValueError:
        return default
    return val if val >= 1 else default


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = 10

    @classmethod
    def from_raw(cls, page: Any = None, page_size: Any = None) -> "PageRequest":
        """Absent or invalid values fall back to defaults; page_size is capped at MAX_PAGE_SIZE."""
        size = min(_positive_int(page_size, config.DEFAULT_PAGE_SIZE), config.MAX_PAGE_SIZE)
        return cls(page=_positive_int(page, 1), page_size=size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    rows: list[T]
    total_count: int
    total_pages: int
    current_page: int


def total_pages(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if page_size > 0 else 0


def sentinel_last() -> Any:
    """0 for real priorities, 1 for NO_PRIORITY. Sort key that keeps the sentinel last on any backend."""
    return case((Pod.priority == NO_PRIORITY, 1), else_=0)


def ordering_for(partition: Partition) -> list[UnaryExpression]:
    """ORDER BY for a partition. id is the final tie-break so page boundaries are stable."""
    if partition is Partition.HISTORY:
        return [Pod.completed_date.desc().nulls_last(), Pod.created_at.desc(), Pod.id.asc()]
    return [sentinel_last().asc(), Pod.priority.asc(), Pod.created_at.desc(), Pod.id.asc()]
