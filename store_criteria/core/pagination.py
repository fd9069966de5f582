"""Pagination metadata and the uniform paginated result envelope."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationMeta:
    """Page position of one result.

    `page` is 1-indexed; an empty result is page 1 of 0 pages.
    """

    page: int
    total_rows: int
    total_pages: int

    def to_dict(self) -> dict[str, int]:
        return {
            "page": self.page,
            "total_rows": self.total_rows,
            "total_pages": self.total_pages,
        }


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    """Rows plus pagination metadata, identical for every execution strategy."""

    data: list[T]
    pagination: PaginationMeta = field(default_factory=lambda: PaginationMeta(1, 0, 0))

    def to_dict(self) -> dict[str, Any]:
        return {"data": list(self.data), "pagination": self.pagination.to_dict()}


def paginate(total_rows: Optional[int], limit: int, offset: int) -> PaginationMeta:
    """Compute page metadata for a window of `limit` rows starting at `offset`.

    A missing (`None`) total is reported as zero rows.
    """

    total = int(total_rows or 0)
    if total > 0 and limit > 0:
        return PaginationMeta(
            page=offset // limit + 1,
            total_rows=total,
            total_pages=math.ceil(total / limit),
        )
    return PaginationMeta(page=1, total_rows=total, total_pages=0)


def build_paginated_result(
    rows: Optional[Sequence[T]],
    total_rows: Optional[int],
    limit: int,
    offset: int,
) -> PaginatedResult[T]:
    """Wrap rows and computed metadata into a `PaginatedResult`."""

    return PaginatedResult(
        data=list(rows or []),
        pagination=paginate(total_rows, limit, offset),
    )
