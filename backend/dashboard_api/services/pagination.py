"""Offset pagination shared by the comparison-result and forecast-run listings.

Pages are computed from a live count, so rows inserted between two requests
shift later pages.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dashboard_api.errors import BadRequest

MAX_LIMIT = 1000


@dataclass(frozen=True)
class PageRequest:
    limit: int
    offset: int

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1


def resolve_page(
    *,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    default_limit: int = 100,
) -> PageRequest:
    """Validate page/limit/offset; ``page`` wins over ``offset`` when both are given."""
    limit = default_limit if limit is None else limit
    if limit < 1:
        raise BadRequest("limit must be a positive integer")
    if limit > MAX_LIMIT:
        raise BadRequest(f"limit must not exceed {MAX_LIMIT}")

    if page is not None:
        if page < 1:
            raise BadRequest("page must be a positive integer")
        return PageRequest(limit=limit, offset=(page - 1) * limit)

    offset = 0 if offset is None else offset
    if offset < 0:
        raise BadRequest("offset must not be negative")
    return PageRequest(limit=limit, offset=offset)


def page_meta(total: int, request: PageRequest) -> Dict[str, Any]:
    total_pages = math.ceil(total / request.limit) if total else 0
    return {
        "total": total,
        "limit": request.limit,
        "offset": request.offset,
        "page": request.page,
        "totalPages": total_pages,
        "hasNextPage": request.offset + request.limit < total,
        "hasPreviousPage": request.page > 1,
    }
