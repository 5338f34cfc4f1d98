import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from fastapi import Query


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(default_limit: int = 10, max_limit: int = 100) -> Callable[..., PageParams]:
    """Build a dependency reading `page`/`limit`, clamped to [1, max_limit]."""

    def dependency(
        page: Optional[int] = Query(None),
        limit: Optional[int] = Query(None),
    ) -> PageParams:
        page = max(1, page or 1)
        limit = max(1, min(limit or default_limit, max_limit))
        return PageParams(page=page, limit=limit)

    return dependency


def pagination_meta(total_items: int, params: PageParams) -> Dict[str, Any]:
    total_pages = math.ceil(total_items / params.limit)
    has_next = params.page < total_pages
    has_prev = params.page > 1
    return {
        "currentPage": params.page,
        "totalPages": total_pages,
        "totalItems": total_items,
        "itemsPerPage": params.limit,
        "hasNextPage": has_next,
        "hasPrevPage": has_prev,
        "nextPage": params.page + 1 if has_next else None,
        "prevPage": params.page - 1 if has_prev else None,
    }


def paginated(data: Iterable[Any], total_items: int, params: PageParams, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = list(data)
    body["pagination"] = pagination_meta(total_items, params)
    body.update(extra)
    return body
