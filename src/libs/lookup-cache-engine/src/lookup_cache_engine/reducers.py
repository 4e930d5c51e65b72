# src/libs/lookup-cache-engine/src/lookup_cache_engine/reducers.py
"""Pure state transitions of a lookup cache. Each returns a new PaginatedCache."""
from typing import Optional

from lookup_common.exceptions import NormalizedError
from .merge import merge_items
from .models import FetchStatus, LookupPage, PaginatedCache


def initial_state(limit: int) -> PaginatedCache:
    return PaginatedCache(limit=limit)


def mark_pending(state: PaginatedCache) -> PaginatedCache:
    return state.model_copy(
        update={"loading": True, "error": None, "error_kind": None, "status": FetchStatus.PENDING}
    )


def mark_fulfilled(state: PaginatedCache, page: LookupPage, max_items: Optional[int] = None) -> PaginatedCache:
    return state.model_copy(
        update={
            "data": merge_items(state.data, page, max_items),
            "loading": False,
            "error": None,
            "error_kind": None,
            "limit": page.limit if page.limit is not None else state.limit,
            "offset": page.offset if page.paginated else 0,
            "has_more": page.has_more if page.paginated else False,
            "status": FetchStatus.FULFILLED,
        }
    )


def mark_rejected(state: PaginatedCache, error: NormalizedError) -> PaginatedCache:
    # data is left as-is on failure.
    return state.model_copy(
        update={
            "loading": False,
            "error": error.message,
            "error_kind": error.kind,
            "status": FetchStatus.REJECTED,
        }
    )
