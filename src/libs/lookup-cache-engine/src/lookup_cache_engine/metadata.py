# src/libs/lookup-cache-engine/src/lookup_cache_engine/metadata.py
import logging
from typing import Any, Mapping, Optional

from .models import PaginatedCache, PaginationMeta

logger = logging.getLogger(__name__)

_DEFAULT_META = PaginationMeta(has_more=False, limit=0, offset=0)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def pagination_meta(cache: Any) -> PaginationMeta:
    """
    Derives {has_more, limit, offset} from a lookup cache.

    Accepts a PaginatedCache or a mapping using either `hasMore` or
    `has_more`. Any missing or malformed field falls back to a safe default
    (False / 0 / 0) and a warning is logged. Never raises.
    """
    if isinstance(cache, PaginatedCache):
        return PaginationMeta(has_more=cache.has_more, limit=cache.limit, offset=cache.offset)

    if not isinstance(cache, Mapping):
        logger.warning(f"Pagination metadata requested for unexpected type '{type(cache).__name__}'.")
        return _DEFAULT_META

    has_more = cache.get("hasMore", cache.get("has_more"))
    limit = cache.get("limit")
    offset = cache.get("offset")

    malformed = []
    if not isinstance(has_more, bool):
        malformed.append("hasMore")
        has_more = False
    if not _is_count(limit):
        malformed.append("limit")
        limit = 0
    if not _is_count(offset):
        malformed.append("offset")
        offset = 0

    if malformed:
        logger.warning(f"Invalid pagination metadata shape; defaulted fields: {', '.join(malformed)}.")

    return PaginationMeta(has_more=has_more, limit=limit, offset=offset)


class PaginationMetaSelector:
    """
    Memoized pagination_meta. Only the identity of the last input is
    remembered; contents are never compared.
    """
    def __init__(self):
        self._last_input: Optional[Any] = None
        self._last_result: Optional[PaginationMeta] = None
        self._primed = False

    def __call__(self, cache: Any) -> PaginationMeta:
        if self._primed and cache is self._last_input:
            return self._last_result
        result = pagination_meta(cache)
        self._last_input = cache
        self._last_result = result
        self._primed = True
        return result
