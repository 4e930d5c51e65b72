# src/libs/lookup-cache-engine/src/lookup_cache_engine/merge.py
import logging
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .models import LookupItem, LookupPage

logger = logging.getLogger(__name__)


def dedupe_by_id(items: Iterable[LookupItem]) -> Tuple[LookupItem, ...]:
    """
    Removes duplicate ids. The last occurrence's data wins, but it stays at
    the position where the id was first seen so the visible order is stable.
    """
    by_id: Dict[str, LookupItem] = {}
    for item in items:
        # Re-assigning an existing key keeps its original insertion slot.
        by_id[item.id] = item
    return tuple(by_id.values())


def merge_items(
    existing: Sequence[LookupItem],
    page: LookupPage,
    max_items: Optional[int] = None,
) -> Tuple[LookupItem, ...]:
    """
    Combines a freshly fetched page with the items already cached.

    A page at offset 0, or a page from a non-paginated catalog, replaces the
    cache (new search or filter change). Any other page is a continuation and
    is appended after the existing items. The result is deduplicated by id and,
    when `max_items` is set, trimmed to the most recent `max_items` entries.
    """
    is_replacement = not page.paginated or page.offset == 0
    base: Sequence[LookupItem] = () if is_replacement else existing

    merged = dedupe_by_id([*base, *page.items])

    if max_items is not None and max_items > 0 and len(merged) > max_items:
        evicted = len(merged) - max_items
        logger.debug(f"Evicting {evicted} oldest lookup items to stay within {max_items}.")
        merged = merged[-max_items:]

    return merged
