# src/libs/lookup-cache-engine/src/lookup_cache_engine/query.py
import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from lookup_common.config import LOOKUP_DEFAULT_LIMIT
from lookup_common.exceptions import AppError
from .models import LookupQuery

logger = logging.getLogger(__name__)

PAGINATION_FIELDS = ("keyword", "limit", "offset")

QueryInput = Union[LookupQuery, Mapping[str, Any], None]


def normalize_query(partial: QueryInput = None, defaults: Optional[Mapping[str, Any]] = None) -> LookupQuery:
    """
    Fills in default keyword/limit/offset for a lookup request.

    Missing or None fields take the value from `defaults`, then the module
    defaults ('' / LOOKUP_DEFAULT_LIMIT / 0). Keys other than the pagination
    fields and 'filters' are folded into `filters`.

    Raises:
        AppError: (ValidationError kind) when a supplied value is malformed,
            e.g. a non-positive limit or a negative offset.
    """
    if isinstance(partial, LookupQuery):
        return partial

    merged: Dict[str, Any] = {"keyword": "", "limit": LOOKUP_DEFAULT_LIMIT, "offset": 0}
    filters: Dict[str, Any] = {}

    for source in (defaults or {}, partial or {}):
        for key, value in source.items():
            if value is None:
                continue
            if key in PAGINATION_FIELDS:
                merged[key] = value
            elif key == "filters":
                if not isinstance(value, Mapping):
                    raise AppError.validation("Invalid lookup query", details={"errors": ["filters: must be a mapping"]})
                filters.update({k: v for k, v in value.items() if v is not None})
            else:
                filters[key] = value

    try:
        return LookupQuery(filters=filters, **merged)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        logger.warning(f"Rejected malformed lookup query: {problems}")
        raise AppError.validation("Invalid lookup query", details={"errors": problems}) from e


def query_fingerprint(query: LookupQuery) -> str:
    """Stable identity of a normalized query, used to coalesce and gate requests."""
    return json.dumps(query.model_dump(), sort_keys=True, default=str, separators=(",", ":"))


def to_request_params(query: LookupQuery) -> Dict[str, Any]:
    """
    Flattens a query into transport parameters. Filter values that are None
    or empty strings are dropped; the keyword is always sent.
    """
    params: Dict[str, Any] = {
        "keyword": query.keyword,
        "limit": query.limit,
        "offset": query.offset,
    }
    for key, value in query.filters.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[key] = value
    return params
