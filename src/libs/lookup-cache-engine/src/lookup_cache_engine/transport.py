# src/libs/lookup-cache-engine/src/lookup_cache_engine/transport.py
import logging
import time
from typing import Any, Awaitable, Callable, Mapping

import httpx

from lookup_common.config import LOOKUP_API_BASE_URL, LOOKUP_HTTP_TIMEOUT_SECONDS
from lookup_common.error_handling import normalize_error
from lookup_common.exceptions import AppError
from lookup_common.monitoring import observe_fetch_latency
from .models import LookupItem, LookupPage, LookupQuery
from .query import to_request_params
from .registry import LookupEntity

logger = logging.getLogger(__name__)

# Performs the network call for one entity. Returns a raw response envelope
# (or an already parsed LookupPage) and raises on failure.
Transport = Callable[[LookupQuery], Awaitable[Any]]


def _to_item(raw: Any, id_field: str) -> LookupItem:
    if isinstance(raw, LookupItem):
        return raw
    if not isinstance(raw, Mapping):
        raise AppError.validation(
            "Malformed lookup item", details={"type": type(raw).__name__}
        )
    fields = dict(raw)
    identity = fields.get(id_field)
    if identity is None:
        raise AppError.validation(
            "Lookup item is missing its identity field", details={"field": id_field}
        )
    fields["id"] = str(identity)
    if fields.get("label") is None:
        fields["label"] = fields["id"]
    return LookupItem.model_validate(fields)


def parse_envelope(payload: Any, query: LookupQuery, id_field: str = "id") -> LookupPage:
    """
    Parses a transport response into a LookupPage.

    Supports the paginated envelope {success, items, limit, offset, hasMore}
    and the single-shot envelope {success, data}. Pagination fields missing
    from a paginated envelope fall back to the requested limit/offset.

    Raises:
        AppError: when the envelope reports `success: false` or is malformed.
    """
    if isinstance(payload, LookupPage):
        return payload
    if not isinstance(payload, Mapping):
        raise AppError.validation(
            "Malformed lookup response", details={"type": type(payload).__name__}
        )

    if payload.get("success") is False:
        if payload.get("message"):
            raise AppError(normalize_error(payload))
        raise AppError.unknown("Lookup request was not successful")

    if "items" in payload:
        limit = payload.get("limit")
        offset = payload.get("offset")
        has_more = payload.get("hasMore", payload.get("has_more"))
        return LookupPage(
            items=tuple(_to_item(raw, id_field) for raw in payload.get("items") or ()),
            limit=limit if limit is not None else query.limit,
            offset=offset if offset is not None else query.offset,
            has_more=bool(has_more),
            paginated=True,
        )

    if "data" in payload:
        return LookupPage(
            items=tuple(_to_item(raw, id_field) for raw in payload.get("data") or ()),
            paginated=False,
        )

    raise AppError.validation(
        "Lookup response has neither 'items' nor 'data'",
        details={"keys": sorted(str(key) for key in payload.keys())},
    )


def create_http_client(
    base_url: str = LOOKUP_API_BASE_URL,
    timeout: float = LOOKUP_HTTP_TIMEOUT_SECONDS,
    **kwargs,
) -> httpx.AsyncClient:
    """Builds the shared async HTTP client used by HttpLookupTransport."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={"Accept": "application/json"},
        **kwargs,
    )


class HttpLookupTransport:
    """
    Issues `GET <base>/<entity path>?keyword=&limit=&offset=&<filters>` against
    the upstream lookup API. Non-2xx responses raise httpx.HTTPStatusError.
    """
    def __init__(self, client: httpx.AsyncClient, base_path: str = "/lookups"):
        self._client = client
        self._base_path = base_path.rstrip("/")

    def for_entity(self, entity: LookupEntity) -> Transport:
        url = f"{self._base_path}/{entity.path}"

        async def fetch(query: LookupQuery) -> Any:
            params = to_request_params(query)
            if not entity.paginated:
                params = {k: v for k, v in params.items() if k not in ("keyword", "limit", "offset")}
            logger.debug(f"GET {url}", extra={"params": params})
            started = time.monotonic()
            try:
                response = await self._client.get(url, params=params)
            finally:
                # Failed round trips are timed too.
                observe_fetch_latency(entity.name, "http_get", time.monotonic() - started)
            response.raise_for_status()
            return response.json()

        return fetch
