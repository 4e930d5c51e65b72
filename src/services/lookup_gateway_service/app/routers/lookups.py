# src/services/lookup_gateway_service/app/routers/lookups.py
from fastapi import APIRouter, Depends

from lookup_cache_engine.store import LookupStore

from ..dependencies import get_lookup_store
from ..dtos.lookup_dto import (
    LookupCacheResponse,
    LookupEntitiesResponse,
    LookupEntityInfo,
    LookupFetchRequest,
)

router = APIRouter(prefix="/lookups", tags=["Lookup Caches"])


@router.get(
    "",
    response_model=LookupEntitiesResponse,
    summary="List Lookup Entities",
    description="Returns every lookup catalog served by the gateway with its pagination settings.",
)
async def list_lookup_entities(store: LookupStore = Depends(get_lookup_store)):
    return LookupEntitiesResponse(
        entities=[LookupEntityInfo.from_entity(entity) for entity in store.entities]
    )


@router.get(
    "/{entity}",
    response_model=LookupCacheResponse,
    summary="Get Lookup Cache",
    description="Returns the current cache of a lookup entity without contacting the upstream API.",
)
async def get_lookup_cache(entity: str, store: LookupStore = Depends(get_lookup_store)):
    return LookupCacheResponse.from_cache(entity, store.state(entity))


@router.post(
    "/{entity}/fetch",
    response_model=LookupCacheResponse,
    summary="Fetch Lookup Page",
    description=(
        "Fetches one page for the entity and merges it into its cache. A request at "
        "offset 0 replaces the cached items; later offsets append. Upstream failures "
        "are reported in the cache's `error` field while previously cached items are kept."
    ),
)
async def fetch_lookup_page(
    entity: str,
    request: LookupFetchRequest,
    store: LookupStore = Depends(get_lookup_store),
):
    cache = await store.fetch(entity, request.to_query())
    return LookupCacheResponse.from_cache(entity, cache)


@router.post(
    "/{entity}/fetch-more",
    response_model=LookupCacheResponse,
    summary="Fetch Next Lookup Page",
    description="Fetches the page after the cached window when the cache reports more items.",
)
async def fetch_more_lookups(entity: str, store: LookupStore = Depends(get_lookup_store)):
    cache = await store.get(entity).fetch_more()
    return LookupCacheResponse.from_cache(entity, cache)


@router.post(
    "/{entity}/reset",
    response_model=LookupCacheResponse,
    summary="Reset Lookup Cache",
    description="Cancels any in-flight request and returns the cache to its initial state.",
)
async def reset_lookup_cache(entity: str, store: LookupStore = Depends(get_lookup_store)):
    return LookupCacheResponse.from_cache(entity, store.reset(entity))
