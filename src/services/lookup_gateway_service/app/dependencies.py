# src/services/lookup_gateway_service/app/dependencies.py
from fastapi import HTTPException, status

from lookup_cache_engine.store import LookupStore

# Shared resources created in the application lifespan.
app_state = {}


def get_lookup_store() -> LookupStore:
    store = app_state.get("lookup_store")
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lookup store is not initialized.",
        )
    return store
