# src/services/lookup_gateway_service/app/dtos/lookup_dto.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lookup_cache_engine.models import FetchStatus, PaginatedCache
from lookup_cache_engine.registry import LookupEntity
from lookup_common.exceptions import ErrorKind


class LookupItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Canonical identifier used by UI selectors.")
    label: str = Field(..., description="Display label for UI selector option.")


class LookupEntityInfo(BaseModel):
    name: str = Field(..., description="Entity name used in lookup routes.")
    label: str = Field(..., description="Human-readable entity label.")
    paginated: bool = Field(..., description="False for single-shot catalogs.")
    default_limit: int
    max_items: Optional[int] = Field(None, description="Retention cap of the cache, if any.")

    @classmethod
    def from_entity(cls, entity: LookupEntity) -> "LookupEntityInfo":
        return cls(
            name=entity.name,
            label=entity.label,
            paginated=entity.paginated,
            default_limit=entity.default_limit,
            max_items=entity.max_items,
        )


class LookupEntitiesResponse(BaseModel):
    entities: List[LookupEntityInfo] = Field(default_factory=list)


class LookupFetchRequest(BaseModel):
    keyword: str = Field("", description="Search text forwarded to the upstream catalog.")
    limit: Optional[int] = Field(None, gt=0, description="Page size; the entity default when omitted.")
    offset: int = Field(0, ge=0)
    filters: Dict[str, Any] = Field(default_factory=dict, description="Entity-specific filters.")

    def to_query(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class LookupCacheResponse(BaseModel):
    entity: str
    items: List[LookupItem] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    limit: int
    offset: int = 0
    has_more: bool = False
    status: FetchStatus = FetchStatus.IDLE

    @classmethod
    def from_cache(cls, entity: str, cache: PaginatedCache) -> "LookupCacheResponse":
        return cls(
            entity=entity,
            items=[LookupItem(**item.model_dump()) for item in cache.data],
            loading=cache.loading,
            error=cache.error,
            error_kind=cache.error_kind,
            limit=cache.limit,
            offset=cache.offset,
            has_more=cache.has_more,
            status=cache.status,
        )
