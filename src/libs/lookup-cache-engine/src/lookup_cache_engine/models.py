# src/libs/lookup-cache-engine/src/lookup_cache_engine/models.py
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from lookup_common.exceptions import ErrorKind


class LookupItem(BaseModel):
    """
    A selectable reference-data option. Identity is `id`; entity-specific
    flags (isActive, hasAddress, metadata, ...) are kept as extra fields and
    passed through untouched.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    label: str

    def flags(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class LookupOption(BaseModel):
    """Value/label pair handed to selection controls."""
    model_config = ConfigDict(extra="allow", frozen=True)

    value: str
    label: str

    @classmethod
    def from_item(cls, item: LookupItem) -> "LookupOption":
        flags = {key: val for key, val in item.flags().items() if key not in ("value", "label")}
        return cls(value=item.id, label=item.label, **flags)


class LookupQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str = ""
    limit: int = Field(..., gt=0)
    offset: int = Field(default=0, ge=0)
    filters: Dict[str, Any] = Field(default_factory=dict)


class LookupPage(BaseModel):
    """
    One page of items as returned by the transport, after envelope parsing.
    `paginated` is False for single-shot catalogs that carry no pagination fields.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: Tuple[LookupItem, ...] = ()
    limit: Optional[int] = None
    offset: int = 0
    has_more: bool = Field(default=False, alias="hasMore")
    paginated: bool = True


class FetchStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class PaginatedCache(BaseModel):
    """
    In-memory state of one lookup entity. Instances are immutable; every
    transition produces a new cache.
    """
    model_config = ConfigDict(frozen=True)

    data: Tuple[LookupItem, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    limit: int
    offset: int = 0
    has_more: bool = False
    status: FetchStatus = FetchStatus.IDLE


class PaginationMeta(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    has_more: bool = Field(default=False, alias="hasMore")
    limit: int = 0
    offset: int = 0
