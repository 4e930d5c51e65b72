# src/libs/lookup-cache-engine/src/lookup_cache_engine/registry.py
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from lookup_common.config import LOOKUP_DEFAULT_LIMIT, LOOKUP_MAX_ITEMS


@dataclass(frozen=True)
class LookupEntity:
    """
    Configuration of one lookup catalog. A single generic orchestrator is
    instantiated per entity from this description.
    """
    name: str
    path: str
    label: str
    paginated: bool = True
    id_field: str = "id"
    default_limit: int = LOOKUP_DEFAULT_LIMIT
    max_items: Optional[int] = LOOKUP_MAX_ITEMS
    default_filters: Mapping[str, Any] = field(default_factory=dict)

    @property
    def failure_message(self) -> str:
        return f"Failed to fetch {self.label} lookup"

    def default_query(self) -> Dict[str, Any]:
        return {"limit": self.default_limit, **self.default_filters}


def _single_shot(name: str, path: str, label: str, id_field: str = "id") -> LookupEntity:
    return LookupEntity(name=name, path=path, label=label, paginated=False, id_field=id_field, max_items=None)


LOOKUP_ENTITIES: Tuple[LookupEntity, ...] = (
    LookupEntity("batch_registry", "batch-registry", "batch registry"),
    _single_shot("warehouses", "warehouses", "warehouse", id_field="value"),
    _single_shot("lot_adjustment_types", "lot-adjustment-types", "lot adjustment type", id_field="value"),
    LookupEntity("customers", "customers", "customer"),
    _single_shot("customer_addresses", "addresses/by-customer", "customer address"),
    LookupEntity("order_types", "order-types", "order type"),
    LookupEntity("payment_methods", "payment-methods", "payment method"),
    LookupEntity("discounts", "discounts", "discount"),
    LookupEntity("tax_rates", "tax-rates", "tax rate"),
    LookupEntity("delivery_methods", "delivery-methods", "delivery method"),
    LookupEntity("skus", "skus", "SKU"),
    LookupEntity("pricing", "pricing", "pricing"),
    LookupEntity("packaging_materials", "packaging-materials", "packaging material"),
    LookupEntity("sku_code_bases", "sku-code-bases", "SKU code base"),
    LookupEntity("products", "products", "product"),
    LookupEntity("statuses", "statuses", "status"),
    LookupEntity("users", "users", "user"),
    LookupEntity("roles", "roles", "role"),
)


def entity_index(entities=LOOKUP_ENTITIES) -> Dict[str, LookupEntity]:
    return {entity.name: entity for entity in entities}
