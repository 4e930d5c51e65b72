# src/libs/lookup-cache-engine/src/lookup_cache_engine/store.py
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from lookup_common.config import LOOKUP_RETRY_ATTEMPTS, LOOKUP_RETRY_DELAY_MS
from lookup_common.exceptions import AppError
from .models import PaginatedCache
from .orchestrator import LookupOrchestrator
from .query import QueryInput
from .registry import LOOKUP_ENTITIES, LookupEntity
from .transport import Transport

logger = logging.getLogger(__name__)


class LookupStore:
    """
    Holds one orchestrator (and therefore one privately owned cache) per
    lookup entity. Other entities' caches are readable but only the owning
    orchestrator mutates them.
    """
    def __init__(
        self,
        transport_factory: Callable[[LookupEntity], Transport],
        entities: Iterable[LookupEntity] = LOOKUP_ENTITIES,
        retry_attempts: int = LOOKUP_RETRY_ATTEMPTS,
        retry_delay_ms: int = LOOKUP_RETRY_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._orchestrators: Dict[str, LookupOrchestrator] = {}
        for entity in entities:
            if entity.name in self._orchestrators:
                raise ValueError(f"Duplicate lookup entity '{entity.name}'.")
            self._orchestrators[entity.name] = LookupOrchestrator(
                entity,
                transport_factory(entity),
                retry_attempts=retry_attempts,
                retry_delay_ms=retry_delay_ms,
                sleep=sleep,
            )
        logger.info(f"Lookup store initialized with {len(self._orchestrators)} entities.")

    @property
    def entities(self) -> List[LookupEntity]:
        return [orchestrator.entity for orchestrator in self._orchestrators.values()]

    def get(self, name: str) -> LookupOrchestrator:
        try:
            return self._orchestrators[name]
        except KeyError:
            raise AppError.not_found(f"Unknown lookup entity '{name}'") from None

    def state(self, name: str) -> PaginatedCache:
        return self.get(name).state

    def snapshot(self) -> Dict[str, PaginatedCache]:
        return {name: orchestrator.state for name, orchestrator in self._orchestrators.items()}

    async def fetch(self, name: str, query: QueryInput = None) -> PaginatedCache:
        return await self.get(name).fetch(query)

    async def fetch_lookups(self, requests: Mapping[str, QueryInput]) -> Dict[str, PaginatedCache]:
        """Fetches several entities concurrently, each with its own query."""
        orchestrators = {name: self.get(name) for name in requests}
        results = await asyncio.gather(
            *[orchestrators[name].fetch(query) for name, query in requests.items()]
        )
        return dict(zip(requests.keys(), results))

    def reset(self, name: str) -> PaginatedCache:
        return self.get(name).reset()

    def reset_lookups(self, names: Optional[Iterable[str]] = None) -> None:
        """Resets the named caches, or every cache when no names are given."""
        targets = list(names) if names is not None else list(self._orchestrators)
        for name in targets:
            self.get(name).reset()

    async def aclose(self) -> None:
        await asyncio.gather(*[o.aclose() for o in self._orchestrators.values()])
