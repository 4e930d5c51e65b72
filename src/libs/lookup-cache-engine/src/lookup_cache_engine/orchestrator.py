# src/libs/lookup-cache-engine/src/lookup_cache_engine/orchestrator.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from lookup_common.config import LOOKUP_RETRY_ATTEMPTS, LOOKUP_RETRY_DELAY_MS
from lookup_common.error_handling import normalize_error
from lookup_common.exceptions import AppError, ErrorKind
from lookup_common.logging_utils import lookup_entity_var
from lookup_common.monitoring import (
    observe_coalesced,
    observe_fetch,
    observe_superseded,
    set_cache_items,
)
from lookup_common.retry import with_retry
from .metadata import PaginationMetaSelector
from .models import LookupPage, LookupQuery, PaginatedCache, PaginationMeta
from .query import QueryInput, normalize_query, query_fingerprint
from .reducers import initial_state, mark_fulfilled, mark_pending, mark_rejected
from .registry import LookupEntity
from .transport import Transport, parse_envelope

logger = logging.getLogger(__name__)

RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.RATE_LIMIT, ErrorKind.SERVER})


def is_retryable(exc: BaseException) -> bool:
    """Only transient transport failures are worth another attempt."""
    return normalize_error(exc).kind in RETRYABLE_KINDS


class LookupOrchestrator:
    """
    Owns the cache of one lookup entity and drives its fetch lifecycle
    (idle -> pending -> fulfilled | rejected).

    Requests are keyed by a fingerprint of the normalized query. A request
    identical to the one in flight joins it; any other request cancels the
    superseded one, whose result is then never applied. State transitions are
    therefore ordered by request issuance, not by response arrival.
    """
    def __init__(
        self,
        entity: LookupEntity,
        transport: Transport,
        retry_attempts: int = LOOKUP_RETRY_ATTEMPTS,
        retry_delay_ms: int = LOOKUP_RETRY_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.entity = entity
        self._transport = transport
        self._retry_attempts = retry_attempts
        self._retry_delay_ms = retry_delay_ms
        self._sleep = sleep
        self._state = initial_state(entity.default_limit)
        self._meta_selector = PaginationMetaSelector()
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_fingerprint: Optional[str] = None
        self._last_query: Optional[LookupQuery] = None

    @property
    def state(self) -> PaginatedCache:
        return self._state

    @property
    def meta(self) -> PaginationMeta:
        return self._meta_selector(self._state)

    @property
    def last_query(self) -> Optional[LookupQuery]:
        return self._last_query

    def _set_state(self, state: PaginatedCache) -> None:
        self._state = state
        set_cache_items(self.entity.name, len(state.data))

    async def fetch(self, query: QueryInput = None) -> PaginatedCache:
        """
        Fetches one page for the entity and folds it into the cache.

        Failures never propagate: they are normalized into the cache's
        `error`, leaving `data` untouched. Returns the resulting cache.
        """
        try:
            normalized = normalize_query(query, defaults=self.entity.default_query())
        except AppError as e:
            # A newer request, even an invalid one, supersedes whatever is in flight.
            if self._cancel_inflight():
                observe_superseded(self.entity.name)
            self._set_state(mark_rejected(self._state, e.error))
            observe_fetch(self.entity.name, "invalid")
            return self._state

        fingerprint = query_fingerprint(normalized)
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            if fingerprint == self._inflight_fingerprint:
                logger.debug(f"Joining in-flight '{self.entity.name}' lookup request.")
                observe_coalesced(self.entity.name)
                return await self._wait_for(inflight)
            logger.info(f"Superseding in-flight '{self.entity.name}' lookup request.")
            observe_superseded(self.entity.name)
            inflight.cancel()

        self._last_query = normalized
        self._set_state(mark_pending(self._state))
        task = asyncio.create_task(self._execute(normalized))
        self._inflight = task
        self._inflight_fingerprint = fingerprint
        return await self._wait_for(task)

    async def _wait_for(self, task: asyncio.Task) -> PaginatedCache:
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # Superseded by a newer request; its outcome is not ours to report.
                return self._state
            raise
        return self._state

    async def fetch_more(self) -> PaginatedCache:
        """Requests the page after the current window, if there is one."""
        state = self._state
        if state.loading or not state.has_more or self._last_query is None:
            return state
        next_query = self._last_query.model_copy(update={"offset": state.offset + state.limit})
        return await self.fetch(next_query)

    async def ensure_loaded(self, query: QueryInput = None) -> PaginatedCache:
        """
        Lazy first fetch: only hits the transport when nothing is cached yet.
        While a request is in flight, waits for it instead of starting another.
        """
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            return await self._wait_for(inflight)
        if self._state.data:
            return self._state
        return await self.fetch(query)

    def reset(self) -> PaginatedCache:
        """Cancels any in-flight request and returns the cache to its initial state."""
        self._cancel_inflight()
        self._last_query = None
        self._set_state(initial_state(self.entity.default_limit))
        logger.info(f"Lookup cache '{self.entity.name}' reset.")
        return self._state

    def _cancel_inflight(self) -> bool:
        """Cancels the in-flight task, if any. Returns True when a running task was cancelled."""
        task = self._inflight
        self._inflight = None
        self._inflight_fingerprint = None
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    async def aclose(self) -> None:
        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _execute(self, query: LookupQuery) -> None:
        token = lookup_entity_var.set(self.entity.name)
        try:
            page = await self._load_page(query)
            self._set_state(mark_fulfilled(self._state, page, self.entity.max_items))
            observe_fetch(self.entity.name, "fulfilled")
            logger.info(
                f"Loaded {len(page.items)} '{self.entity.name}' lookup items "
                f"(offset={page.offset}, has_more={page.has_more})."
            )
        except Exception as exc:
            error = normalize_error(exc)
            logger.warning(
                f"Lookup '{self.entity.name}' fetch failed: [{error.kind.value}] {error.message}"
            )
            self._set_state(mark_rejected(self._state, error))
            observe_fetch(self.entity.name, "rejected")
        finally:
            lookup_entity_var.reset(token)

    async def _load_page(self, query: LookupQuery) -> LookupPage:
        async def call() -> LookupPage:
            payload = await self._transport(query)
            return parse_envelope(payload, query, self.entity.id_field)

        if self._retry_attempts <= 1:
            return await call()
        return await with_retry(
            call,
            attempts=self._retry_attempts,
            delay_ms=self._retry_delay_ms,
            failure_message=self.entity.failure_message,
            retry_if=is_retryable,
            sleep=self._sleep,
            operation_name=f"lookup:{self.entity.name}",
        )
