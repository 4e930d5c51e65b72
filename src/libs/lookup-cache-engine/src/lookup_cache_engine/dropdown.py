# src/libs/lookup-cache-engine/src/lookup_cache_engine/dropdown.py
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from lookup_common.config import LOOKUP_DROPDOWN_LIMIT
from .models import LookupItem, LookupOption, PaginatedCache, PaginationMeta
from .orchestrator import LookupOrchestrator

logger = logging.getLogger(__name__)

FetchParamsUpdate = Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]]


def default_dropdown_state(input_value: str = "", **fetch_overrides) -> Tuple[str, Dict[str, Any]]:
    """Initial (input_value, fetch_params) of a paginated dropdown."""
    fetch_params = {"keyword": "", "limit": LOOKUP_DROPDOWN_LIMIT, "offset": 0, **fetch_overrides}
    return input_value, fetch_params


@dataclass(frozen=True)
class DropdownView:
    """What a selection control reads on every render."""
    items: Tuple[LookupItem, ...]
    options: Tuple[LookupOption, ...]
    loading: bool
    error: Optional[str]
    meta: PaginationMeta


class LookupDropdown:
    """
    Consumer side of a lookup cache for one dropdown/autocomplete control.

    Tracks the text typed by the user and the fetch parameters, and turns
    control events into orchestrator calls:
      - on_open: lazy first fetch when nothing is cached
      - on_input_change: keyword change, always restarting at offset 0
      - on_fetch_more: next page when the cache reports more
    """
    def __init__(self, orchestrator: LookupOrchestrator, input_value: str = "", **fetch_overrides):
        self._orchestrator = orchestrator
        self._initial = (input_value, dict(fetch_overrides))
        self.input_value, self.fetch_params = default_dropdown_state(input_value, **fetch_overrides)

    def set_fetch_params(self, update: FetchParamsUpdate) -> Dict[str, Any]:
        """Replaces fetch_params with a mapping, or with the result of an updater function."""
        self.fetch_params = dict(update(dict(self.fetch_params)) if callable(update) else update)
        return self.fetch_params

    async def on_open(self) -> PaginatedCache:
        return await self._orchestrator.ensure_loaded(self.fetch_params)

    async def on_input_change(self, value: str) -> PaginatedCache:
        self.input_value = value
        self.set_fetch_params(lambda params: {**params, "keyword": value.strip(), "offset": 0})
        return await self._orchestrator.fetch(self.fetch_params)

    async def on_fetch_more(self) -> PaginatedCache:
        state = self._orchestrator.state
        if state.loading or not state.has_more:
            return state
        result = await self._orchestrator.fetch_more()
        self.set_fetch_params(lambda params: {**params, "offset": result.offset})
        return result

    def view(self) -> DropdownView:
        state = self._orchestrator.state
        return DropdownView(
            items=state.data,
            options=tuple(LookupOption.from_item(item) for item in state.data),
            loading=state.loading,
            error=state.error,
            meta=self._orchestrator.meta,
        )

    @property
    def options(self) -> Tuple[LookupOption, ...]:
        return self.view().options

    def reset(self) -> None:
        input_value, overrides = self._initial
        self.input_value, self.fetch_params = default_dropdown_state(input_value, **overrides)
        self._orchestrator.reset()
