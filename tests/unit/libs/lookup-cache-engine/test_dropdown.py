# tests/unit/libs/lookup-cache-engine/test_dropdown.py
import pytest

from lookup_cache_engine.dropdown import LookupDropdown, default_dropdown_state
from lookup_cache_engine.models import LookupOption
from lookup_cache_engine.orchestrator import LookupOrchestrator
from lookup_cache_engine.registry import LookupEntity

pytestmark = pytest.mark.asyncio

CUSTOMERS = LookupEntity("customers", "customers", "customer")


@pytest.fixture
def transport(scripted_transport):
    return scripted_transport()


@pytest.fixture
def dropdown(transport, no_sleep):
    orchestrator = LookupOrchestrator(CUSTOMERS, transport, retry_attempts=1, sleep=no_sleep)
    return LookupDropdown(orchestrator)


def _page(ids, offset=0, has_more=False):
    return {
        "items": [{"id": i, "label": f"Customer {i}", "isActive": True} for i in ids],
        "limit": 10,
        "offset": offset,
        "hasMore": has_more,
    }


async def test_default_state():
    assert default_dropdown_state() == ("", {"keyword": "", "limit": 10, "offset": 0})
    assert default_dropdown_state("ac", isActive=True)[1]["isActive"] is True


async def test_open_fetches_lazily_once(dropdown, transport):
    transport.queue(_page(["1", "2"], has_more=True))

    await dropdown.on_open()
    await dropdown.on_open()

    assert len(transport.calls) == 1
    view = dropdown.view()
    assert [item.id for item in view.items] == ["1", "2"]
    assert view.options[0] == LookupOption(value="1", label="Customer 1", isActive=True)
    assert view.meta.has_more is True
    assert view.loading is False


async def test_input_change_restarts_at_offset_zero(dropdown, transport):
    transport.queue(_page(["1"], has_more=True), _page(["2"], offset=10), _page(["9"]))
    await dropdown.on_open()
    await dropdown.on_fetch_more()

    await dropdown.on_input_change("  acme ")

    query = transport.calls[-1]
    assert (query.keyword, query.offset) == ("acme", 0)
    assert dropdown.input_value == "  acme "
    assert [item.id for item in dropdown.view().items] == ["9"]


async def test_fetch_more_appends_next_page(dropdown, transport):
    transport.queue(_page(["1"], has_more=True), _page(["2"], offset=10))
    await dropdown.on_open()

    await dropdown.on_fetch_more()
    await dropdown.on_fetch_more()

    assert len(transport.calls) == 2
    assert transport.calls[1].offset == 10
    assert dropdown.fetch_params["offset"] == 10
    assert [option.value for option in dropdown.options] == ["1", "2"]


async def test_set_fetch_params_accepts_updater(dropdown):
    dropdown.set_fetch_params(lambda params: {**params, "customerId": "C-1"})

    assert dropdown.fetch_params["customerId"] == "C-1"
    assert dropdown.fetch_params["limit"] == 10


async def test_reset_restores_initial_state(dropdown, transport):
    transport.queue(_page(["1"]))
    await dropdown.on_input_change("acme")

    dropdown.reset()

    assert dropdown.input_value == ""
    assert dropdown.fetch_params == {"keyword": "", "limit": 10, "offset": 0}
    assert dropdown.view().items == ()
