# tests/integration/services/lookup_gateway_service/test_lookups_router.py
import httpx
import pytest
import pytest_asyncio

from lookup_cache_engine.registry import LookupEntity
from lookup_cache_engine.store import LookupStore
from src.services.lookup_gateway_service.app.dependencies import get_lookup_store
from src.services.lookup_gateway_service.app.main import app

pytestmark = pytest.mark.asyncio

ENTITIES = (
    LookupEntity("statuses", "statuses", "status", default_limit=2),
    LookupEntity("warehouses", "warehouses", "warehouse", paginated=False, id_field="value", max_items=None),
)


@pytest_asyncio.fixture
async def async_test_client(scripted_transport, transports_by_entity, no_sleep):
    def factory(entity):
        return transports_by_entity.setdefault(entity.name, scripted_transport())

    store = LookupStore(factory, entities=ENTITIES, retry_attempts=1, sleep=no_sleep)
    app.dependency_overrides[get_lookup_store] = lambda: store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, transports_by_entity

    app.dependency_overrides.pop(get_lookup_store, None)


async def test_list_entities(async_test_client):
    client, _ = async_test_client

    response = await client.get("/lookups")

    assert response.status_code == 200
    entities = {entity["name"]: entity for entity in response.json()["entities"]}
    assert set(entities) == {"statuses", "warehouses"}
    assert entities["warehouses"]["paginated"] is False


async def test_fetch_then_fetch_more(async_test_client):
    client, transports = async_test_client
    transports["statuses"].queue(
        {"items": [{"id": "a", "label": "Active"}, {"id": "b", "label": "Archived"}], "limit": 2, "offset": 0, "hasMore": True},
        {"items": [{"id": "c", "label": "Pending"}], "hasMore": False},
    )

    first = await client.post("/lookups/statuses/fetch", json={"keyword": ""})
    second = await client.post("/lookups/statuses/fetch-more")

    assert first.status_code == 200
    assert first.json()["has_more"] is True
    body = second.json()
    assert [item["id"] for item in body["items"]] == ["a", "b", "c"]
    assert body["has_more"] is False
    assert body["offset"] == 2
    assert body["status"] == "fulfilled"


async def test_upstream_failure_is_reported_in_cache(async_test_client):
    client, transports = async_test_client
    transports["warehouses"].queue({"success": False, "message": "Warehouse service down", "status": 503})

    response = await client.post("/lookups/warehouses/fetch", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["error"] == "Warehouse service down"
    assert body["error_kind"] == "ServerError"
    assert body["status"] == "rejected"


async def test_single_shot_items_keep_extra_fields(async_test_client):
    client, transports = async_test_client
    transports["warehouses"].queue({"data": [{"value": "W1", "label": "Main", "isPickupLocation": True}]})

    response = await client.post("/lookups/warehouses/fetch", json={})

    item = response.json()["items"][0]
    assert item["id"] == "W1"
    assert item["isPickupLocation"] is True


async def test_get_and_reset_cache(async_test_client):
    client, transports = async_test_client
    transports["statuses"].queue({"items": [{"id": "a", "label": "Active"}], "limit": 2, "offset": 0})
    await client.post("/lookups/statuses/fetch", json={})

    cached = await client.get("/lookups/statuses")
    reset = await client.post("/lookups/statuses/reset")

    assert [item["id"] for item in cached.json()["items"]] == ["a"]
    assert reset.json()["items"] == []
    assert reset.json()["status"] == "idle"


async def test_unknown_entity_returns_404(async_test_client):
    client, _ = async_test_client

    response = await client.post("/lookups/planets/fetch", json={})

    assert response.status_code == 404
    assert response.json() == {"message": "Unknown lookup entity 'planets'", "kind": "NotFoundError", "status": 404}


async def test_invalid_fetch_body_is_rejected(async_test_client):
    client, _ = async_test_client

    response = await client.post("/lookups/statuses/fetch", json={"limit": 0})

    assert response.status_code == 422


async def test_correlation_id_is_echoed(async_test_client):
    client, _ = async_test_client

    response = await client.get("/lookups", headers={"X-Correlation-Id": "LKP:test"})

    assert response.headers["X-Correlation-Id"] == "LKP:test"


async def test_health_endpoints_without_upstream(async_test_client):
    client, _ = async_test_client

    live = await client.get("/health/live")
    ready = await client.get("/health/ready")

    assert live.status_code == 200
    assert ready.status_code == 503
    assert ready.json()["detail"]["dependencies"] == {"upstream": "unavailable"}
