from unittest.mock import AsyncMock

import httpx
import pytest

from merchant_app.core.exceptions import ShopifyAPIError, ShopifyUserError
from merchant_app.services.shopify.client import ShopifyAdminClient, ShopifyGraphQLError

SHOP = "test-shop.myshopify.com"


@pytest.fixture
def client():
    return ShopifyAdminClient(shop=SHOP, access_token="shpat_test", api_version="2025-01")


@pytest.fixture
def http_post(mocker):
    http = AsyncMock()
    client_cls = mocker.patch("merchant_app.services.shopify.client.httpx.AsyncClient")
    client_cls.return_value.__aenter__.return_value = http
    return http.post


def _response(status=200, json=None, headers=None):
    request = httpx.Request("POST", f"https://{SHOP}/admin/api/2025-01/graphql.json")
    return httpx.Response(status, json=json, headers=headers, request=request)


def test_client_requires_shop_and_token():
    with pytest.raises(ValueError):
        ShopifyAdminClient(shop="", access_token="x")


@pytest.mark.asyncio
async def test_execute_returns_data_and_tracks_throttle(client, http_post):
    http_post.return_value = _response(json={
        "data": {"shop": {"name": "Test Cards"}},
        "extensions": {"cost": {"throttleStatus": {
            "maximumAvailable": 2000.0, "currentlyAvailable": 1500, "restoreRate": 100.0,
        }}},
    })

    shop = await client.get_shop()

    assert shop == {"name": "Test Cards"}
    assert client.max_available_points == 2000.0
    assert client.currently_available_points == 1500.0
    assert client.safety_buffer_points == 500.0
    sent = http_post.await_args
    assert sent.args[0] == f"https://{SHOP}/admin/api/2025-01/graphql.json"
    assert sent.kwargs["headers"]["X-Shopify-Access-Token"] == "shpat_test"


@pytest.mark.asyncio
async def test_graphql_errors_raise(client, http_post):
    http_post.return_value = _response(json={"errors": [{"message": "Field 'nope' doesn't exist", "path": ["query"]}]})

    with pytest.raises(ShopifyGraphQLError) as exc_info:
        await client.execute("{ nope }")

    assert "Field 'nope' doesn't exist" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_failures_raise_api_error(client, http_post):
    http_post.return_value = _response(status=500, json={})
    with pytest.raises(ShopifyAPIError, match="status 500"):
        await client.execute("{ shop { name } }")

    http_post.side_effect = httpx.ConnectError("refused")
    with pytest.raises(ShopifyAPIError, match="Network error"):
        await client.execute("{ shop { name } }")


@pytest.mark.asyncio
async def test_throttled_response_empties_budget(client, http_post, mocker):
    http_post.return_value = _response(status=429, json={}, headers={"Retry-After": "2"})
    with pytest.raises(ShopifyAPIError):
        await client.execute("{ shop { name } }")
    assert client.currently_available_points == 0

    sleep = mocker.patch("merchant_app.services.shopify.client.asyncio.sleep", new=AsyncMock())
    http_post.return_value = _response(json={"data": {}})
    await client.execute("{ shop { name } }", estimated_cost=10)

    sleep.assert_awaited_once()
    # (10 + 250 buffer) / 50 per second + 0.5
    assert sleep.await_args.args[0] == pytest.approx(5.7)


@pytest.mark.asyncio
async def test_iter_inventory_items_follows_pages(client, mocker):
    pages = [
        {"inventoryItems": {
            "edges": [{"node": {
                "id": "gid://shopify/InventoryItem/1",
                "variant": {"price": "4.50", "product": {"id": "gid://shopify/Product/1", "status": "ACTIVE", "totalInventory": 7}},
                "inventoryLevel": {"quantities": [{"name": "available", "quantity": 3}]},
            }}],
            "pageInfo": {"hasNextPage": True, "endCursor": "abc"},
        }},
        {"inventoryItems": {
            "edges": [{"node": {
                "id": "gid://shopify/InventoryItem/2",
                "variant": {"price": None, "product": {"id": "gid://shopify/Product/2", "status": "DRAFT"}},
                "inventoryLevel": None,
            }}],
            "pageInfo": {"hasNextPage": False, "endCursor": None},
        }},
    ]
    execute = mocker.patch.object(client, "execute", AsyncMock(side_effect=pages))

    items = [item async for item in client.iter_inventory_items("gid://shopify/Location/1")]

    assert items == [
        {"inventory_item_id": "gid://shopify/InventoryItem/1", "product_id": "gid://shopify/Product/1",
         "product_status": "ACTIVE", "product_total_inventory": 7, "price": 4.5, "available": 3},
        {"inventory_item_id": "gid://shopify/InventoryItem/2", "product_id": "gid://shopify/Product/2",
         "product_status": "DRAFT", "product_total_inventory": None, "price": None, "available": None},
    ]
    assert execute.await_args_list[1].args[1] == {"locationID": "gid://shopify/Location/1", "after": "abc"}


@pytest.mark.asyncio
async def test_user_errors_raise(client, mocker):
    mocker.patch.object(client, "execute", AsyncMock(return_value={
        "productUpdate": {"product": None, "userErrors": [{"field": ["status"], "message": "Status is invalid"}]}
    }))

    with pytest.raises(ShopifyUserError) as exc_info:
        await client.set_product_status("gid://shopify/Product/1", "DRAFT")

    assert exc_info.value.operation == "productUpdate"
    assert "Status is invalid" in str(exc_info.value)


@pytest.mark.asyncio
async def test_add_to_collection_tolerates_already_present(client, mocker):
    execute = mocker.patch.object(client, "execute", AsyncMock(side_effect=[
        {"collectionAddProductsV2": {"userErrors": [{"message": "Product is already in the collection"}]}},
        {"collectionReorderProducts": {"job": {"id": "gid://shopify/Job/1"}, "userErrors": []}},
    ]))

    await client.add_to_collection_front("gid://shopify/Collection/9", "gid://shopify/Product/1")

    moves = execute.await_args_list[1].args[1]["moves"]
    assert moves == [{"id": "gid://shopify/Product/1", "newPosition": "0"}]


@pytest.mark.asyncio
async def test_publish_to_all_publications(client, mocker):
    execute = mocker.patch.object(client, "execute", AsyncMock(side_effect=[
        {"publications": {"nodes": [{"id": "gid://shopify/Publication/1"}, {"id": "gid://shopify/Publication/2"}]}},
        {"publishablePublish": {"userErrors": []}},
    ]))

    assert await client.publish_to_all("gid://shopify/Product/1") == 2
    assert execute.await_args_list[1].args[1]["input"] == [
        {"publicationId": "gid://shopify/Publication/1"},
        {"publicationId": "gid://shopify/Publication/2"},
    ]
