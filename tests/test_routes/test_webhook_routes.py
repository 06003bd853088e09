# tests/test_routes/test_webhook_routes.py
import json
from unittest.mock import AsyncMock

import pytest

from merchant_app.core.exceptions import SessionNotFoundError
from merchant_app.core.security import compute_shopify_hmac
from merchant_app.routes import webhooks
from merchant_app.services.compliance import InventoryAutomationService
from merchant_app.services.session_resolver import SessionResolver

SHOP = "test-shop.myshopify.com"


@pytest.fixture(autouse=True)
def clear_recent_webhooks():
    webhooks.recent_webhook_ids.clear()
    yield
    webhooks.recent_webhook_ids.clear()


@pytest.fixture
def compliance(mocker, mock_shopify_client):
    mocker.patch.object(SessionResolver, "client_for", AsyncMock(return_value=mock_shopify_client))
    return mocker.patch.object(
        InventoryAutomationService,
        "ensure_product_compliance",
        AsyncMock(return_value={"status": "SUCCESS", "changed": False}),
    )


def signed(payload, topic="products/update", webhook_id="wh-1", secret="test_secret", shop=SHOP):
    body = json.dumps(payload).encode()
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": compute_shopify_hmac(body, secret),
        "X-Shopify-Topic": topic,
        "X-Shopify-Shop-Domain": shop,
    }
    if webhook_id:
        headers["X-Shopify-Webhook-Id"] = webhook_id
    return body, headers


@pytest.mark.asyncio
async def test_missing_signature_rejected(api_client, compliance):
    response = await api_client.post("/webhooks", json={"id": 1})

    assert response.status_code == 401
    compliance.assert_not_awaited()


@pytest.mark.asyncio
async def test_bad_signature_rejected(api_client, compliance):
    body, headers = signed({"id": 1}, secret="wrong")

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}


@pytest.mark.asyncio
async def test_product_update_runs_compliance(api_client, compliance):
    body, headers = signed({"id": 632910392, "title": "Mew"})

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    assert response.text == "OK"
    compliance.assert_awaited_once_with(product_id=632910392)


@pytest.mark.asyncio
async def test_inventory_level_update_uses_inventory_item(api_client, compliance):
    body, headers = signed(
        {"inventory_item_id": 271878346596884015, "location_id": 1, "available": 0},
        topic="INVENTORY_LEVELS_UPDATE",
    )

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    compliance.assert_awaited_once_with(inventory_item_id=271878346596884015)


@pytest.mark.asyncio
async def test_duplicate_delivery_is_ignored(api_client, compliance):
    body, headers = signed({"id": 1})

    first = await api_client.post("/webhooks", content=body, headers=headers)
    second = await api_client.post("/webhooks", content=body, headers=headers)

    assert first.status_code == second.status_code == 200
    assert compliance.await_count == 1


def test_only_last_100_ids_are_remembered():
    for n in range(105):
        webhooks.recent_webhook_ids.append(str(n))

    assert len(webhooks.recent_webhook_ids) == 100
    assert "0" not in webhooks.recent_webhook_ids
    assert "104" in webhooks.recent_webhook_ids


@pytest.mark.asyncio
async def test_missing_shop_is_bad_request(api_client, compliance):
    body, headers = signed({"id": 1}, shop="")

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 400
    assert response.text == "Bad Request"


@pytest.mark.asyncio
async def test_unhandled_topic_is_acknowledged(api_client, compliance):
    body, headers = signed({"id": 1}, topic="orders/create")

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    compliance.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_shop_is_acknowledged(api_client, mocker):
    mocker.patch.object(SessionResolver, "client_for", AsyncMock(side_effect=SessionNotFoundError("no session")))
    body, headers = signed({"id": 1})

    response = await api_client.post("/webhooks", content=body, headers=headers)

    assert response.status_code == 200


def test_normalize_topic():
    assert webhooks.normalize_topic("PRODUCTS_UPDATE") == "products/update"
    assert webhooks.normalize_topic("inventory_levels/update") == "inventory_levels/update"
    assert webhooks.normalize_topic("orders/create") == "orders/create"
    assert webhooks.normalize_topic("") == ""
