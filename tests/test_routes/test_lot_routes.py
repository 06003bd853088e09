# tests/test_routes/test_lot_routes.py
import pytest

from merchant_app.core.exceptions import ShopifyAPIError
from merchant_app.dependencies import get_shopify_client
from merchant_app.main import app

LOT = {"purchase_date": "2026-09-01", "total_cost": 400.0, "initial_debt": 100.0, "vendor": "Estate sale"}


@pytest.fixture
def shopify_override(api_client, mock_shopify_client):
    app.dependency_overrides[get_shopify_client] = lambda: mock_shopify_client
    return mock_shopify_client


async def _create_lot(api_client, auth_headers, **fields):
    response = await api_client.post("/app/lots", json={**LOT, **fields}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()["lot"]


@pytest.mark.asyncio
async def test_lot_routes_require_auth(api_client):
    listed = await api_client.get("/app/lots")
    converted = await api_client.post("/api/lotProduct/convert", json={"lotProductId": 1})

    assert listed.status_code == converted.status_code == 401


@pytest.mark.asyncio
async def test_create_get_and_list_lots(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)

    assert lot["shipping_status"] == "pending_shipment"
    assert lot["initial_debt"] == 100.0
    assert lot["products"] == [] and lot["payments"] == []

    fetched = await api_client.get(f"/app/lots/{lot['id']}", headers=auth_headers)
    listed = await api_client.get("/app/lots", headers=auth_headers)

    assert fetched.json()["lot"]["vendor"] == "Estate sale"
    assert [item["id"] for item in listed.json()["lots"]] == [lot["id"]]


@pytest.mark.asyncio
async def test_create_lot_rejects_bad_input(api_client, auth_headers):
    negative = await api_client.post("/app/lots", json={**LOT, "total_cost": -1}, headers=auth_headers)
    status = await api_client.post("/app/lots", json={**LOT, "shipping_status": "lost"}, headers=auth_headers)

    assert negative.status_code == 400
    assert status.status_code == 400


@pytest.mark.asyncio
async def test_update_and_delete_lot(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)

    updated = await api_client.patch(
        f"/app/lots/{lot['id']}", json={"shipping_status": "delivered", "notes": "arrived"}, headers=auth_headers
    )
    deleted = await api_client.delete(f"/app/lots/{lot['id']}", headers=auth_headers)
    missing = await api_client.get(f"/app/lots/{lot['id']}", headers=auth_headers)

    assert updated.json()["lot"]["shipping_status"] == "delivered"
    assert updated.json()["lot"]["vendor"] == "Estate sale"
    assert deleted.json() == {"success": True, "message": "Lot deleted successfully"}
    assert missing.status_code == 404
    assert missing.json() == {"error": "Lot not found"}


@pytest.mark.asyncio
async def test_debt_payments(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)

    paid = await api_client.post(
        f"/app/lots/{lot['id']}/payments", json={"payment_amount": 40, "payment_date": "2026-09-15"}, headers=auth_headers
    )
    payoff = await api_client.post(f"/app/lots/{lot['id']}/payoff", headers=auth_headers)
    again = await api_client.post(f"/app/lots/{lot['id']}/payoff", headers=auth_headers)
    stats = await api_client.get(f"/app/lots/{lot['id']}/payments/stats", headers=auth_headers)

    assert paid.json()["payment"]["payment_amount"] == 40.0
    assert payoff.json()["payment"]["payment_amount"] == 60.0
    assert again.status_code == 400
    assert again.json() == {"error": "No debt to pay off"}
    assert stats.json()["isFullyPaid"] is True
    assert stats.json()["originalDebt"] == 100.0


@pytest.mark.asyncio
async def test_payment_must_be_positive(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)

    response = await api_client.post(f"/app/lots/{lot['id']}/payments", json={"payment_amount": 0}, headers=auth_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_products_and_variants(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)

    product = (await api_client.post(
        f"/app/lots/{lot['id']}/products", json={"product_name": "Binder", "estimated_quantity": 30}, headers=auth_headers
    )).json()["product"]
    variant = (await api_client.post(
        f"/app/lots/products/{product['id']}/variants", json={"variant_name": "Gengar", "rarity": "Holo"}, headers=auth_headers
    )).json()["variant"]
    renamed = await api_client.patch(
        f"/app/lots/variants/{variant['id']}", json={"quantity": 3}, headers=auth_headers
    )
    fetched = (await api_client.get(f"/app/lots/{lot['id']}", headers=auth_headers)).json()["lot"]

    assert renamed.json()["variant"]["quantity"] == 3
    assert fetched["products"][0]["variants"][0]["variant_name"] == "Gengar"

    removed_variant = await api_client.delete(f"/app/lots/variants/{variant['id']}", headers=auth_headers)
    removed_product = await api_client.delete(f"/app/lots/products/{product['id']}", headers=auth_headers)
    missing = await api_client.post(
        f"/app/lots/products/{product['id']}/variants", json={"variant_name": "Haunter"}, headers=auth_headers
    )

    assert removed_variant.json()["success"] is True
    assert removed_product.json()["success"] is True
    assert missing.status_code == 404
    assert missing.json() == {"error": "Lot product not found"}


@pytest.mark.asyncio
async def test_lot_stats(api_client, auth_headers):
    lot = await _create_lot(api_client, auth_headers)
    await api_client.post(f"/app/lots/{lot['id']}/convert", headers=auth_headers)

    stats = (await api_client.get("/app/lots/stats", headers=auth_headers)).json()

    assert stats["totalLots"] == 1
    assert stats["convertedLots"] == 1
    assert stats["conversionRate"] == 100.0


"""
Conversion to Shopify
"""

@pytest.mark.asyncio
async def test_convert_requires_lot_product_id(api_client, auth_headers, shopify_override):
    response = await api_client.post("/api/lotProduct/convert", data={"defaultPrice": "5"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Missing lotProductId"}
    shopify_override.create_product_with_media.assert_not_awaited()


@pytest.mark.asyncio
async def test_convert_unknown_product_is_404(api_client, auth_headers, shopify_override):
    response = await api_client.post("/api/lotProduct/convert", json={"lotProductId": 999}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Lot product not found"}


@pytest.mark.asyncio
async def test_convert_from_form_post(api_client, auth_headers, shopify_override):
    lot = await _create_lot(api_client, auth_headers)
    product = (await api_client.post(
        f"/app/lots/{lot['id']}/products", json={"product_name": "Sealed Tin", "estimated_quantity": 2}, headers=auth_headers
    )).json()["product"]
    shopify_override.create_product_with_media.return_value = {"id": "gid://shopify/Product/42"}
    shopify_override.create_bulk_variants.return_value = [{
        "id": "gid://shopify/ProductVariant/43",
        "title": "Default Title",
        "inventoryItem": {"id": "gid://shopify/InventoryItem/44"},
    }]

    response = await api_client.post(
        "/api/lotProduct/convert",
        data={"lotProductId": str(product["id"]), "defaultPrice": "19.99"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["shopifyProductId"] == "gid://shopify/Product/42"
    shopify_override.set_inventory_quantity.assert_awaited_once_with(
        "gid://shopify/InventoryItem/44", "gid://shopify/Location/1", 2
    )
    fetched = (await api_client.get(f"/app/lots/{lot['id']}", headers=auth_headers)).json()["lot"]
    assert fetched["products"][0]["is_converted"] is True


@pytest.mark.asyncio
async def test_convert_shopify_failure_is_502(api_client, auth_headers, shopify_override):
    lot = await _create_lot(api_client, auth_headers)
    product = (await api_client.post(
        f"/app/lots/{lot['id']}/products", json={"product_name": "Binder"}, headers=auth_headers
    )).json()["product"]
    shopify_override.create_product_with_media.side_effect = ShopifyAPIError("productCreate returned no product")

    response = await api_client.post("/api/lotProduct/convert", json={"lotProductId": product["id"]}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert "productCreate returned no product" in response.json()["message"]
