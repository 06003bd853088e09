# merchant_app.services.shopify.client

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from merchant_app.core.config import get_settings
from merchant_app.core.exceptions import ShopifyAPIError, ShopifyUserError
from merchant_app.core.utils import numeric_id
from merchant_app.services.shopify import queries

logger = logging.getLogger(__name__)


class ShopifyGraphQLError(ShopifyAPIError):
    """Raised when a GraphQL response carries top-level errors."""
    def __init__(self, errors):
        self.errors = errors
        message = "GraphQL query failed with errors:\n"
        for error in errors:
            msg = error.get('message', 'Unknown error')
            path = error.get('path', [])
            message += f"- Message: {msg}, Path: {path}\n"
        super().__init__(message)


class ShopifyAdminClient:
    """
    Async Shopify Admin client bound to one shop's offline session.

    GraphQL for reads, product/collection mutations and inventory.
    REST for the variant and inventory-item fields the PSA flow sets
    (weight, barcode, tracked) in one call.

    Throttle status from ``extensions.cost.throttleStatus`` is tracked after
    every GraphQL call; when available points drop below the safety buffer
    plus the estimated cost of the next call, the client sleeps until enough
    points have been restored.
    """

    # --- Meta/Infrastructure ---

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: Optional[str] = None,
        safety_buffer_percentage: float = 0.25,
        timeout: float = 30.0,
    ):
        if not shop or not access_token:
            raise ValueError("shop and access_token are required for ShopifyAdminClient")

        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version or get_settings().SHOPIFY_API_VERSION
        self.timeout = timeout

        self.graphql_url = f"https://{shop}/admin/api/{self.api_version}/graphql.json"
        self.rest_base_url = f"https://{shop}/admin/api/{self.api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }

        # Initialize throttle status - will be updated after the first call
        self.max_available_points = 1000.0
        self.currently_available_points = self.max_available_points
        self.restore_rate = 50.0
        self.safety_buffer_percentage = safety_buffer_percentage
        self.safety_buffer_points = self.max_available_points * safety_buffer_percentage

    @classmethod
    def from_session(cls, session) -> "ShopifyAdminClient":
        return cls(shop=session.shop, access_token=session.access_token)

    async def execute(self, query: str, variables: Optional[dict] = None, estimated_cost: int = 10) -> Dict[str, Any]:
        return await self._make_request(query, variables, estimated_cost)

    def _update_throttle_status(self, extensions):
        if extensions and "cost" in extensions:
            throttle = extensions["cost"].get("throttleStatus") or {}
            if not throttle:
                return
            self.max_available_points = float(throttle["maximumAvailable"])
            self.currently_available_points = float(throttle["currentlyAvailable"])
            self.restore_rate = float(throttle["restoreRate"])
            self.safety_buffer_points = self.max_available_points * self.safety_buffer_percentage

    async def _wait_for_budget(self, estimated_cost: int) -> None:
        required_points = estimated_cost + self.safety_buffer_points
        if self.currently_available_points >= required_points:
            return

        points_needed = required_points - self.currently_available_points
        wait_time = (points_needed / self.restore_rate) if self.restore_rate > 0 else 10
        wait_time = max(wait_time, 0) + 0.5
        logger.info(
            "Shopify rate limit approaching for %s: %.0f points available, waiting %.2fs",
            self.shop, self.currently_available_points, wait_time,
        )
        await asyncio.sleep(wait_time)
        self.currently_available_points = min(
            self.max_available_points,
            self.currently_available_points + (self.restore_rate * wait_time),
        )

    async def _make_request(self, query: str, variables: Optional[dict] = None, estimated_cost: int = 10) -> Dict[str, Any]:
        """
        Makes a GraphQL request to Shopify, handling rate limits.

        Raises:
            ShopifyGraphQLError: the response carried ``errors``
            ShopifyAPIError: transport failure or non-2xx status
        """
        await self._wait_for_budget(estimated_cost)

        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.graphql_url, headers=self.headers, json=payload)
        except httpx.TimeoutException as exc:
            raise ShopifyAPIError(f"Shopify request timed out for {self.shop}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ShopifyAPIError(f"Network error talking to {self.shop}: {exc}") from exc

        if response.status_code == 429:
            # Force the next call through the budget wait
            self.currently_available_points = 0
            retry_after = response.headers.get("Retry-After")
            logger.warning("Received 429 from %s (Retry-After=%s)", self.shop, retry_after)
            raise ShopifyAPIError(f"Shopify throttled the request for {self.shop}")

        if response.status_code >= 400:
            logger.error("Shopify GraphQL HTTP %s for %s: %s", response.status_code, self.shop, response.text[:500])
            raise ShopifyAPIError(f"Shopify GraphQL request failed with status {response.status_code}")

        try:
            response_data = response.json()
        except json.JSONDecodeError:
            raise ShopifyGraphQLError([{"message": "Failed to decode JSON response", "response_text": response.text}])

        if "extensions" in response_data:
            self._update_throttle_status(response_data["extensions"])

        if response_data.get("errors"):
            raise ShopifyGraphQLError(response_data["errors"])

        return response_data.get("data") or {}

    async def rest(self, method: str, path: str, data: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.rest_base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method=method, url=url, headers=self.headers, json=data)
        except httpx.HTTPError as exc:
            raise ShopifyAPIError(f"REST {method} {path} failed: {exc}") from exc

        if response.status_code not in (200, 201, 202, 204):
            logger.error("Shopify REST error %s on %s: %s", response.status_code, path, response.text[:500])
            raise ShopifyAPIError(f"REST {method} {path} failed with status {response.status_code}")

        if response.status_code == 204:
            return {}
        return response.json()

    @staticmethod
    def _check_user_errors(operation: str, payload: Optional[dict], key: str = "userErrors") -> dict:
        payload = payload or {}
        errors = payload.get(key) or []
        if errors:
            logger.error("%s returned user errors: %s", operation, errors)
            raise ShopifyUserError(operation, errors)
        return payload

    # --- Reads ---

    async def get_shop(self) -> Dict[str, Any]:
        data = await self.execute(queries.SHOP_INFO, estimated_cost=1)
        return data.get("shop") or {}

    async def get_primary_location_id(self) -> Optional[str]:
        data = await self.execute(queries.PRIMARY_LOCATION, estimated_cost=2)
        nodes = ((data.get("locations") or {}).get("nodes")) or []
        return nodes[0]["id"] if nodes else None

    async def iter_inventory_items(self, location_id: str) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield one flattened dict per inventory item at ``location_id``.

        Keys: ``inventory_item_id``, ``product_id``, ``product_status``,
        ``product_total_inventory`` (across every location), ``price``
        (float or None) and ``available`` (int or None when the item is not
        stocked at the location).
        """
        cursor = None
        while True:
            data = await self.execute(
                queries.INVENTORY_ITEMS_AT_LOCATION,
                {"locationID": location_id, "after": cursor},
                estimated_cost=110,
            )
            connection = data.get("inventoryItems") or {}
            for edge in connection.get("edges") or []:
                node = edge.get("node") or {}
                variant = node.get("variant") or {}
                product = variant.get("product") or {}
                level = node.get("inventoryLevel")
                available = None
                if level:
                    quantities = level.get("quantities") or []
                    if quantities:
                        available = quantities[0].get("quantity")
                price = variant.get("price")
                yield {
                    "inventory_item_id": node.get("id"),
                    "product_id": product.get("id"),
                    "product_status": product.get("status"),
                    "product_total_inventory": product.get("totalInventory"),
                    "price": float(price) if price not in (None, "") else None,
                    "available": available,
                }

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        data = await self.execute(queries.PRODUCT_DETAIL, {"id": product_id}, estimated_cost=60)
        return data.get("product")

    async def find_product_id_for_inventory_item(self, inventory_item_id: str) -> Optional[str]:
        data = await self.execute(queries.PRODUCT_FOR_INVENTORY_ITEM, {"id": inventory_item_id}, estimated_cost=5)
        item = data.get("inventoryItem") or {}
        variant = item.get("variant") or {}
        return (variant.get("product") or {}).get("id")

    async def get_products_page(self, cursor: Optional[str] = None) -> Dict[str, Any]:
        data = await self.execute(queries.PRODUCTS_PAGE, {"cursor": cursor}, estimated_cost=250)
        return data.get("products") or {}

    async def list_webhook_subscriptions(self, first: int = 50) -> List[Dict[str, Any]]:
        data = await self.execute(queries.WEBHOOK_SUBSCRIPTIONS, {"first": first}, estimated_cost=10)
        edges = (data.get("webhookSubscriptions") or {}).get("edges") or []
        return [edge["node"] for edge in edges if edge.get("node")]

    async def get_publication_ids(self) -> List[str]:
        data = await self.execute(queries.PUBLICATIONS, estimated_cost=5)
        return [node["id"] for node in (data.get("publications") or {}).get("nodes") or []]

    async def get_collection_id_by_handle(self, handle: str) -> Optional[str]:
        data = await self.execute(queries.COLLECTION_BY_HANDLE, {"handle": handle}, estimated_cost=2)
        collection = data.get("collectionByHandle")
        return collection.get("id") if collection else None

    # --- Product-level writes ---

    async def set_product_status(self, product_id: str, status: str) -> Dict[str, Any]:
        data = await self.execute(queries.PRODUCT_SET_STATUS, {"id": product_id, "status": status})
        payload = self._check_user_errors("productUpdate", data.get("productUpdate"))
        return payload.get("product") or {}

    async def publish_to_all(self, product_id: str) -> int:
        publication_ids = await self.get_publication_ids()
        if not publication_ids:
            return 0
        data = await self.execute(
            queries.PUBLISH_PRODUCT,
            {"id": product_id, "input": [{"publicationId": pid} for pid in publication_ids]},
        )
        self._check_user_errors("publishablePublish", data.get("publishablePublish"))
        return len(publication_ids)

    async def add_to_collection_front(self, collection_id: str, product_id: str) -> None:
        data = await self.execute(
            queries.COLLECTION_ADD_PRODUCTS, {"id": collection_id, "productIds": [product_id]}
        )
        payload = data.get("collectionAddProductsV2") or {}
        errors = payload.get("userErrors") or []
        # Already in the collection is fine, the reorder below still applies
        if errors and not all("already" in (e.get("message") or "").lower() for e in errors):
            raise ShopifyUserError("collectionAddProductsV2", errors)

        data = await self.execute(
            queries.COLLECTION_REORDER_PRODUCTS,
            {"id": collection_id, "moves": [{"id": product_id, "newPosition": "0"}]},
        )
        self._check_user_errors("collectionReorderProducts", data.get("collectionReorderProducts"))

    async def create_product_with_media(self, product_input: dict, media: Optional[List[dict]] = None) -> Dict[str, Any]:
        data = await self.execute(
            queries.PRODUCT_CREATE_WITH_MEDIA,
            {"input": product_input, "media": media or []},
            estimated_cost=20,
        )
        payload = self._check_user_errors("productCreate", data.get("productCreate"))
        product = payload.get("product")
        if not product:
            raise ShopifyAPIError("productCreate returned no product")
        return product

    # --- Variant / inventory writes ---

    async def create_bulk_variants(self, product_id: str, variants: List[dict], strategy: str = "DEFAULT") -> List[Dict[str, Any]]:
        data = await self.execute(
            queries.PRODUCT_VARIANTS_BULK_CREATE,
            {"productId": product_id, "variants": variants, "strategy": strategy},
            estimated_cost=20,
        )
        payload = self._check_user_errors("productVariantsBulkCreate", data.get("productVariantsBulkCreate"))
        return payload.get("productVariants") or []

    async def update_variant_prices(self, product_id: str, variants: List[dict]) -> List[Dict[str, Any]]:
        data = await self.execute(
            queries.PRODUCT_VARIANTS_BULK_UPDATE, {"productId": product_id, "variants": variants}
        )
        payload = self._check_user_errors("productVariantsBulkUpdate", data.get("productVariantsBulkUpdate"))
        return payload.get("productVariants") or []

    async def set_inventory_quantity(self, inventory_item_id: str, location_id: str, quantity: int) -> Dict[str, Any]:
        variables = {
            "input": {
                "name": "available",
                "reason": "other",
                "ignoreCompareQuantity": True,
                "quantities": [{
                    "inventoryItemId": inventory_item_id,
                    "locationId": location_id,
                    "quantity": int(quantity),
                }],
            }
        }
        data = await self.execute(queries.INVENTORY_SET_QUANTITIES, variables)
        return self._check_user_errors("inventorySetQuantities", data.get("inventorySetQuantities"))

    async def update_variant_rest(self, variant_id: str, fields: dict) -> Dict[str, Any]:
        vid = numeric_id(variant_id)
        body = {"variant": {"id": int(vid), **fields}}
        data = await self.rest("PUT", f"variants/{vid}.json", body)
        return data.get("variant") or {}

    async def update_inventory_item_rest(self, inventory_item_id: str, fields: dict) -> Dict[str, Any]:
        iid = numeric_id(inventory_item_id)
        body = {"inventory_item": {"id": int(iid), **fields}}
        data = await self.rest("PUT", f"inventory_items/{iid}.json", body)
        return data.get("inventory_item") or {}
